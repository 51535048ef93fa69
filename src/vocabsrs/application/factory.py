"""
Card Store Factory
Centralizes construction of the repository and engine from configuration.
"""

from vocabsrs.application.config import AppConfig
from vocabsrs.application.scheduler import SchedulerEngine
from vocabsrs.domain.review.ports import CardRepository, Clock
from vocabsrs.infrastructure.adapters.json_store import JsonCardRepository


def get_card_repository(config: AppConfig) -> CardRepository:
    """
    Returns the CardRepository backing the configured data file.
    """
    return JsonCardRepository(config.data_file)


def get_engine(config: AppConfig, clock: Clock | None = None) -> SchedulerEngine:
    """
    Returns a SchedulerEngine using the configured mode weights.
    """
    return SchedulerEngine(mode_weights=config.mode_weights, clock=clock)
