"""
Review Service — Application layer orchestrator.

Coordinates loading stats from the repository, running the scheduler and
saving the result for single-card grading outside of a session.
"""

import logging
from dataclasses import dataclass

from vocabsrs.application.dashboard import DashboardCalculator, DashboardSummary, GrowthSeries
from vocabsrs.application.familiarity import classify
from vocabsrs.application.scheduler import SchedulerEngine
from vocabsrs.domain.review.models import Card, FamiliarityLevel, ReviewStats
from vocabsrs.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)


@dataclass
class GradeResult:
    card_id: str
    was_due: bool
    stats: ReviewStats
    level: FamiliarityLevel


class ReviewService:
    """
    Application service for grading cards and reading deck statistics.

    Depends on the CardRepository abstraction, not a concrete store.
    """

    def __init__(
        self,
        repository: CardRepository,
        engine: SchedulerEngine | None = None,
        calculator: DashboardCalculator | None = None,
    ):
        self._repo = repository
        self._engine = engine or SchedulerEngine()
        self._calc = calculator or DashboardCalculator(self._engine)

    async def load(self, card_id: str) -> ReviewStats:
        return await self._repo.load(card_id)

    async def grade(
        self,
        card_id: str,
        outcome: bool,
        mode_key: str | None = None,
        is_due: bool | None = None,
    ) -> GradeResult:
        """
        Grade one card and persist the new stats.

        Raises:
            CardNotFoundError: If the card does not exist.
        """
        stats = await self._repo.load(card_id)
        was_due = self._engine.is_due(stats) if is_due is None else is_due

        new_stats = self._engine.advance(stats, outcome, is_due=was_due, mode_key=mode_key)
        await self._repo.save(card_id, new_stats)

        logger.debug(
            f"Graded {card_id}: outcome={'pass' if outcome else 'fail'} due={was_due} "
            f"state={new_stats.state} interval={new_stats.interval_days}d"
        )
        return GradeResult(
            card_id=card_id, was_due=was_due, stats=new_stats, level=classify(new_stats)
        )

    async def due_cards(self, starred_only: bool = False) -> list[Card]:
        cards = await self._repo.list_cards()
        now = self._engine.now()
        return [
            c
            for c in cards
            if (c.is_starred or not starred_only) and self._engine.is_due(c.review_stats, now)
        ]

    async def dashboard(self, starred_only: bool = False) -> DashboardSummary:
        return self._calc.summarize(await self._repo.list_cards(), starred_only=starred_only)

    async def growth(self) -> GrowthSeries:
        return self._calc.growth_series(await self._repo.list_cards())
