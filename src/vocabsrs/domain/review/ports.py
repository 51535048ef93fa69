"""
Ports (interfaces) for card persistence and time.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from .models import Card, ReviewStats

# Supplies "now"; injected so tests can pin the date.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CardRepository(ABC):
    """
    Port for loading and saving cards and their review statistics.

    Implementations:
        - JsonCardRepository: A single JSON document on disk.
        - InMemoryCardRepository: Process-local dict, used by tests and the server.
    """

    @abstractmethod
    async def load(self, card_id: str) -> ReviewStats:
        """
        Fetch the review stats of a card.

        Returns default NEW stats when the card was never reviewed.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass

    @abstractmethod
    async def save(self, card_id: str, stats: ReviewStats) -> None:
        """
        Replace the review stats of a card.

        Saving the same stats twice leaves the stored record unchanged.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass

    @abstractmethod
    async def get_card(self, card_id: str) -> Card:
        pass

    @abstractmethod
    async def list_cards(self) -> list[Card]:
        pass

    @abstractmethod
    async def add_card(self, card: Card) -> str:
        """Store a new card and return its id."""
        pass
