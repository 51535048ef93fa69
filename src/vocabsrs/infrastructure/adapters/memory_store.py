"""In-memory CardRepository for tests and the ephemeral server mode."""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from vocabsrs.domain.errors import CardNotFoundError
from vocabsrs.domain.review.models import Card, ReviewStats
from vocabsrs.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)


class InMemoryCardRepository(CardRepository):
    def __init__(self, cards: list[Card] | None = None):
        self._cards: dict[str, Card] = {c.id: c for c in cards or []}
        self.write_count = 0

    async def load(self, card_id: str) -> ReviewStats:
        return (await self.get_card(card_id)).review_stats

    async def save(self, card_id: str, stats: ReviewStats) -> None:
        card = await self.get_card(card_id)
        if card.review_stats == stats:
            return
        self._cards[card_id] = replace(card, review_stats=stats)
        self.write_count += 1

    async def get_card(self, card_id: str) -> Card:
        try:
            return self._cards[card_id]
        except KeyError:
            raise CardNotFoundError(card_id) from None

    async def list_cards(self) -> list[Card]:
        return list(self._cards.values())

    async def add_card(self, card: Card) -> str:
        card_id = card.id or uuid.uuid4().hex
        if card_id in self._cards:
            raise ValueError(f"Card id already exists: {card_id}")
        self._cards[card_id] = replace(
            card, id=card_id, created_at=card.created_at or datetime.now(timezone.utc)
        )
        logger.debug(f"Added card {card_id}")
        return card_id
