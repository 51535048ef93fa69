"""
Review session driver.

Feeds graded outcomes to the SchedulerEngine one card at a time and persists
the resulting snapshots. Transitions are applied serially against the
session's own copy of each card's stats, so a card never has two pending
transitions computed from the same stale snapshot.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Literal

from vocabsrs.application.scheduler import SchedulerEngine
from vocabsrs.domain.constants import DEFAULT_SESSION_LIMIT
from vocabsrs.domain.review.models import Card, ReviewStats
from vocabsrs.domain.review.ports import CardRepository

logger = logging.getLogger(__name__)

PersistMode = Literal["end", "immediate"]
Scope = Literal["all", "starred"]


@dataclass
class SessionResult:
    """Outcome of a finished or abandoned session."""

    total: int
    correct: int
    wrong: int
    graded_card_ids: list[str] = field(default_factory=list)
    completed: bool = True


def select_cards(
    cards: list[Card],
    engine: SchedulerEngine,
    scope: Scope = "all",
    due_only: bool = False,
    limit: int | None = DEFAULT_SESSION_LIMIT,
    rng: random.Random | None = None,
) -> list[Card]:
    """
    Pick the cards for a session: filter, shuffle, then truncate.

    Args:
        cards: Candidate cards.
        engine: Used for the due check.
        scope: "starred" keeps only starred cards.
        due_only: Keep only cards that are due now.
        limit: Maximum session size; None for no limit.
        rng: Random source for the shuffle.
    """
    selected = list(cards)
    if scope == "starred":
        selected = [c for c in selected if c.is_starred]

    if due_only:
        now = engine.now()
        selected = [c for c in selected if engine.is_due(c.review_stats, now)]

    (rng or random.Random()).shuffle(selected)

    if limit is not None:
        selected = selected[:limit]
    return selected


class ReviewSession:
    """
    One pass over a queue of cards in a single presentation mode.

    With ``persist="end"`` snapshots are written in one batch by finish() or
    abandon(); with ``persist="immediate"`` each card is written as soon as it
    is graded.
    """

    def __init__(
        self,
        repository: CardRepository,
        engine: SchedulerEngine,
        mode_key: str,
        persist: PersistMode = "end",
    ):
        self._repo = repository
        self._engine = engine
        self.mode_key = mode_key
        self.persist = persist

        self.cards: list[Card] = []
        self.current_index = 0
        self.correct = 0
        self.wrong = 0

        # Latest in-session snapshot per graded card, in grading order.
        self._snapshots: dict[str, ReviewStats] = {}
        self._closed = False

    async def start(
        self,
        scope: Scope = "all",
        due_only: bool = False,
        limit: int | None = DEFAULT_SESSION_LIMIT,
        rng: random.Random | None = None,
    ) -> list[Card]:
        """Load cards from the repository and build the queue."""
        all_cards = await self._repo.list_cards()
        self.cards = select_cards(all_cards, self._engine, scope, due_only, limit, rng)
        logger.info(
            f"Session started: {len(self.cards)} card(s), mode={self.mode_key}, "
            f"scope={scope}, due_only={due_only}"
        )
        return self.cards

    def current_card(self) -> Card | None:
        if self.current_index < len(self.cards):
            return self.cards[self.current_index]
        return None

    @property
    def is_finished(self) -> bool:
        return self.current_index >= len(self.cards)

    def stats_for(self, card: Card) -> ReviewStats:
        """The freshest stats for a card: the in-session snapshot if graded."""
        return self._snapshots.get(card.id, card.review_stats)

    async def grade(self, outcome: bool, advance: bool = True) -> ReviewStats:
        """
        Grade the current card and apply its transition.

        Args:
            outcome: True for a correct answer.
            advance: Move to the next card afterwards. Spelling drills keep the
                card on screen after a wrong answer and grade it again.

        Returns:
            The card's new stats.
        """
        if self._closed:
            raise RuntimeError("Session is already closed")
        card = self.current_card()
        if card is None:
            raise RuntimeError("No card left to grade")

        new_stats = self._engine.advance(self.stats_for(card), outcome, mode_key=self.mode_key)
        self._snapshots[card.id] = new_stats

        if outcome:
            self.correct += 1
        else:
            self.wrong += 1

        if self.persist == "immediate":
            await self._repo.save(card.id, new_stats)

        if advance:
            self.current_index += 1
        return new_stats

    def skip(self) -> None:
        """Move past the current card without grading it."""
        if self.current_card() is not None:
            self.current_index += 1

    async def finish(self) -> SessionResult:
        return await self._close(completed=True)

    async def abandon(self) -> SessionResult:
        """Stop early. Cards graded so far still persist."""
        return await self._close(completed=False)

    async def _close(self, completed: bool) -> SessionResult:
        if not self._closed:
            self._closed = True
            if self.persist == "end":
                for card_id, stats in self._snapshots.items():
                    await self._repo.save(card_id, stats)
            logger.info(
                f"Session {'finished' if completed else 'abandoned'}: "
                f"{self.correct} correct, {self.wrong} wrong, "
                f"{len(self._snapshots)} card(s) updated"
            )

        return SessionResult(
            total=len(self.cards),
            correct=self.correct,
            wrong=self.wrong,
            graded_card_ids=list(self._snapshots),
            completed=completed,
        )
