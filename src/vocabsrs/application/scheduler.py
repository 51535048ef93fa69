"""
Scheduler engine: the review state machine.

Pure computation; the only side channel is the injected clock.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timedelta

from vocabsrs.domain.constants import (
    DEFAULT_MODE_WEIGHTS,
    FAIL_INTERVAL_DAYS,
    FALLBACK_WEIGHT,
    INTERVAL_LADDER,
    MASTERY_MIN_INTERVAL_DAYS,
    MASTERY_MIN_STREAK,
)
from vocabsrs.domain.review.models import ModeTally, ReviewState, ReviewStats
from vocabsrs.domain.review.ports import Clock, utc_now

logger = logging.getLogger(__name__)


def next_interval(interval_days: int) -> int:
    """
    Step one rung up the interval ladder.

    Values not on the ladder restart from the lowest rung. The top rung is sticky.
    """
    try:
        position = INTERVAL_LADDER.index(interval_days)
    except ValueError:
        position = 0
    return INTERVAL_LADDER[min(position + 1, len(INTERVAL_LADDER) - 1)]


def meets_mastery_bar(success_streak: int, interval_days: int) -> bool:
    return success_streak >= MASTERY_MIN_STREAK and interval_days >= MASTERY_MIN_INTERVAL_DAYS


class SchedulerEngine:
    """
    Computes the next ReviewStats of a card from one graded review.

    Stateless between calls. Safe to share across threads and sessions as long
    as each card has a single writer.
    """

    def __init__(
        self,
        mode_weights: Mapping[str, float] | None = None,
        clock: Clock | None = None,
    ):
        """
        Args:
            mode_weights: Weight applied to attempt accounting per mode key.
            clock: Zero-argument callable returning an aware "now".
        """
        self.mode_weights = dict(DEFAULT_MODE_WEIGHTS if mode_weights is None else mode_weights)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def weight_for(self, mode_key: str | None) -> float:
        if mode_key is None:
            return FALLBACK_WEIGHT
        return self.mode_weights.get(mode_key, FALLBACK_WEIGHT)

    def is_due(self, stats: ReviewStats | None, now: datetime | None = None) -> bool:
        """
        Whether a card may advance on the schedule.

        Cards that were never scheduled are always due. Otherwise a card becomes
        due at the start of the day its next_review_date falls on.
        """
        if stats is None or stats.next_review_date is None:
            return True

        now = now or self.now()
        due_at = stats.next_review_date
        if now.tzinfo is not None:
            due_at = due_at.astimezone(now.tzinfo)
        start_of_day = due_at.replace(hour=0, minute=0, second=0, microsecond=0)
        return now >= start_of_day

    def advance(
        self,
        stats: ReviewStats | None,
        outcome: bool,
        is_due: bool | None = None,
        mode_key: str | None = None,
        weight: float | None = None,
    ) -> ReviewStats:
        """
        Apply one graded review and return the resulting stats.

        Args:
            stats: Current stats; None means the card was never reviewed.
            outcome: True for PASS (active recall succeeded), False for FAIL.
            is_due: Whether the review counts toward the schedule. Computed from
                next_review_date when omitted.
            mode_key: Presentation mode, used for the per-mode tally and to look
                up the weight.
            weight: Explicit accounting weight; overrides the mode table.

        Returns:
            New ReviewStats. The input is never mutated.
        """
        stats = stats or ReviewStats()
        now = self.now()
        if is_due is None:
            is_due = self.is_due(stats, now)
        if weight is None:
            weight = self.weight_for(mode_key)

        if is_due:
            stats = self._transition(stats, outcome, now)
        else:
            logger.debug("Review before due date; schedule left unchanged")

        return self._record_attempt(stats, outcome, now, mode_key, weight)

    def _transition(self, stats: ReviewStats, outcome: bool, now: datetime) -> ReviewStats:
        # Legacy records (state None) stay stateless until promoted or failed.
        state = stats.state

        if outcome:
            streak = stats.success_streak + 1
            interval = next_interval(stats.interval_days)
            mastered_at = stats.mastered_at

            if meets_mastery_bar(streak, interval):
                if state is not ReviewState.MASTERED:
                    mastered_at = now
                    logger.info(f"Promoted to MASTERED (streak={streak}, interval={interval}d)")
                state = ReviewState.MASTERED
            elif state is ReviewState.NEW:
                state = ReviewState.LEARNING

            return replace(
                stats,
                state=state,
                success_streak=streak,
                interval_days=interval,
                mastered_at=mastered_at,
                next_review_date=now + timedelta(days=interval),
            )

        demotions = stats.demotions
        if state is ReviewState.MASTERED:
            demotions = (*demotions, now)
            logger.info("Demoted from MASTERED to LEARNING")

        return replace(
            stats,
            state=ReviewState.LEARNING,
            success_streak=0,
            interval_days=FAIL_INTERVAL_DAYS,
            demotions=demotions,
            next_review_date=now + timedelta(days=FAIL_INTERVAL_DAYS),
        )

    def _record_attempt(
        self,
        stats: ReviewStats,
        outcome: bool,
        now: datetime,
        mode_key: str | None,
        weight: float,
    ) -> ReviewStats:
        mode_stats = dict(stats.mode_stats)
        tally = mode_stats.get(mode_key) if mode_key is not None else None
        if tally is not None:
            mode_stats[mode_key] = ModeTally(
                attempts=tally.attempts + 1,
                correct=tally.correct + (1 if outcome else 0),
            )
        elif mode_key is not None:
            logger.debug(f"No tally for mode {mode_key!r}; per-mode counters unchanged")

        if outcome:
            return replace(
                stats,
                total_attempts=stats.total_attempts + weight,
                correct_attempts=stats.correct_attempts + weight,
                consecutive_correct=stats.consecutive_correct + 1,
                last_reviewed_at=now,
                mode_stats=mode_stats,
            )

        return replace(
            stats,
            total_attempts=stats.total_attempts + weight,
            consecutive_correct=0,
            last_reviewed_at=now,
            last_wrong_at=now,
            mode_stats=mode_stats,
        )
