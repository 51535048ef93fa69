"""
Dashboard calculator for deriving deck-level insights from card stats.

This is a pure computation module with no I/O.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from vocabsrs.application.scheduler import SchedulerEngine
from vocabsrs.domain.constants import DEMOTION_WINDOW_DAYS
from vocabsrs.domain.review.models import Card, ReviewState


@dataclass
class DashboardSummary:
    """
    Deck-level counters shown on the dashboard.
    """

    total: int = 0

    # Due breakdown by state
    due_total: int = 0
    due_new: int = 0
    due_learning: int = 0
    due_mastered: int = 0

    learning_load: int = 0  # Cards currently LEARNING
    mastered_total: int = 0
    demotions_30d: int = 0  # Demotion events inside the window


@dataclass
class GrowthSeries:
    """Cumulative cards added / mastered, one point per calendar day."""

    labels: list[str] = field(default_factory=list)  # YYYY-MM-DD
    total_counts: list[int] = field(default_factory=list)
    mastered_counts: list[int] = field(default_factory=list)


class DashboardCalculator:
    """
    Computes dashboard aggregates from a list of cards.

    Stateless and side-effect free; due checks go through the engine so the
    dashboard and the session driver agree on what "due" means.
    """

    def __init__(self, engine: SchedulerEngine | None = None):
        self._engine = engine or SchedulerEngine()

    def summarize(self, cards: list[Card], starred_only: bool = False) -> DashboardSummary:
        if starred_only:
            cards = [c for c in cards if c.is_starred]

        now = self._engine.now()
        window_start = now - timedelta(days=DEMOTION_WINDOW_DAYS)
        summary = DashboardSummary(total=len(cards))

        for card in cards:
            stats = card.review_stats
            state = stats.state or ReviewState.NEW

            if self._engine.is_due(stats, now):
                summary.due_total += 1
                if state is ReviewState.NEW:
                    summary.due_new += 1
                elif state is ReviewState.LEARNING:
                    summary.due_learning += 1
                else:
                    summary.due_mastered += 1

            if state is ReviewState.LEARNING:
                summary.learning_load += 1
            elif state is ReviewState.MASTERED:
                summary.mastered_total += 1

            summary.demotions_30d += sum(1 for d in stats.demotions if d >= window_start)

        return summary

    def growth_series(self, cards: list[Card]) -> GrowthSeries:
        """
        Build cumulative added/mastered counts from the first event to today.

        The mastery date falls back to the last review, then to creation, for
        records that predate ``mastered_at``.
        """
        if not cards:
            return GrowthSeries()

        now = self._engine.now()
        added: dict[date, int] = defaultdict(int)
        mastered: dict[date, int] = defaultdict(int)

        for card in cards:
            added[self._local_day(card.created_at, now)] += 1

            stats = card.review_stats
            if stats.state is ReviewState.MASTERED:
                when = stats.mastered_at or stats.last_reviewed_at or card.created_at
                mastered[self._local_day(when, now)] += 1

        today = now.date()
        day = min(min(added), min(mastered, default=today))
        series = GrowthSeries()
        running_total = 0
        running_mastered = 0

        while day <= today:
            running_total += added.get(day, 0)
            running_mastered += mastered.get(day, 0)
            series.labels.append(day.isoformat())
            series.total_counts.append(running_total)
            series.mastered_counts.append(running_mastered)
            day += timedelta(days=1)

        return series

    @staticmethod
    def _local_day(value: datetime | None, now: datetime) -> date:
        if value is None:
            return now.date()
        if now.tzinfo is not None:
            value = value.astimezone(now.tzinfo)
        return value.date()
