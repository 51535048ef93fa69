"""
Familiarity classification for display.

Records that carry a ``state`` are classified by it directly. Legacy records
written before the state machine existed have no state and are bucketed by a
weighted-accuracy heuristic instead. Each path is its own strategy so the
legacy one can be tested in isolation.
"""

from vocabsrs.domain.constants import (
    LEGACY_LEARNING_THRESHOLD,
    LEGACY_MASTERED_THRESHOLD,
    LEGACY_STREAK_BONUS_CAP,
    LEGACY_STREAK_BONUS_STEP,
    STATE_SCORES,
)
from vocabsrs.domain.review.models import FamiliarityLevel, ReviewState, ReviewStats

LEVELS = {
    ReviewState.NEW: FamiliarityLevel(label="New", tier=0, css_class="level-new"),
    ReviewState.LEARNING: FamiliarityLevel(label="Learning", tier=1, css_class="level-learning"),
    ReviewState.MASTERED: FamiliarityLevel(label="Mastered", tier=2, css_class="level-mastered"),
}


class StateClassifier:
    """Maps the state label straight to its level."""

    def classify(self, stats: ReviewStats) -> FamiliarityLevel:
        return LEVELS[_require_state(stats)]

    def score(self, stats: ReviewStats) -> float:
        return STATE_SCORES[_require_state(stats).value]


def _require_state(stats: ReviewStats) -> ReviewState:
    if stats is None or stats.state is None:
        raise ValueError("Stats without a state must be classified by accuracy")
    return stats.state


class AccuracyClassifier:
    """Legacy heuristic: weighted accuracy plus a small streak bonus."""

    def score(self, stats: ReviewStats | None) -> float:
        if stats is None or stats.total_attempts == 0:
            return 0.0
        accuracy = stats.correct_attempts / max(stats.total_attempts, 1)
        streak_bonus = min(
            stats.consecutive_correct * LEGACY_STREAK_BONUS_STEP, LEGACY_STREAK_BONUS_CAP
        )
        return max(0.0, min(1.0, accuracy + streak_bonus))

    def classify(self, stats: ReviewStats | None) -> FamiliarityLevel:
        score = self.score(stats)
        if score >= LEGACY_MASTERED_THRESHOLD:
            return LEVELS[ReviewState.MASTERED]
        if score >= LEGACY_LEARNING_THRESHOLD:
            return LEVELS[ReviewState.LEARNING]
        return LEVELS[ReviewState.NEW]


_state_strategy = StateClassifier()
_legacy_strategy = AccuracyClassifier()


def _strategy_for(stats: ReviewStats | None) -> StateClassifier | AccuracyClassifier:
    if stats is not None and stats.state is not None:
        return _state_strategy
    return _legacy_strategy


def classify(stats: ReviewStats | None) -> FamiliarityLevel:
    """Classify a card for display: New < Learning < Mastered."""
    return _strategy_for(stats).classify(stats)


def familiarity_score(stats: ReviewStats | None) -> float:
    """Score in [0, 1] for progress bars and filters."""
    return _strategy_for(stats).score(stats)
