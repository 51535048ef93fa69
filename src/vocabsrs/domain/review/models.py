"""
Domain models for vocabulary review statistics.

These are pure data structures with no I/O or external dependencies.
The ``to_dict`` / ``from_dict`` pairs define the shape of the persisted record.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from vocabsrs.domain.constants import DEFAULT_MODE_WEIGHTS

logger = logging.getLogger(__name__)


class ReviewState(str, Enum):
    """Memory-strength classification, ordered NEW < LEARNING < MASTERED."""

    NEW = "NEW"
    LEARNING = "LEARNING"
    MASTERED = "MASTERED"

    @property
    def tier(self) -> int:
        return _STATE_TIERS[self]


_STATE_TIERS = {ReviewState.NEW: 0, ReviewState.LEARNING: 1, ReviewState.MASTERED: 2}


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a persisted timestamp.

    Accepts datetimes, ISO-8601 strings and epoch seconds. Naive values are
    taken as UTC. Anything unparseable is treated as absent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            logger.warning(f"Ignoring out-of-range epoch timestamp: {value!r}")
            return None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            logger.warning(f"Ignoring unparseable timestamp: {value!r}")
            return None
    else:
        logger.warning(f"Ignoring timestamp of unsupported type: {type(value).__name__}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class ModeTally:
    """
    Per presentation-mode counters.

    Attributes:
        attempts: Number of graded reviews in this mode (unweighted).
        correct: Number of those reviews graded correct.
    """

    attempts: int = 0
    correct: int = 0


def default_mode_stats() -> dict[str, ModeTally]:
    return {key: ModeTally() for key in DEFAULT_MODE_WEIGHTS}


@dataclass(frozen=True)
class ReviewStats:
    """
    Review statistics for a single card.

    ``state`` is ``None`` only for legacy records written before the state
    machine existed; such records are classified by accuracy instead.
    """

    state: ReviewState | None = ReviewState.NEW
    success_streak: int = 0
    interval_days: int = 0
    next_review_date: datetime | None = None
    mastered_at: datetime | None = None
    demotions: tuple[datetime, ...] = ()

    # Usage statistics (weighted totals)
    total_attempts: float = 0.0
    correct_attempts: float = 0.0
    consecutive_correct: int = 0
    last_reviewed_at: datetime | None = None
    last_wrong_at: datetime | None = None
    mode_stats: dict[str, ModeTally] = field(default_factory=default_mode_stats)

    @property
    def accuracy(self) -> float | None:
        """Weighted accuracy, or None if never attempted."""
        if self.total_attempts <= 0:
            return None
        return self.correct_attempts / self.total_attempts

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value if self.state is not None else None,
            "success_streak": self.success_streak,
            "interval_days": self.interval_days,
            "next_review_date": format_timestamp(self.next_review_date),
            "mastered_at": format_timestamp(self.mastered_at),
            "demotions": [format_timestamp(d) for d in self.demotions],
            "total_attempts": self.total_attempts,
            "correct_attempts": self.correct_attempts,
            "consecutive_correct": self.consecutive_correct,
            "last_reviewed_at": format_timestamp(self.last_reviewed_at),
            "last_wrong_at": format_timestamp(self.last_wrong_at),
            "mode_stats": {
                key: {"attempts": tally.attempts, "correct": tally.correct}
                for key, tally in self.mode_stats.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ReviewStats":
        """
        Build stats from a persisted record.

        Missing keys fall back to NEW defaults. A record without a ``state``
        key (or with an unknown state) is a legacy record and keeps
        ``state=None``.
        """
        if not data:
            return cls()

        state: ReviewState | None = None
        raw_state = data.get("state")
        if raw_state is not None:
            try:
                state = ReviewState(str(raw_state).upper())
            except ValueError:
                logger.warning(f"Unknown review state {raw_state!r}; treating record as legacy")

        mode_stats = default_mode_stats()
        for key, tally in (data.get("mode_stats") or {}).items():
            if isinstance(tally, dict):
                mode_stats[key] = ModeTally(
                    attempts=int(tally.get("attempts") or 0),
                    correct=int(tally.get("correct") or 0),
                )

        demotions = tuple(
            d for d in (parse_timestamp(raw) for raw in data.get("demotions") or []) if d
        )

        return cls(
            state=state,
            success_streak=int(data.get("success_streak") or 0),
            interval_days=int(data.get("interval_days") or 0),
            next_review_date=parse_timestamp(data.get("next_review_date")),
            mastered_at=parse_timestamp(data.get("mastered_at")),
            demotions=demotions,
            total_attempts=float(data.get("total_attempts") or 0),
            correct_attempts=float(data.get("correct_attempts") or 0),
            consecutive_correct=int(data.get("consecutive_correct") or 0),
            last_reviewed_at=parse_timestamp(data.get("last_reviewed_at")),
            last_wrong_at=parse_timestamp(data.get("last_wrong_at")),
            mode_stats=mode_stats,
        )


@dataclass(frozen=True)
class FamiliarityLevel:
    """
    UI-facing classification of a card.

    Attributes:
        label: Display label ("New", "Learning", "Mastered").
        tier: Ordinal, 0 (New) to 2 (Mastered).
        css_class: Badge class used by the presentation layer.
    """

    label: str
    tier: int
    css_class: str


@dataclass
class Card:
    """
    A vocabulary card together with its review statistics.

    This is the aggregate persisted by a CardRepository.
    """

    id: str
    word: str
    meaning: str
    example: str = ""
    is_starred: bool = False
    created_at: datetime | None = None
    review_stats: ReviewStats = field(default_factory=ReviewStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "word_en": self.word,
            "meaning_zh": self.meaning,
            "example_en": self.example,
            "is_starred": self.is_starred,
            "created_at": format_timestamp(self.created_at),
            "review_stats": self.review_stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        return cls(
            id=str(data["id"]),
            word=str(data.get("word_en", "")).strip(),
            meaning=str(data.get("meaning_zh", "")).strip(),
            example=str(data.get("example_en") or "").strip(),
            is_starred=bool(data.get("is_starred", False)),
            created_at=parse_timestamp(data.get("created_at")),
            review_stats=ReviewStats.from_dict(data.get("review_stats")),
        )
