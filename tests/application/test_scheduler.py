"""Tests for the review state machine."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from vocabsrs.application.familiarity import classify
from vocabsrs.application.scheduler import SchedulerEngine, meets_mastery_bar, next_interval
from vocabsrs.domain.constants import (
    INTERVAL_LADDER,
    MASTERY_MIN_INTERVAL_DAYS,
    MASTERY_MIN_STREAK,
)
from vocabsrs.domain.review.models import ModeTally, ReviewState, ReviewStats

T0 = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


def test_business_rule_constants():
    assert INTERVAL_LADDER == (0, 1, 3, 7, 14, 30)
    assert MASTERY_MIN_STREAK == 3
    assert MASTERY_MIN_INTERVAL_DAYS == 14


# --- Ladder ---


@pytest.mark.parametrize(
    "current,expected",
    [(0, 1), (1, 3), (3, 7), (7, 14), (14, 30), (30, 30)],
)
def test_next_interval_walks_ladder(current, expected):
    assert next_interval(current) == expected


@pytest.mark.parametrize("corrupt", [2, 5, 100, -4])
def test_next_interval_off_ladder_restarts_at_bottom(corrupt):
    assert next_interval(corrupt) == 1


def test_mastery_bar():
    assert meets_mastery_bar(3, 14)
    assert not meets_mastery_bar(2, 30)
    assert not meets_mastery_bar(10, 7)


# --- Due check ---


def test_never_scheduled_is_due(engine):
    assert engine.is_due(None)
    assert engine.is_due(ReviewStats())


def test_due_ignores_time_of_day(engine, clock):
    stats = ReviewStats(next_review_date=datetime(2024, 3, 11, 18, 0, tzinfo=timezone.utc))

    clock.now = datetime(2024, 3, 10, 23, 59, tzinfo=timezone.utc)
    assert not engine.is_due(stats)

    clock.now = datetime(2024, 3, 11, 0, 0, 1, tzinfo=timezone.utc)
    assert engine.is_due(stats)


def test_overdue_is_due(engine):
    stats = ReviewStats(next_review_date=T0 - timedelta(days=5))
    assert engine.is_due(stats)


# --- PASS sequences ---


def _passes(engine, clock, n, stats=None):
    history = []
    for _ in range(n):
        stats = engine.advance(stats, True, is_due=True)
        history.append(stats)
        clock.advance(days=stats.interval_days)
    return history


def test_three_passes_from_new_stay_learning(engine, clock):
    history = _passes(engine, clock, 3)

    assert [s.interval_days for s in history] == [1, 3, 7]
    assert history[-1].success_streak == 3
    assert history[-1].state is ReviewState.LEARNING
    assert history[-1].mastered_at is None


def test_fourth_pass_promotes_to_mastered(engine, clock):
    history = _passes(engine, clock, 5)

    assert [s.interval_days for s in history] == [1, 3, 7, 14, 30]
    fourth, fifth = history[3], history[4]
    assert fourth.state is ReviewState.MASTERED
    assert fourth.mastered_at is not None
    assert fifth.state is ReviewState.MASTERED
    # Stamped only on entry
    assert fifth.mastered_at == fourth.mastered_at


def test_first_pass_leaves_new(engine):
    stats = engine.advance(ReviewStats(), True, is_due=True)
    assert stats.state is ReviewState.LEARNING
    assert stats.success_streak == 1
    assert stats.interval_days == 1
    assert stats.next_review_date == T0 + timedelta(days=1)


def test_pass_at_ceiling_stays_at_thirty(engine):
    stats = ReviewStats(state=ReviewState.MASTERED, success_streak=6, interval_days=30)
    result = engine.advance(stats, True, is_due=True)
    assert result.interval_days == 30
    assert result.next_review_date == T0 + timedelta(days=30)


def test_mastered_pass_with_low_streak_is_not_demoted(engine):
    stats = ReviewStats(state=ReviewState.MASTERED, success_streak=0, interval_days=1)
    result = engine.advance(stats, True, is_due=True)
    assert result.state is ReviewState.MASTERED
    assert result.interval_days == 3
    assert result.success_streak == 1


def test_corrupt_interval_self_heals(engine):
    stats = ReviewStats(state=ReviewState.LEARNING, success_streak=1, interval_days=5)
    assert engine.advance(stats, True, is_due=True).interval_days == 1


def test_pass_when_streak_met_but_interval_low_stays_learning(engine):
    stats = ReviewStats(state=ReviewState.LEARNING, success_streak=5, interval_days=3)
    result = engine.advance(stats, True, is_due=True)
    assert result.interval_days == 7
    assert result.state is ReviewState.LEARNING


# --- FAIL ---


def test_fail_on_new_becomes_learning(engine):
    result = engine.advance(ReviewStats(), False, is_due=True)
    assert result.state is ReviewState.LEARNING
    assert result.success_streak == 0
    assert result.interval_days == 1
    assert result.demotions == ()


def test_fail_on_mastered_demotes(engine):
    stats = ReviewStats(
        state=ReviewState.MASTERED,
        success_streak=5,
        interval_days=30,
        mastered_at=T0 - timedelta(days=60),
        demotions=(T0 - timedelta(days=90),),
    )
    result = engine.advance(stats, False, is_due=True)

    assert result.state is ReviewState.LEARNING
    assert result.success_streak == 0
    assert result.interval_days == 1
    assert len(result.demotions) == len(stats.demotions) + 1
    assert result.demotions[-1] == T0
    assert result.next_review_date == T0 + timedelta(days=1)
    # History is kept
    assert result.mastered_at == stats.mastered_at


def test_repromotion_requires_bar_again(engine, clock):
    mastered = _passes(engine, clock, 4)[-1]
    assert mastered.state is ReviewState.MASTERED

    demoted = engine.advance(mastered, False, is_due=True)
    assert demoted.state is ReviewState.LEARNING

    history = _passes(engine, clock, 3, demoted)
    # 1 -> 3 -> 7 -> 14; bar met again on the third pass
    assert [s.interval_days for s in history] == [3, 7, 14]
    assert [s.state for s in history] == [
        ReviewState.LEARNING,
        ReviewState.LEARNING,
        ReviewState.MASTERED,
    ]
    assert history[-1].mastered_at > mastered.mastered_at


# --- Cramming ---


@pytest.mark.parametrize("outcome", [True, False])
def test_not_due_leaves_schedule_untouched(engine, outcome):
    stats = ReviewStats(
        state=ReviewState.LEARNING,
        success_streak=2,
        interval_days=3,
        next_review_date=T0 + timedelta(days=2),
    )
    result = engine.advance(stats, outcome, is_due=False, mode_key="spelling")

    assert result.state == stats.state
    assert result.success_streak == stats.success_streak
    assert result.interval_days == stats.interval_days
    assert result.next_review_date == stats.next_review_date
    assert result.total_attempts == 1.0
    assert result.mode_stats["spelling"].attempts == 1
    assert classify(result) == classify(stats)


def test_due_is_computed_when_omitted(engine):
    early = ReviewStats(
        state=ReviewState.LEARNING,
        success_streak=1,
        interval_days=1,
        next_review_date=T0 + timedelta(days=1),
    )
    assert engine.advance(early, True).success_streak == 1

    on_time = replace(early, next_review_date=T0)
    assert engine.advance(on_time, True).success_streak == 2


def test_mastered_fail_while_cramming_does_not_demote(engine):
    stats = ReviewStats(
        state=ReviewState.MASTERED,
        success_streak=4,
        interval_days=14,
        next_review_date=T0 + timedelta(days=10),
    )
    result = engine.advance(stats, False)
    assert result.state is ReviewState.MASTERED
    assert result.demotions == ()
    assert result.consecutive_correct == 0
    assert result.last_wrong_at == T0


# --- Usage statistics ---


def test_attempt_counters_use_mode_weight(engine):
    stats = engine.advance(None, True, is_due=True, mode_key="flip_en")
    stats = engine.advance(stats, False, is_due=False, mode_key="spelling")

    assert stats.total_attempts == pytest.approx(1.5)
    assert stats.correct_attempts == pytest.approx(0.5)
    assert stats.consecutive_correct == 0
    assert stats.mode_stats["flip_en"] == ModeTally(attempts=1, correct=1)
    assert stats.mode_stats["spelling"] == ModeTally(attempts=1, correct=0)
    assert stats.last_reviewed_at == T0
    assert stats.last_wrong_at == T0


def test_weight_does_not_affect_schedule(engine):
    light = engine.advance(None, True, is_due=True, weight=0.1)
    heavy = engine.advance(None, True, is_due=True, weight=5.0)
    assert light.interval_days == heavy.interval_days
    assert light.state == heavy.state


def test_injected_weight_table(clock):
    engine = SchedulerEngine(mode_weights={"listening": 2.0}, clock=clock)
    stats = engine.advance(None, True, is_due=True, mode_key="listening")
    assert stats.total_attempts == 2.0
    # Unknown to the default tally set: counters left alone
    assert "listening" not in stats.mode_stats


def test_unknown_mode_is_tolerated(engine):
    before = ReviewStats()
    result = engine.advance(before, True, is_due=True, mode_key="handwriting")
    assert result.mode_stats == before.mode_stats
    assert result.total_attempts == 1.0
    assert result.consecutive_correct == 1


def test_input_is_not_mutated(engine):
    stats = ReviewStats(state=ReviewState.MASTERED, success_streak=3, interval_days=14)
    snapshot = stats.to_dict()
    engine.advance(stats, False, is_due=True, mode_key="flip_en")
    assert stats.to_dict() == snapshot


def test_legacy_record_keeps_accuracy_level_on_pass(engine):
    legacy = ReviewStats.from_dict({"total_attempts": 10, "correct_attempts": 9})
    assert legacy.state is None
    assert classify(legacy).label == "Mastered"

    result = engine.advance(legacy, True, is_due=True)

    assert result.state is None
    assert result.success_streak == 1
    assert result.interval_days == 1
    assert classify(result).label == "Mastered"


def test_legacy_record_fail_becomes_learning(engine):
    legacy = ReviewStats(state=None, total_attempts=4, correct_attempts=3)
    result = engine.advance(legacy, False, is_due=True)
    assert result.state is ReviewState.LEARNING
    assert result.demotions == ()


def test_legacy_record_promotes_when_bar_met(engine):
    legacy = ReviewStats(state=None, success_streak=2, interval_days=7)
    result = engine.advance(legacy, True, is_due=True)
    assert result.state is ReviewState.MASTERED
    assert result.mastered_at == T0
