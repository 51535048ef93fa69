"""Centralized constants for vocabsrs.

The interval ladder and the mastery bar are business rules; every layer
imports them from here so the test suite can assert against them directly.
"""

# ---------- Interval Ladder ----------
INTERVAL_LADDER = (0, 1, 3, 7, 14, 30)
FAIL_INTERVAL_DAYS = 1

# ---------- Mastery Bar ----------
MASTERY_MIN_STREAK = 3
MASTERY_MIN_INTERVAL_DAYS = 14

# ---------- Legacy Familiarity ----------
LEGACY_MASTERED_THRESHOLD = 0.75
LEGACY_LEARNING_THRESHOLD = 0.4
LEGACY_STREAK_BONUS_STEP = 0.1
LEGACY_STREAK_BONUS_CAP = 0.3

# Progress-bar scores for records that carry a state
STATE_SCORES = {"NEW": 0.1, "LEARNING": 0.5, "MASTERED": 1.0}

# ---------- Mode Registry ----------
MODE_KEYS = {
    1: "flip_en",
    2: "flip_zh",
    3: "spelling",
    4: "fill_blank",
}
DEFAULT_MODE_WEIGHTS = {
    "flip_en": 0.5,
    "flip_zh": 0.5,
    "spelling": 1.0,
    "fill_blank": 1.0,
}
FALLBACK_WEIGHT = 1.0

# ---------- Dashboard ----------
DEMOTION_WINDOW_DAYS = 30

# ---------- Sessions ----------
DEFAULT_SESSION_LIMIT = 10
