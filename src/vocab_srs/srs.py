"""Ebbinghaus-style review intervals and the level transition for one review."""

from __future__ import annotations

from dataclasses import replace

from .models import VocabularyRecord

HOUR_MS = 60 * 60 * 1000

# 20 minutes, 1 hour, 9 hours, 1 day, 2 days, 6 days, 31 days.
REVIEW_INTERVALS_HOURS: tuple[float, ...] = (0.33, 1, 9, 24, 48, 144, 744)
MAX_LEVEL = len(REVIEW_INTERVALS_HOURS) - 1
MIN_LEVEL = 0


def clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(level, MAX_LEVEL))


def interval_ms(level: int) -> int:
    """Delay until the next review for a record sitting at ``level``."""

    return int(round(REVIEW_INTERVALS_HOURS[clamp_level(level)] * HOUR_MS))


def next_level(level: int, is_correct: bool) -> int:
    current = clamp_level(level)
    if is_correct:
        return min(current + 1, MAX_LEVEL)
    return max(current - 1, MIN_LEVEL)


def apply_review(record: VocabularyRecord, is_correct: bool, now: int) -> VocabularyRecord:
    """Return a copy of ``record`` with one review outcome applied.

    A correct answer moves the word one level up (capped at ``MAX_LEVEL``);
    a miss moves it one level down (floored at 0), so a single lapse does not
    wipe out earlier progress. The next due time is ``now`` plus the interval
    of the new level. The input record is left untouched.
    """

    level = next_level(record.level, is_correct)
    correct_count = record.correct_count + (1 if is_correct else 0)
    incorrect_count = record.incorrect_count + (0 if is_correct else 1)
    return replace(
        record,
        level=level,
        correct_count=correct_count,
        incorrect_count=incorrect_count,
        next_review_time=now + interval_ms(level),
        last_review_time=now,
    )


__all__ = [
    "HOUR_MS",
    "MAX_LEVEL",
    "MIN_LEVEL",
    "REVIEW_INTERVALS_HOURS",
    "apply_review",
    "clamp_level",
    "interval_ms",
    "next_level",
]
