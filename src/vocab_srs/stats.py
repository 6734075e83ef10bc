"""Read-only views over the record set: due queues, counters and labels."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from .models import VocabularyRecord
from .srs import MAX_LEVEL

MASTERED_LEVEL = 5
MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

LEVEL_LABELS: tuple[str, ...] = (
    "new",
    "first memory",
    "short-term",
    "memorizing",
    "familiarizing",
    "basically mastered",
    "proficient",
    "fully mastered",
)
UNKNOWN_LEVEL_LABEL = "unknown"


@dataclass(slots=True)
class VocabularyStats:
    total: int
    mastered: int
    learning: int
    new: int
    due_today: int
    total_correct: int
    total_incorrect: int
    accuracy: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "mastered": self.mastered,
            "learning": self.learning,
            "new": self.new,
            "dueToday": self.due_today,
            "totalCorrect": self.total_correct,
            "totalIncorrect": self.total_incorrect,
            "accuracy": self.accuracy,
        }


def due_for_review(records: Sequence[VocabularyRecord], now: int) -> list[VocabularyRecord]:
    """Records due at ``now``, earliest first; equal due times keep store order."""

    due = [record for record in records if record.next_review_time <= now]
    return sorted(due, key=lambda record: record.next_review_time)


def end_of_local_day(now: int) -> int:
    """Epoch ms of 23:59:59.999 local time on the calendar day containing ``now``."""

    # Naive local time, so the zone offset is resolved at the cutoff itself.
    end = datetime.fromtimestamp(now / 1000).replace(hour=23, minute=59, second=59, microsecond=999000)
    return int(round(end.timestamp() * 1000))


def due_today_count(records: Sequence[VocabularyRecord], now: int) -> int:
    """Count of records due any time before the end of today.

    Unlike :func:`due_for_review` this includes words that only become due
    later today; it feeds badge counts rather than the review queue.
    """

    cutoff = end_of_local_day(now)
    return sum(1 for record in records if record.next_review_time <= cutoff)


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def vocabulary_stats(records: Sequence[VocabularyRecord], now: int) -> VocabularyStats:
    total_correct = sum(record.correct_count for record in records)
    total_incorrect = sum(record.incorrect_count for record in records)
    return VocabularyStats(
        total=len(records),
        mastered=sum(1 for record in records if record.level >= MASTERED_LEVEL),
        learning=sum(1 for record in records if 0 < record.level < MASTERED_LEVEL),
        new=sum(1 for record in records if record.level == 0),
        due_today=due_today_count(records, now),
        total_correct=total_correct,
        total_incorrect=total_incorrect,
        accuracy=_percent(total_correct, total_correct + total_incorrect),
    )


def level_breakdown(records: Sequence[VocabularyRecord]) -> dict[int, int]:
    counts = {level: 0 for level in range(MAX_LEVEL + 1)}
    for record in records:
        if record.level in counts:
            counts[record.level] += 1
    return counts


def level_description(level: int) -> str:
    if isinstance(level, int) and 0 <= level < len(LEVEL_LABELS):
        return LEVEL_LABELS[level]
    return UNKNOWN_LEVEL_LABEL


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def next_review_description(next_review_time: int, now: int) -> str:
    """Relative label such as ``"now"``, ``"12 minutes"``, ``"3 hours"`` or ``"6 days"``."""

    diff = next_review_time - now
    if diff <= 0:
        return "now"
    if diff < HOUR_MS:
        return _plural(diff // MINUTE_MS, "minute")
    if diff < DAY_MS:
        return _plural(diff // HOUR_MS, "hour")
    return _plural(diff // DAY_MS, "day")


__all__ = [
    "LEVEL_LABELS",
    "MASTERED_LEVEL",
    "UNKNOWN_LEVEL_LABEL",
    "VocabularyStats",
    "due_for_review",
    "due_today_count",
    "end_of_local_day",
    "level_breakdown",
    "level_description",
    "next_review_description",
    "vocabulary_stats",
]
