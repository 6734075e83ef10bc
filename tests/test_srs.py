from __future__ import annotations

import itertools
from dataclasses import replace

import pytest

from vocab_srs.srs import (
    HOUR_MS,
    MAX_LEVEL,
    REVIEW_INTERVALS_HOURS,
    apply_review,
    interval_ms,
    next_level,
)
from vocab_srs.store import build_record

NOW = 1_718_000_000_000


def _record(level: int = 0):
    record = build_record({"word": "resilient", "chinese": "有弹性的"}, NOW)
    return replace(record, level=level)


def test_interval_table_matches_forgetting_curve():
    assert REVIEW_INTERVALS_HOURS == (0.33, 1, 9, 24, 48, 144, 744)
    assert MAX_LEVEL == 6
    assert interval_ms(0) == 1_188_000
    assert interval_ms(3) == 24 * HOUR_MS
    assert interval_ms(6) == 744 * HOUR_MS


def test_correct_review_from_level_two_moves_to_one_day():
    record = _record(level=2)
    t = NOW + 5 * HOUR_MS

    updated = apply_review(record, True, t)

    assert updated.level == 3
    assert updated.next_review_time == t + 24 * HOUR_MS
    assert updated.last_review_time == t
    assert updated.correct_count == 1
    assert updated.incorrect_count == 0


def test_incorrect_review_at_floor_keeps_level_zero():
    record = _record(level=0)
    t = NOW + 60_000

    updated = apply_review(record, False, t)

    assert updated.level == 0
    assert updated.next_review_time == t + round(0.33 * HOUR_MS)
    assert updated.incorrect_count == 1


def test_incorrect_review_regresses_one_level_only():
    record = _record(level=5)

    updated = apply_review(record, False, NOW)

    assert updated.level == 4
    assert updated.next_review_time == NOW + 48 * HOUR_MS


def test_correct_review_at_ceiling_stays_at_max_interval():
    record = _record(level=MAX_LEVEL)

    updated = apply_review(record, True, NOW)

    assert updated.level == MAX_LEVEL
    assert updated.next_review_time == NOW + 744 * HOUR_MS


@pytest.mark.parametrize("level", range(MAX_LEVEL + 1))
def test_next_due_time_uses_interval_of_new_level(level):
    record = _record(level=level)

    correct = apply_review(record, True, NOW)
    incorrect = apply_review(record, False, NOW)

    assert correct.next_review_time == NOW + interval_ms(min(level + 1, MAX_LEVEL))
    assert incorrect.next_review_time == NOW + interval_ms(max(level - 1, 0))


def test_apply_review_does_not_mutate_input_or_other_fields():
    record = _record(level=1)

    updated = apply_review(record, True, NOW)

    assert record.level == 1
    assert record.correct_count == 0
    assert updated.id == record.id
    assert updated.word == record.word
    assert updated.chinese == record.chinese
    assert updated.created_at == record.created_at
    assert updated.source == record.source


def test_level_stays_in_bounds_and_counters_track_every_review():
    for start in range(MAX_LEVEL + 1):
        for outcomes in itertools.product((True, False), repeat=6):
            record = _record(level=start)
            for step, outcome in enumerate(outcomes, start=1):
                record = apply_review(record, outcome, NOW + step)
                assert 0 <= record.level <= MAX_LEVEL
                assert record.correct_count + record.incorrect_count == step


def test_next_level_clamps_out_of_range_input():
    assert next_level(-3, False) == 0
    assert next_level(42, True) == MAX_LEVEL
    assert next_level(42, False) == MAX_LEVEL - 1
