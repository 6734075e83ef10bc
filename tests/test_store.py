"""Tests for store.py: dedup, CRUD, review persistence and failure handling."""

from __future__ import annotations

import threading
from dataclasses import replace

import pytest

from vocab_srs.backends import MemoryBackend
from vocab_srs.errors import NotFoundError, PersistenceError, ValidationError
from vocab_srs.models import DEFAULT_CHINESE
from vocab_srs.srs import HOUR_MS, MAX_LEVEL
from vocab_srs.store import VocabularyStore

NOW = 1_718_000_000_000


class FlakyBackend(MemoryBackend):
    """Memory backend whose writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False
        self.saves = 0

    def save(self, records):
        if self.fail:
            raise PersistenceError("disk full")
        self.saves += 1
        super().save(records)


@pytest.fixture
def backend():
    return FlakyBackend()


@pytest.fixture
def store(backend):
    return VocabularyStore(backend)


class TestAddWords:
    def test_new_word_is_immediately_due(self, store):
        inserted = store.add_words([{"word": "resilient", "chinese": "有弹性的"}], now=NOW)

        assert inserted == 1
        records = store.get_all()
        assert len(records) == 1
        record = records[0]
        assert record.word == "resilient"
        assert record.chinese == "有弹性的"
        assert record.level == 0
        assert record.correct_count == 0
        assert record.incorrect_count == 0
        assert record.next_review_time == NOW
        assert record.created_at == NOW
        assert record.last_review_time is None
        assert record.source == "conversation"
        assert record.difficulty == "medium"

    def test_duplicate_is_dropped_case_insensitively(self, store):
        store.add_words([{"word": "Resilient", "chinese": "有弹性的"}], now=NOW)

        inserted = store.add_words([{"word": "RESILIENT", "chinese": "other"}], now=NOW + 1)

        assert inserted == 0
        assert len(store) == 1
        assert store.get_all()[0].chinese == "有弹性的"
        assert store.get_all()[0].word == "Resilient"

    def test_duplicates_within_one_batch_keep_first(self, store):
        inserted = store.add_words(
            [{"word": "apple", "chinese": "苹果"}, {"word": "Apple"}, {"word": "pear"}],
            now=NOW,
        )

        assert inserted == 2
        assert [record.word for record in store.get_all()] == ["apple", "pear"]

    def test_blank_words_are_skipped(self, store):
        assert store.add_words([{"word": "   "}, {"word": ""}], now=NOW) == 0
        assert len(store) == 0

    def test_defaults_fill_missing_metadata(self, store):
        store.add_words([{"word": " serendipity "}], now=NOW)

        record = store.get_all()[0]
        assert record.word == "serendipity"
        assert record.chinese == DEFAULT_CHINESE
        assert record.phonetic == ""
        assert record.part_of_speech == ""

    def test_ids_are_unique(self, store):
        store.add_words([{"word": f"word{i}"} for i in range(50)], now=NOW)

        ids = {record.id for record in store.get_all()}
        assert len(ids) == 50

    def test_invalid_difficulty_rejects_whole_batch(self, store, backend):
        with pytest.raises(ValidationError):
            store.add_words([{"word": "ok"}, {"word": "bad", "difficulty": "extreme"}], now=NOW)

        assert len(store) == 0
        assert backend.saves == 0

    def test_no_write_when_nothing_inserted(self, store, backend):
        store.add_words([{"word": "one"}], now=NOW)
        saves = backend.saves

        store.add_words([{"word": "ONE"}], now=NOW)

        assert backend.saves == saves

    def test_insertion_order_is_preserved(self, store):
        store.add_words([{"word": "b"}, {"word": "a"}], now=NOW)
        store.add_words([{"word": "c"}], now=NOW - 10)

        assert [record.word for record in store.get_all()] == ["b", "a", "c"]


class TestAddSingle:
    def test_marks_source_manual(self, store):
        assert store.add_single({"word": "ephemeral", "source": "conversation"}, now=NOW) == 1

        assert store.get_all()[0].source == "manual"

    def test_returns_zero_for_existing_word(self, store):
        store.add_words([{"word": "ephemeral"}], now=NOW)

        assert store.add_single({"word": "Ephemeral"}, now=NOW) == 0

    def test_blank_word_raises(self, store):
        with pytest.raises(ValidationError):
            store.add_single({"word": "  "})


class TestLookupAndDelete:
    def test_get_by_id_and_find_by_word(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]

        assert store.get_by_id(record.id) == record
        assert store.find_by_word("LUCID") == record
        assert store.get_by_id("missing") is None
        assert store.find_by_word("opaque") is None

    def test_get_all_returns_copies(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)

        store.get_all()[0].level = 6

        assert store.get_all()[0].level == 0

    def test_delete_removes_record(self, store):
        store.add_words([{"word": "lucid"}, {"word": "vivid"}], now=NOW)
        record = store.find_by_word("lucid")

        assert store.delete(record.id) is True
        assert record.id not in store
        assert [r.word for r in store.get_all()] == ["vivid"]
        assert store.add_words([{"word": "lucid"}], now=NOW) == 1

    def test_delete_unknown_id_is_noop(self, store, backend):
        store.add_words([{"word": "lucid"}], now=NOW)
        before = store.get_all()
        saves = backend.saves

        assert store.delete("does-not-exist") is False
        assert store.get_all() == before
        assert backend.saves == saves


class TestReviewAndUpdate:
    def test_review_persists_new_schedule(self, store, backend):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]
        t = NOW + HOUR_MS

        updated = store.review(record.id, True, now=t)

        assert updated.level == 1
        assert updated.next_review_time == t + HOUR_MS
        assert store.get_by_id(record.id) == updated
        assert backend.load()[0] == updated

    def test_review_counts_every_event(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record_id = store.get_all()[0].id

        for step, outcome in enumerate([True, True, False, True, False]):
            store.review(record_id, outcome, now=NOW + step)

        record = store.get_by_id(record_id)
        assert record.correct_count == 3
        assert record.incorrect_count == 2
        assert record.level == 1

    def test_review_unknown_id_raises(self, store):
        with pytest.raises(NotFoundError):
            store.review("nope", True)

    def test_update_unknown_id_raises(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]
        store.delete(record.id)

        with pytest.raises(NotFoundError):
            store.update(record)

    @pytest.mark.parametrize(
        "changes",
        [{"level": 42}, {"level": -1}, {"correct_count": -1}, {"incorrect_count": -3}],
    )
    def test_update_rejects_out_of_range_schedule(self, store, backend, changes):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]
        saves = backend.saves

        with pytest.raises(ValidationError):
            store.update(replace(record, **changes))

        assert store.get_by_id(record.id) == record
        assert backend.saves == saves

    @pytest.mark.parametrize(
        "changes",
        [{"word": "VIVID"}, {"word": "Lucid"}, {"created_at": NOW + 1}, {"source": "manual"}],
    )
    def test_update_rejects_identity_changes(self, store, changes):
        store.add_words([{"word": "lucid"}, {"word": "vivid"}], now=NOW)
        record = store.find_by_word("lucid")

        with pytest.raises(ValidationError):
            store.update(replace(record, **changes))

        assert store.get_by_id(record.id) == record
        assert store.find_by_word("vivid").word == "vivid"

    def test_update_accepts_schedule_changes(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]

        updated = store.update(replace(record, level=6, next_review_time=NOW + 5))

        assert store.get_by_id(record.id) == updated

    def test_concurrent_reviews_of_same_word_are_not_lost(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record_id = store.get_all()[0].id
        rounds = 200

        def worker():
            for _ in range(rounds):
                store.review(record_id, True)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        record = store.get_by_id(record_id)
        assert record.correct_count == 2 * rounds
        assert record.incorrect_count == 0
        assert record.level == MAX_LEVEL

    def test_edit_changes_metadata_only(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]

        edited = store.edit(record.id, chinese="清晰的", difficulty="HARD", tips=" think clear ")

        assert edited.chinese == "清晰的"
        assert edited.difficulty == "hard"
        assert edited.tips == "think clear"
        assert edited.level == record.level
        assert store.get_by_id(record.id) == edited

    def test_edit_rejects_schedule_fields(self, store):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]

        with pytest.raises(ValidationError):
            store.edit(record.id, level=6)
        with pytest.raises(NotFoundError):
            store.edit("missing", chinese="x")


class TestPersistenceFailure:
    def test_failed_add_leaves_store_unchanged(self, store, backend):
        store.add_words([{"word": "lucid"}], now=NOW)
        backend.fail = True

        with pytest.raises(PersistenceError):
            store.add_words([{"word": "vivid"}], now=NOW)

        assert [r.word for r in store.get_all()] == ["lucid"]
        assert store.find_by_word("vivid") is None

    def test_failed_review_leaves_record_unchanged(self, store, backend):
        store.add_words([{"word": "lucid"}], now=NOW)
        before = store.get_all()[0]
        backend.fail = True

        with pytest.raises(PersistenceError):
            store.review(before.id, True, now=NOW + 1)

        assert store.get_by_id(before.id) == before

    def test_failed_delete_keeps_record(self, store, backend):
        store.add_words([{"word": "lucid"}], now=NOW)
        record = store.get_all()[0]
        backend.fail = True

        with pytest.raises(PersistenceError):
            store.delete(record.id)

        assert record.id in store

    def test_reload_picks_up_backend_state(self, backend):
        first = VocabularyStore(backend)
        first.add_words([{"word": "lucid"}], now=NOW)

        second = VocabularyStore(backend)

        assert second.get_all() == first.get_all()
