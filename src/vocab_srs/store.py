"""Vocabulary store: the deduplicated, persisted set of learned words."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Any, Iterable, Mapping

from .backends import VocabularyBackend
from .errors import NotFoundError, ValidationError
from .models import (
    DEFAULT_CHINESE,
    EDITABLE_FIELDS,
    VocabularyRecord,
    WordCandidate,
    ensure_difficulty,
    ensure_source,
    normalize_word,
    now_ms,
)
from .srs import MAX_LEVEL, MIN_LEVEL, apply_review

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS: tuple[str, ...] = ("word", "created_at", "source")


def _text(candidate: Mapping[str, Any], key: str) -> str:
    value = candidate.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _new_id(timestamp: int) -> str:
    return f"{timestamp:x}-{uuid.uuid4().hex[:12]}"


def build_record(candidate: Mapping[str, Any], now: int) -> VocabularyRecord:
    """Materialise a fresh level-0 record from a candidate mapping."""

    word = _text(candidate, "word")
    if not word:
        raise ValidationError("word must not be empty")
    return VocabularyRecord(
        id=_new_id(now),
        word=word,
        chinese=_text(candidate, "chinese") or DEFAULT_CHINESE,
        phonetic=_text(candidate, "phonetic"),
        part_of_speech=_text(candidate, "partOfSpeech"),
        example=_text(candidate, "example"),
        translation=_text(candidate, "translation"),
        tips=_text(candidate, "tips"),
        difficulty=ensure_difficulty(candidate.get("difficulty")),
        level=0,
        correct_count=0,
        incorrect_count=0,
        next_review_time=now,
        last_review_time=None,
        created_at=now,
        source=ensure_source(candidate.get("source")),
    )


class VocabularyStore:
    """Owns the full record set and is the only writer to its backend.

    Each mutation reads the current set, builds a new one, hands the whole set
    to the backend and only then replaces the in-memory copy. When the backend
    raises ``PersistenceError`` the store keeps its previous state.
    """

    def __init__(self, backend: VocabularyBackend) -> None:
        self._backend = backend
        self._lock = threading.RLock()
        self._records: list[VocabularyRecord] = []
        self._by_word: dict[str, str] = {}
        self.reload()

    def reload(self) -> None:
        with self._lock:
            records = self._backend.load()
            self._records = records
            self._by_word = {normalize_word(record.word): record.id for record in records}
            logger.debug("Loaded %d vocabulary records", len(records))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return any(record.id == record_id for record in self._records)

    def _index_of(self, record_id: str) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    def _commit(self, records: list[VocabularyRecord]) -> None:
        self._backend.save(records)
        self._records = records
        self._by_word = {normalize_word(record.word): record.id for record in records}

    def get_all(self) -> list[VocabularyRecord]:
        with self._lock:
            return [replace(record) for record in self._records]

    def get_by_id(self, record_id: str) -> VocabularyRecord | None:
        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                return None
            return replace(self._records[index])

    def find_by_word(self, word: str) -> VocabularyRecord | None:
        with self._lock:
            record_id = self._by_word.get(normalize_word(word))
        if record_id is None:
            return None
        return self.get_by_id(record_id)

    def add_words(
        self, candidates: Iterable[WordCandidate | Mapping[str, Any]], *, now: int | None = None
    ) -> int:
        """Insert candidates whose word is not stored yet; return how many were added.

        Matching is case-insensitive, against stored words and earlier
        candidates in the same batch. Duplicates and blank words are dropped;
        an existing record is never merged or overwritten.
        """

        timestamp = now if now is not None else now_ms()
        with self._lock:
            seen = dict(self._by_word)
            fresh: list[VocabularyRecord] = []
            for candidate in candidates:
                key = normalize_word(_text(candidate, "word"))
                if not key:
                    logger.debug("Skipping candidate with blank word")
                    continue
                if key in seen:
                    continue
                record = build_record(candidate, timestamp)
                seen[key] = record.id
                fresh.append(record)
            if not fresh:
                return 0
            self._commit([*self._records, *fresh])
        logger.info("Added %d vocabulary words", len(fresh))
        return len(fresh)

    def add_single(self, candidate: WordCandidate | Mapping[str, Any], *, now: int | None = None) -> int:
        """Manually add one word. Returns 1 if inserted, 0 if it already exists."""

        if not _text(candidate, "word"):
            raise ValidationError("word must not be empty")
        return self.add_words([{**candidate, "source": "manual"}], now=now)

    def update(self, record: VocabularyRecord) -> VocabularyRecord:
        """Replace the stored record with the same id.

        Identity fields (word, creation time, source) must match the stored
        record, and level and counters must stay within their valid ranges.
        """

        if not MIN_LEVEL <= record.level <= MAX_LEVEL:
            raise ValidationError(f"level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {record.level}")
        if record.correct_count < 0 or record.incorrect_count < 0:
            raise ValidationError("review counters must not be negative")
        with self._lock:
            index = self._index_of(record.id)
            if index is None:
                raise NotFoundError(record.id)
            stored = self._records[index]
            for name in _IMMUTABLE_FIELDS:
                if getattr(record, name) != getattr(stored, name):
                    raise ValidationError(f"{name} cannot be changed")
            records = list(self._records)
            records[index] = replace(record)
            self._commit(records)
        return replace(record)

    def review(self, record_id: str, is_correct: bool, *, now: int | None = None) -> VocabularyRecord:
        """Apply one review outcome to a record and persist it.

        Callers must submit exactly one outcome per presented review; a repeated
        call applies the transition again.
        """

        timestamp = now if now is not None else now_ms()
        with self._lock:
            current = self.get_by_id(record_id)
            if current is None:
                raise NotFoundError(record_id)
            updated = apply_review(current, is_correct, timestamp)
            self.update(updated)
        logger.debug(
            "Reviewed %r (%s): level %d -> %d",
            updated.word,
            "correct" if is_correct else "incorrect",
            current.level,
            updated.level,
        )
        return updated

    def edit(self, record_id: str, **changes: Any) -> VocabularyRecord:
        """Change descriptive metadata of a record (meaning, example, tips...)."""

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        cleaned: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "difficulty":
                cleaned[key] = ensure_difficulty(value)
            else:
                cleaned[key] = "" if value is None else str(value).strip()
        with self._lock:
            current = self.get_by_id(record_id)
            if current is None:
                raise NotFoundError(record_id)
            return self.update(replace(current, **cleaned))

    def delete(self, record_id: str) -> bool:
        """Remove a record. Unknown ids are ignored and nothing is written."""

        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                return False
            removed = self._records[index]
            records = [*self._records[:index], *self._records[index + 1 :]]
            self._commit(records)
        logger.info("Deleted vocabulary word %r", removed.word)
        return True


__all__ = ["VocabularyStore", "build_record"]
