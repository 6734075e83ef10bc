"""Spaced-repetition scheduling for learned vocabulary."""

from .backends import JsonFileBackend, MemoryBackend, VocabularyBackend
from .db import SqliteBackend
from .errors import NotFoundError, PersistenceError, ValidationError, VocabularyError
from .models import VocabularyRecord, WordCandidate
from .srs import REVIEW_INTERVALS_HOURS, apply_review
from .stats import (
    VocabularyStats,
    due_for_review,
    due_today_count,
    level_description,
    next_review_description,
    vocabulary_stats,
)
from .store import VocabularyStore

__all__ = [
    "JsonFileBackend",
    "MemoryBackend",
    "NotFoundError",
    "PersistenceError",
    "REVIEW_INTERVALS_HOURS",
    "SqliteBackend",
    "ValidationError",
    "VocabularyBackend",
    "VocabularyError",
    "VocabularyRecord",
    "VocabularyStats",
    "VocabularyStore",
    "WordCandidate",
    "apply_review",
    "due_for_review",
    "due_today_count",
    "level_description",
    "next_review_description",
    "vocabulary_stats",
]
