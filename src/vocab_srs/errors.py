from __future__ import annotations


class VocabularyError(RuntimeError):
    pass


class NotFoundError(VocabularyError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Vocabulary record {record_id} not found")
        self.record_id = record_id


class PersistenceError(VocabularyError):
    """Reading or writing the backing storage failed."""


class ValidationError(VocabularyError, ValueError):
    pass


__all__ = ["NotFoundError", "PersistenceError", "ValidationError", "VocabularyError"]
