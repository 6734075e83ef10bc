"""Storage backends for the vocabulary store.

Every backend persists the whole record set as one unit: ``save`` either
replaces everything or leaves the previous state intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Protocol

from .errors import PersistenceError
from .models import VocabularyRecord, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)


class VocabularyBackend(Protocol):
    """Whole-set persistence for vocabulary records."""

    def load(self) -> list[VocabularyRecord]:
        """Return every stored record in insertion order."""
        ...

    def save(self, records: Iterable[VocabularyRecord]) -> None:
        """Atomically replace the stored set. Raises PersistenceError on failure."""
        ...


class MemoryBackend:
    """Keeps records in process memory; nothing survives a restart."""

    def __init__(self, records: Iterable[VocabularyRecord] = ()) -> None:
        self._records = [replace(record) for record in records]

    def load(self) -> list[VocabularyRecord]:
        return [replace(record) for record in self._records]

    def save(self, records: Iterable[VocabularyRecord]) -> None:
        self._records = [replace(record) for record in records]


class JsonFileBackend:
    """Stores the record set as one JSON array in a file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[VocabularyRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Failed to read vocabulary file %s: %s", self.path, exc)
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc
        if not isinstance(raw, list):
            raise PersistenceError(f"Expected a JSON array in {self.path}")
        try:
            return [record_from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Malformed vocabulary entry in {self.path}: {exc}") from exc

    def save(self, records: Iterable[VocabularyRecord]) -> None:
        payload = json.dumps(
            [record_to_dict(record) for record in records],
            ensure_ascii=False,
            indent=2,
        )
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            logger.error("Failed to write vocabulary file %s: %s", self.path, exc)
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


__all__ = ["JsonFileBackend", "MemoryBackend", "VocabularyBackend"]
