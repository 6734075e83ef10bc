"""SQLite persistence for vocabulary records."""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from .errors import PersistenceError
from .models import VocabularyRecord, ensure_difficulty, ensure_source

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "vocab_srs.db"
DB_PATH = Path(os.environ.get("VOCAB_SRS_DB_PATH", DEFAULT_DB_PATH))

_COLUMNS: tuple[str, ...] = (
    "id",
    "word",
    "chinese",
    "phonetic",
    "part_of_speech",
    "example",
    "translation",
    "tips",
    "difficulty",
    "level",
    "correct_count",
    "incorrect_count",
    "next_review_time",
    "last_review_time",
    "created_at",
    "source",
)


def _open_connection(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    connection.row_factory = sqlite3.Row
    return connection


@contextmanager
def connect(path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Yield a connection that commits on success and rolls back on error."""

    connection = _open_connection(path or DB_PATH)
    try:
        yield connection
        connection.commit()
    except BaseException:
        connection.rollback()
        raise
    finally:
        connection.close()


def init_db(path: Path | None = None) -> None:
    """Create the vocabulary table if it is missing."""

    with connect(path) as connection:
        _create_tables(connection)


def _create_tables(connection: sqlite3.Connection) -> None:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS vocabulary (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            word TEXT NOT NULL,
            chinese TEXT NOT NULL DEFAULT '',
            phonetic TEXT NOT NULL DEFAULT '',
            part_of_speech TEXT NOT NULL DEFAULT '',
            example TEXT NOT NULL DEFAULT '',
            translation TEXT NOT NULL DEFAULT '',
            tips TEXT NOT NULL DEFAULT '',
            difficulty TEXT NOT NULL DEFAULT 'medium',
            level INTEGER NOT NULL DEFAULT 0,
            correct_count INTEGER NOT NULL DEFAULT 0,
            incorrect_count INTEGER NOT NULL DEFAULT 0,
            next_review_time INTEGER NOT NULL,
            last_review_time INTEGER,
            created_at INTEGER NOT NULL,
            source TEXT NOT NULL DEFAULT 'conversation',
            CHECK(difficulty IN ('easy','medium','hard')),
            CHECK(source IN ('conversation','manual'))
        )
        """
    )
    connection.execute(
        "CREATE INDEX IF NOT EXISTS idx_vocabulary_next_review ON vocabulary(next_review_time)"
    )


def _row_to_record(row: sqlite3.Row) -> VocabularyRecord:
    last_review = row["last_review_time"]
    return VocabularyRecord(
        id=row["id"],
        word=row["word"],
        chinese=row["chinese"],
        phonetic=row["phonetic"],
        part_of_speech=row["part_of_speech"],
        example=row["example"],
        translation=row["translation"],
        tips=row["tips"],
        difficulty=ensure_difficulty(row["difficulty"]),
        level=int(row["level"]),
        correct_count=int(row["correct_count"]),
        incorrect_count=int(row["incorrect_count"]),
        next_review_time=int(row["next_review_time"]),
        last_review_time=None if last_review is None else int(last_review),
        created_at=int(row["created_at"]),
        source=ensure_source(row["source"]),
    )


class SqliteBackend:
    """Stores records in a ``vocabulary`` table, ordered by ``position``."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else DB_PATH
        try:
            init_db(self.path)
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to initialise vocabulary database %s: %s", self.path, exc)
            raise PersistenceError(f"Could not open {self.path}: {exc}") from exc

    def load(self) -> list[VocabularyRecord]:
        try:
            with connect(self.path) as connection:
                rows = connection.execute(
                    "SELECT * FROM vocabulary ORDER BY position ASC"
                ).fetchall()
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to load vocabulary from %s: %s", self.path, exc)
            raise PersistenceError(f"Could not read {self.path}: {exc}") from exc
        return [_row_to_record(row) for row in rows]

    def save(self, records: Iterable[VocabularyRecord]) -> None:
        placeholders = ", ".join("?" for _ in range(len(_COLUMNS) + 1))
        insert = f"INSERT INTO vocabulary (position, {', '.join(_COLUMNS)}) VALUES ({placeholders})"
        rows = [
            (position, *(getattr(record, column) for column in _COLUMNS))
            for position, record in enumerate(records)
        ]
        try:
            with connect(self.path) as connection:
                connection.execute("DELETE FROM vocabulary")
                connection.executemany(insert, rows)
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to save vocabulary to %s: %s", self.path, exc)
            raise PersistenceError(f"Could not write {self.path}: {exc}") from exc


__all__ = ["DB_PATH", "SqliteBackend", "connect", "init_db"]
