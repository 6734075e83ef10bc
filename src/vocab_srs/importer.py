from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Sequence

import yaml

from .db import SqliteBackend
from .errors import ValidationError, VocabularyError
from .models import WordCandidate, ensure_source
from .store import VocabularyStore

logger = logging.getLogger(__name__)

_CANDIDATE_KEYS: tuple[str, ...] = (
    "chinese",
    "phonetic",
    "partOfSpeech",
    "example",
    "translation",
    "difficulty",
    "tips",
    "source",
)


def _coerce_candidate(entry: Any, path: Path) -> WordCandidate:
    if isinstance(entry, str):
        return {"word": entry.strip()}
    if not isinstance(entry, dict):
        raise ValidationError(f"Expected a word entry or string in {path}, got {type(entry).__name__}")
    word = entry.get("word")
    if not isinstance(word, str):
        raise ValidationError(f"Entry without a 'word' string in {path}")
    candidate: dict[str, Any] = {"word": word.strip()}
    for key in _CANDIDATE_KEYS:
        value = entry.get(key)
        if value is not None:
            candidate[key] = str(value)
    return candidate  # type: ignore[return-value]


def load_candidates(path: Path) -> list[WordCandidate]:
    """Read a YAML or JSON word list.

    Accepts a list of entries, or a mapping with a ``words`` list. Each entry is
    either a bare word or a mapping with at least ``word``.
    """

    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ValidationError(f"Could not read word list {path}: {exc}") from exc
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("words", [])
    if not isinstance(raw, list):
        raise ValidationError(f"Word list in {path} must be a sequence")
    return [_coerce_candidate(entry, path) for entry in raw]


def import_paths(
    store: VocabularyStore, paths: Sequence[Path], *, source: str | None = None
) -> dict[str, int]:
    counts = {"inserted": 0, "skipped": 0}
    for path in paths:
        candidates = load_candidates(path)
        if source is not None:
            normalized = ensure_source(source)
            candidates = [{**candidate, "source": normalized} for candidate in candidates]
        inserted = store.add_words(candidates)
        counts["inserted"] += inserted
        counts["skipped"] += len(candidates) - inserted
        logger.info("Imported %s: %d new, %d skipped", path, inserted, len(candidates) - inserted)
    return counts


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import word lists into the vocabulary store")
    parser.add_argument("paths", nargs="+", type=Path, help="YAML or JSON word list files")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database path")
    parser.add_argument(
        "--source",
        choices=("conversation", "manual"),
        default=None,
        help="Override the source tag of every imported word",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        store = VocabularyStore(SqliteBackend(args.db))
        counts = import_paths(store, args.paths, source=args.source)
    except VocabularyError as exc:
        logger.error("Import failed: %s", exc)
        raise SystemExit(f"Import failed: {exc}") from exc
    print(
        "Imported {ins} words ({skip} duplicates or blanks skipped)".format(
            ins=counts["inserted"],
            skip=counts["skipped"],
        )
    )


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
