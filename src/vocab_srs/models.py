from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, NotRequired, TypedDict, cast

from .errors import ValidationError

Difficulty = Literal["easy", "medium", "hard"]
Source = Literal["conversation", "manual"]

DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")
SOURCES: tuple[Source, ...] = ("conversation", "manual")

DEFAULT_DIFFICULTY: Difficulty = "medium"
DEFAULT_SOURCE: Source = "conversation"
DEFAULT_CHINESE = "（请查阅词典）"

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"chinese", "phonetic", "part_of_speech", "example", "translation", "tips", "difficulty"}
)


class WordCandidate(TypedDict):
    word: str
    chinese: NotRequired[str]
    phonetic: NotRequired[str]
    partOfSpeech: NotRequired[str]
    example: NotRequired[str]
    translation: NotRequired[str]
    difficulty: NotRequired[str]
    tips: NotRequired[str]
    source: NotRequired[str]


@dataclass(slots=True)
class VocabularyRecord:
    id: str
    word: str
    chinese: str
    phonetic: str
    part_of_speech: str
    example: str
    translation: str
    tips: str
    difficulty: Difficulty
    level: int
    correct_count: int
    incorrect_count: int
    next_review_time: int
    last_review_time: int | None
    created_at: int
    source: Source

    @property
    def review_count(self) -> int:
        return self.correct_count + self.incorrect_count


# camelCase keys of the persisted layout, in field order.
_WIRE_KEYS: dict[str, str] = {
    "id": "id",
    "word": "word",
    "chinese": "chinese",
    "phonetic": "phonetic",
    "part_of_speech": "partOfSpeech",
    "example": "example",
    "translation": "translation",
    "tips": "tips",
    "difficulty": "difficulty",
    "level": "level",
    "correct_count": "correctCount",
    "incorrect_count": "incorrectCount",
    "next_review_time": "nextReviewTime",
    "last_review_time": "lastReviewTime",
    "created_at": "createdAt",
    "source": "source",
}


def now_ms(value: datetime | None = None) -> int:
    """Return ``value`` (default: the current time) as epoch milliseconds."""

    moment = value or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return int(round(moment.timestamp() * 1000))


def normalize_word(word: str) -> str:
    """Identity key used for case-insensitive duplicate detection."""

    return word.strip().casefold()


def ensure_difficulty(value: str | None) -> Difficulty:
    if value is None or not str(value).strip():
        return DEFAULT_DIFFICULTY
    normalized = str(value).strip().lower()
    if normalized not in DIFFICULTIES:
        raise ValidationError(f"Unsupported difficulty: {value}")
    return cast(Difficulty, normalized)


def ensure_source(value: str | None) -> Source:
    if value is None or not str(value).strip():
        return DEFAULT_SOURCE
    normalized = str(value).strip().lower()
    if normalized not in SOURCES:
        raise ValidationError(f"Unsupported source: {value}")
    return cast(Source, normalized)


def record_to_dict(record: VocabularyRecord) -> dict[str, Any]:
    """Serialise a record using the camelCase interchange keys."""

    return {wire: getattr(record, attr) for attr, wire in _WIRE_KEYS.items()}


def record_from_dict(data: Mapping[str, Any]) -> VocabularyRecord:
    """Inverse of :func:`record_to_dict`.

    Raises ``KeyError``/``TypeError``/``ValueError`` on malformed input; storage
    backends translate those into ``PersistenceError``.
    """

    last_review = data.get("lastReviewTime")
    return VocabularyRecord(
        id=str(data["id"]),
        word=str(data["word"]),
        chinese=str(data.get("chinese") or ""),
        phonetic=str(data.get("phonetic") or ""),
        part_of_speech=str(data.get("partOfSpeech") or ""),
        example=str(data.get("example") or ""),
        translation=str(data.get("translation") or ""),
        tips=str(data.get("tips") or ""),
        difficulty=ensure_difficulty(data.get("difficulty")),
        level=int(data["level"]),
        correct_count=int(data["correctCount"]),
        incorrect_count=int(data["incorrectCount"]),
        next_review_time=int(data["nextReviewTime"]),
        last_review_time=None if last_review is None else int(last_review),
        created_at=int(data["createdAt"]),
        source=ensure_source(data.get("source")),
    )


__all__ = [
    "DEFAULT_CHINESE",
    "DEFAULT_DIFFICULTY",
    "DEFAULT_SOURCE",
    "DIFFICULTIES",
    "Difficulty",
    "EDITABLE_FIELDS",
    "ensure_difficulty",
    "ensure_source",
    "normalize_word",
    "now_ms",
    "record_from_dict",
    "record_to_dict",
    "Source",
    "SOURCES",
    "VocabularyRecord",
    "WordCandidate",
]
