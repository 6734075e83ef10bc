from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .backends import JsonFileBackend, MemoryBackend, VocabularyBackend
from .db import DATA_DIR, SqliteBackend
from .errors import NotFoundError, PersistenceError, ValidationError
from .models import VocabularyRecord, now_ms, record_to_dict
from .stats import (
    due_for_review,
    level_breakdown,
    level_description,
    next_review_description,
    vocabulary_stats,
)
from .store import VocabularyStore

logger = logging.getLogger(__name__)

STORAGE = os.environ.get("VOCAB_SRS_STORAGE", "sqlite").strip().lower()
JSON_PATH = Path(os.environ.get("VOCAB_SRS_JSON_PATH", DATA_DIR / "vocabulary.json"))
LOG_LEVEL = os.environ.get("VOCAB_SRS_LOG_LEVEL", "INFO").upper()

_store: VocabularyStore | None = None


class CandidateIn(BaseModel):
    word: str
    chinese: str | None = None
    phonetic: str | None = None
    partOfSpeech: str | None = None
    example: str | None = None
    translation: str | None = None
    difficulty: str | None = None
    tips: str | None = None
    source: str | None = None

    def as_candidate(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ReviewIn(BaseModel):
    correct: bool


class EditIn(BaseModel):
    chinese: str | None = None
    phonetic: str | None = None
    part_of_speech: str | None = None
    example: str | None = None
    translation: str | None = None
    tips: str | None = None
    difficulty: str | None = None


def build_backend(storage: str | None = None) -> VocabularyBackend:
    kind = (storage or STORAGE).strip().lower()
    if kind == "memory":
        return MemoryBackend()
    if kind == "json":
        return JsonFileBackend(JSON_PATH)
    if kind == "sqlite":
        return SqliteBackend()
    raise ValueError(f"Unsupported storage backend: {storage or STORAGE}")


def get_store() -> VocabularyStore:
    global _store
    if _store is None:
        _store = VocabularyStore(build_backend())
        logger.info("Vocabulary store ready (%s, %d words)", STORAGE, len(_store))
    return _store


@asynccontextmanager
async def lifespan(_: FastAPI):
    get_store()
    yield


app = FastAPI(title="Vocabulary SRS", lifespan=lifespan)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(_: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Storage failure: %s", exc)
    return JSONResponse(
        {"detail": "Vocabulary storage unavailable"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


def _with_labels(record: VocabularyRecord, now: int) -> dict[str, Any]:
    payload = record_to_dict(record)
    payload["levelLabel"] = level_description(record.level)
    payload["nextReview"] = next_review_description(record.next_review_time, now)
    return payload


@app.get("/vocabulary")
async def list_vocabulary(store: VocabularyStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [record_to_dict(record) for record in store.get_all()]


@app.post("/vocabulary")
async def add_vocabulary(
    candidates: list[CandidateIn], store: VocabularyStore = Depends(get_store)
) -> dict[str, int]:
    try:
        inserted = store.add_words([candidate.as_candidate() for candidate in candidates])
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"inserted": inserted}


@app.post("/vocabulary/manual")
async def add_manual_word(
    candidate: CandidateIn, store: VocabularyStore = Depends(get_store)
) -> dict[str, int]:
    try:
        inserted = store.add_single(candidate.as_candidate())
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"inserted": inserted}


@app.get("/vocabulary/{record_id}")
async def get_vocabulary(record_id: str, store: VocabularyStore = Depends(get_store)) -> dict[str, Any]:
    record = store.get_by_id(record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Word not found")
    return _with_labels(record, now_ms())


@app.patch("/vocabulary/{record_id}")
async def edit_vocabulary(
    record_id: str, changes: EditIn, store: VocabularyStore = Depends(get_store)
) -> dict[str, Any]:
    try:
        record = store.edit(record_id, **changes.model_dump(exclude_none=True))
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return record_to_dict(record)


@app.delete("/vocabulary/{record_id}")
async def delete_vocabulary(record_id: str, store: VocabularyStore = Depends(get_store)) -> dict[str, bool]:
    return {"deleted": store.delete(record_id)}


@app.get("/review/due")
async def review_queue(store: VocabularyStore = Depends(get_store)) -> list[dict[str, Any]]:
    now = now_ms()
    return [_with_labels(record, now) for record in due_for_review(store.get_all(), now)]


@app.post("/review/{record_id}")
async def submit_review(
    record_id: str, outcome: ReviewIn, store: VocabularyStore = Depends(get_store)
) -> dict[str, Any]:
    now = now_ms()
    try:
        record = store.review(record_id, outcome.correct, now=now)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _with_labels(record, now)


@app.get("/stats")
async def stats(store: VocabularyStore = Depends(get_store)) -> dict[str, Any]:
    now = now_ms()
    records = store.get_all()
    payload: dict[str, Any] = vocabulary_stats(records, now).as_dict()
    payload["dueNow"] = len(due_for_review(records, now))
    payload["levels"] = {str(level): count for level, count in level_breakdown(records).items()}
    return payload


def main() -> None:
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run("vocab_srs.app:app", host="127.0.0.1", port=8000, reload=True)


if __name__ == "__main__":
    main()
