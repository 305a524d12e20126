"""
The locally persisted state of one exam attempt.

Everything the client knows about an attempt lives in a single versioned
``SessionRecord`` per (exam, assignment), read and written as one unit. The
phase is an explicit tagged variant instead of being inferred from which
keys happen to be present.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, List, Literal, NamedTuple, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from ..errors import DataIntegrityError
from ..schemas.exam_schema import ExamRead
from ..schemas.question_schema import QuestionPublic
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_RECORD_VERSION = 1


class SessionKey(NamedTuple):
    exam_id: UUID
    assignment_id: Optional[UUID]

    @property
    def storage_key(self) -> str:
        return f"examgate:session:{self.exam_id}:{self.assignment_id or '-'}"


class NotStarted(BaseModel):
    kind: Literal["not_started"] = "not_started"
    # set when the student left the exam screen after starting; the clock keeps running
    started_at: Optional[datetime] = None


class InProgress(BaseModel):
    kind: Literal["in_progress"] = "in_progress"
    started_at: datetime


class Submitted(BaseModel):
    kind: Literal["submitted"] = "submitted"
    started_at: Optional[datetime] = None
    result_id: Optional[UUID] = None


class ExpiredNoAnswers(BaseModel):
    kind: Literal["expired_no_answers"] = "expired_no_answers"
    started_at: Optional[datetime] = None


SessionPhase = Annotated[
    Union[NotStarted, InProgress, Submitted, ExpiredNoAnswers],
    Field(discriminator="kind"),
]

TERMINAL_PHASES = (Submitted, ExpiredNoAnswers)


class CachedExam(BaseModel):
    """Last known good exam definition, only used when a fresh fetch fails."""
    exam: ExamRead
    questions: List[QuestionPublic]
    cached_at: datetime

    def is_usable_for(self, exam_id: UUID) -> bool:
        return self.exam.id == exam_id and len(self.questions) > 0


class SessionRecord(BaseModel):
    version: Literal[1] = SESSION_RECORD_VERSION
    exam_id: UUID
    assignment_id: Optional[UUID] = None
    phase: SessionPhase = Field(default_factory=NotStarted)
    answers: List[int] = []
    remaining_seconds: Optional[int] = None
    saved_at: Optional[datetime] = None
    cache: Optional[CachedExam] = None

    @property
    def key(self) -> SessionKey:
        return SessionKey(self.exam_id, self.assignment_id)

    @property
    def started_at(self) -> Optional[datetime]:
        return getattr(self.phase, "started_at", None)

    @property
    def is_terminal(self) -> bool:
        return isinstance(self.phase, TERMINAL_PHASES)

    def is_coherent(self) -> bool:
        # a terminal marker is only believable if the attempt was actually started
        if self.is_terminal:
            return self.started_at is not None
        return True


class SessionRecordStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def _parse(key: SessionKey, raw: str) -> SessionRecord:
        try:
            record = SessionRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise DataIntegrityError(f"unreadable record: {exc.errors()[:1]}") from exc
        if record.key != key:
            raise DataIntegrityError(f"record belongs to {record.key.storage_key}")
        return record

    def read(self, key: SessionKey) -> Optional[SessionRecord]:
        raw = self._store.get(key.storage_key)
        if raw is None:
            return None
        try:
            return self._parse(key, raw)
        except DataIntegrityError as exc:
            logger.warning("Discarding session record %s: %s", key.storage_key, exc.message)
            self._store.delete(key.storage_key)
            return None

    def read_or_new(self, key: SessionKey) -> SessionRecord:
        return self.read(key) or SessionRecord(exam_id=key.exam_id, assignment_id=key.assignment_id)

    def write(self, record: SessionRecord) -> None:
        self._store.set(record.key.storage_key, record.model_dump_json())
