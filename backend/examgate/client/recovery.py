"""
Rebuild the state of an exam attempt when the page (re)loads.

Local state is never trusted on its own: the server's completion check wins
whenever it answers, corrupt or incoherent local markers are discarded, and a
cached exam definition is only used when a fresh fetch fails.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from ..config import FETCH_MAX_ATTEMPTS
from ..errors import ExamGateError, NotFoundError, TransientError
from ..schemas.exam_schema import ExamRead
from ..schemas.question_schema import QuestionPublic
from ..schemas.result_schema import CompletionStatus, ExamResultRead
from ..services.exam_service import to_utc
from .clock import remaining_seconds, utc_now
from .drafts import AnswerDraftStore, blank_answers
from .records import CachedExam, InProgress, NotStarted, SessionKey, SessionRecord, SessionRecordStore, Submitted
from .retry import with_backoff

logger = logging.getLogger(__name__)

# (profile attribute, label shown to the student)
REQUIRED_PROFILE_FIELDS = (
    ("full_name", "Full name"),
    ("student_code", "Student code"),
    ("class_name", "Class"),
    ("gender", "Gender"),
)


class DisplayState(str, enum.Enum):
    PROFILE_INCOMPLETE = "profile_incomplete"
    ALREADY_COMPLETED = "already_completed"
    UNAVAILABLE = "unavailable"
    ASSIGNMENT_CLOSED = "assignment_closed"
    PRE_START = "pre_start"
    IN_PROGRESS = "in_progress"
    EXPIRED = "expired"
    SUBMITTED = "submitted"
    EXPIRED_NO_ANSWERS = "expired_no_answers"


@dataclass
class RecoveryOutcome:
    state: DisplayState
    exam: Optional[ExamRead] = None
    questions: List[QuestionPublic] = field(default_factory=list)
    answers: List[int] = field(default_factory=list)
    remaining_seconds: Optional[int] = None
    started_at: Optional[datetime] = None
    missing_fields: List[str] = field(default_factory=list)
    result: Optional[ExamResultRead] = None
    error: Optional[ExamGateError] = None
    from_cache: bool = False


def missing_profile_fields(profile: Any) -> List[str]:
    missing = []
    for attr, label in REQUIRED_PROFILE_FIELDS:
        value = profile.get(attr) if isinstance(profile, dict) else getattr(profile, attr, None)
        if not value:
            missing.append(label)
    return missing


class SessionRecoveryManager:
    def __init__(
        self,
        api,
        records: SessionRecordStore,
        key: SessionKey,
        now: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
    ) -> None:
        self._api = api
        self._records = records
        self.key = key
        self._now = now
        self._sleep = sleep
        self.max_attempts = max_attempts

    async def recover(self, profile: Any) -> RecoveryOutcome:
        missing = missing_profile_fields(profile)
        if missing:
            logger.info("Blocking exam %s: profile missing %s", self.key.exam_id, ", ".join(missing))
            return RecoveryOutcome(DisplayState.PROFILE_INCOMPLETE, missing_fields=missing)

        status = await self._check_completion()
        if status is not None and status.completed:
            self._mark_completed(status)
            return RecoveryOutcome(DisplayState.ALREADY_COMPLETED, result=status.result, remaining_seconds=0)

        record = self._validated_record(server_says_incomplete=status is not None)
        if isinstance(record.phase, Submitted):
            return RecoveryOutcome(DisplayState.SUBMITTED, started_at=record.started_at, remaining_seconds=0)
        if record.is_terminal:
            return RecoveryOutcome(DisplayState.EXPIRED_NO_ANSWERS, started_at=record.started_at, remaining_seconds=0)

        try:
            exam, questions, from_cache = await self._load_definition(record)
        except (TransientError, NotFoundError) as exc:
            return RecoveryOutcome(DisplayState.UNAVAILABLE, error=exc)

        if not from_cache:
            record.cache = CachedExam(exam=exam, questions=questions, cached_at=self._now())

        started_at = record.started_at
        if started_at is None and await self._assignment_closed():
            self._records.write(record)
            return RecoveryOutcome(DisplayState.ASSIGNMENT_CLOSED, exam=exam, questions=questions, from_cache=from_cache)

        remaining = remaining_seconds(self._now(), started_at, exam.duration)
        if started_at is None:
            state = DisplayState.PRE_START
        elif remaining > 0:
            # started but left the exam screen: intro again, with the clock still running
            state = DisplayState.IN_PROGRESS if isinstance(record.phase, InProgress) else DisplayState.PRE_START
        else:
            state = DisplayState.EXPIRED

        answers = AnswerDraftStore(self._records, self.key, len(questions)).load()
        if answers is None:
            answers = blank_answers(len(questions))

        record.answers = answers
        record.remaining_seconds = remaining
        self._records.write(record)

        logger.info(
            "Recovered exam %s as %s with %ss left (%d/%d answered%s)",
            self.key.exam_id, state.value, remaining,
            sum(1 for a in answers if a >= 0), len(answers), ", cached definition" if from_cache else "",
        )
        return RecoveryOutcome(
            state,
            exam=exam,
            questions=questions,
            answers=answers,
            remaining_seconds=remaining,
            started_at=started_at,
            from_cache=from_cache,
        )

    async def _check_completion(self) -> Optional[CompletionStatus]:
        """Server verdict, or None when there is no definitive answer (no assignment, unreachable)."""
        if self.key.assignment_id is None:
            logger.warning("No assignment_id for exam %s, cannot check completion", self.key.exam_id)
            return None
        try:
            return await with_backoff(
                lambda: self._api.check_completion(self.key.exam_id, self.key.assignment_id),
                attempts=self.max_attempts,
                sleep=self._sleep,
                label="completion check",
            )
        except ExamGateError as exc:
            logger.warning("Completion check for exam %s failed: %s", self.key.exam_id, exc.message)
            return None

    def _mark_completed(self, status: CompletionStatus) -> None:
        """Replace a started local attempt with a terminal marker once the server has graded it."""
        record = self._records.read(self.key)
        if record is None or record.started_at is None or isinstance(record.phase, Submitted):
            return
        logger.info("Exam %s was graded on the server, closing local session", self.key.exam_id)
        record.phase = Submitted(started_at=record.started_at, result_id=status.result.id if status.result else None)
        record.answers = []
        record.remaining_seconds = 0
        record.cache = None
        self._records.write(record)

    def _validated_record(self, server_says_incomplete: bool) -> SessionRecord:
        record = self._records.read_or_new(self.key)
        reset = False
        if not record.is_coherent():
            # e.g. "completed" without ever having started: partial write from a crash
            logger.warning("Invalid completion state for %s, clearing", self.key.storage_key)
            reset = True
        elif isinstance(record.phase, Submitted) and server_says_incomplete:
            logger.warning("Server has no result for %s, clearing stale submitted marker", self.key.storage_key)
            reset = True
        if reset:
            record.phase = NotStarted()
            record.answers = []
            record.remaining_seconds = None
            self._records.write(record)
        return record

    async def _fetch_definition(self) -> Tuple[ExamRead, List[QuestionPublic]]:
        exam = await self._api.get_exam(self.key.exam_id)
        questions, missing = await self._api.get_questions(exam.questions)
        if missing:
            logger.warning(
                "%d of %d questions of exam %s could not be loaded, continuing with the rest",
                len(missing), len(exam.questions), exam.id,
            )
        if not questions:
            raise NotFoundError("No questions could be loaded for this exam")
        return exam, questions

    async def _load_definition(self, record: SessionRecord) -> Tuple[ExamRead, List[QuestionPublic], bool]:
        cached = record.cache
        if cached is not None and not cached.is_usable_for(self.key.exam_id):
            logger.info("Cached exam data for %s is invalid, clearing", self.key.storage_key)
            record.cache = cached = None

        try:
            exam, questions = await with_backoff(
                self._fetch_definition,
                attempts=1 if cached else self.max_attempts,
                sleep=self._sleep,
                label="exam fetch",
            )
            return exam, questions, False
        except TransientError:
            if cached is None:
                raise
            logger.warning("Serving cached exam data for %s", self.key.storage_key)
            return cached.exam, cached.questions, True

    async def _assignment_closed(self) -> bool:
        if self.key.assignment_id is None:
            return False
        try:
            assignment = await with_backoff(
                lambda: self._api.get_assignment(self.key.assignment_id),
                attempts=self.max_attempts,
                sleep=self._sleep,
                label="assignment fetch",
            )
        except NotFoundError:
            logger.warning("Assignment %s not found", self.key.assignment_id)
            return True
        except TransientError:
            # cannot tell; the server still refuses a submission for an unknown assignment
            return False
        if not assignment.is_active:
            return True
        due = to_utc(assignment.due_at)
        return due is not None and due <= self._now()
