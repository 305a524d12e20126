"""
Drives one exam attempt from the intro screen to submission.

The controller owns the clock, the answer drafts and the session record for a
single (exam, assignment). UI code calls ``open``/``start``/``answer``/``submit``
and listens to events passed to ``on_event(name, payload)``:

=====================  =============================================
event                  payload
=====================  =============================================
``tick``               ``{"remaining": int}``
``timer_corrected``    ``{"remaining": int}``
``time_warning``       ``{"remaining": int}`` (once, at 5 minutes)
``expired``            ``{}``
``submitted``          ``{"result": ExamResultRead, "auto": bool}``
``submit_failed``      ``{"error": Exception, "auto": bool}``
``already_completed``  ``{}``
``expired_no_answers`` ``{}``
=====================  =============================================
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional

from ..config import AUTOSAVE_DEBOUNCE_SECONDS, FETCH_MAX_ATTEMPTS, TICK_SECONDS, TIME_WARNING_SECONDS
from ..errors import (
    DuplicateSubmission,
    EmptySubmission,
    ExamGateError,
    IncompleteAnswers,
    MissingAssignment,
    SessionStateError,
)
from ..schemas.result_schema import ExamResultRead
from ..services.scoring_service import UNANSWERED, has_any_answer
from .clock import SessionClock, utc_now
from .drafts import AnswerDraftStore
from .recovery import DisplayState, RecoveryOutcome, SessionRecoveryManager
from .records import ExpiredNoAnswers, InProgress, NotStarted, SessionKey, SessionRecordStore, Submitted
from .retry import with_backoff
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

LEAVE_WARNING = "Your exam is still in progress. Answers are saved, but the timer keeps running."

EventHandler = Callable[[str, dict], None]


def _ignore(name: str, payload: dict) -> None:
    pass


class ExamSessionController:
    def __init__(
        self,
        api,
        store: KeyValueStore,
        exam_id,
        assignment_id=None,
        now: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_event: EventHandler = _ignore,
        debounce_seconds: float = AUTOSAVE_DEBOUNCE_SECONDS,
        tick_seconds: float = TICK_SECONDS,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
    ) -> None:
        self._api = api
        self._records = SessionRecordStore(store)
        self.key = SessionKey(exam_id, assignment_id)
        self._now = now
        self._sleep = sleep
        self._emit = on_event
        self.debounce_seconds = debounce_seconds
        self.tick_seconds = tick_seconds
        self.max_attempts = max_attempts

        self.state: Optional[DisplayState] = None
        self.outcome: Optional[RecoveryOutcome] = None
        self.result: Optional[ExamResultRead] = None
        self.started_at: Optional[datetime] = None
        self.clock: Optional[SessionClock] = None
        self.drafts: Optional[AnswerDraftStore] = None
        self._submit_task: Optional[asyncio.Task] = None
        self._warned = False

    # ---- lifecycle ----------------------------------------------------------

    @property
    def questions(self) -> List[Any]:
        return self.outcome.questions if self.outcome else []

    @property
    def answers(self) -> List[int]:
        return self.drafts.get() if self.drafts else []

    @property
    def remaining_seconds(self) -> Optional[int]:
        if self.clock is not None:
            return self.clock.remaining()
        return self.outcome.remaining_seconds if self.outcome else None

    async def open(self, profile: Any) -> RecoveryOutcome:
        manager = SessionRecoveryManager(
            self._api, self._records, self.key, now=self._now, sleep=self._sleep, max_attempts=self.max_attempts
        )
        outcome = await manager.recover(profile)
        self.outcome = outcome
        self.state = outcome.state
        self.result = outcome.result
        self.started_at = outcome.started_at

        if outcome.exam is not None:
            self.drafts = AnswerDraftStore(
                self._records, self.key, len(outcome.questions), debounce_seconds=self.debounce_seconds, now=self._now
            )
            self.drafts.replace(outcome.answers)
        if self.started_at is not None and outcome.exam is not None:
            self.clock = SessionClock(self.started_at, outcome.exam.duration, now=self._now)

        if self.state is DisplayState.EXPIRED:
            await self._handle_expiry()
        return outcome

    def start(self) -> None:
        if self.state is not DisplayState.PRE_START:
            raise SessionStateError(f"Cannot start from state {self.state.value if self.state else None}")
        if self.started_at is None:
            self.started_at = self._now()
            logger.info("Started exam %s at %s", self.key.exam_id, self.started_at.isoformat())
        else:
            logger.info("Resuming exam %s started at %s", self.key.exam_id, self.started_at.isoformat())
        self.clock = SessionClock(self.started_at, self.outcome.exam.duration, now=self._now)

        record = self._records.read_or_new(self.key)
        record.phase = InProgress(started_at=self.started_at)
        record.remaining_seconds = self.clock.remaining()
        self._records.write(record)
        self.state = DisplayState.IN_PROGRESS

    def answer(self, index: int, option_index: int) -> None:
        if self.state is not DisplayState.IN_PROGRESS:
            raise SessionStateError("Answers can only be changed while the exam is in progress")
        self.drafts.set(index, option_index)

    async def tick(self) -> Optional[int]:
        if self.state is not DisplayState.IN_PROGRESS or self.clock is None:
            return None
        tick = self.clock.tick()

        record = self._records.read_or_new(self.key)
        record.remaining_seconds = tick.remaining
        self._records.write(record)

        if tick.corrected:
            self._emit("timer_corrected", {"remaining": tick.remaining})
        self._emit("tick", {"remaining": tick.remaining})
        if not self._warned and 0 < tick.remaining <= TIME_WARNING_SECONDS:
            self._warned = True
            self._emit("time_warning", {"remaining": tick.remaining})
        if tick.expired:
            self.state = DisplayState.EXPIRED
            self._emit("expired", {})
            await self._handle_expiry()
        return tick.remaining

    async def run(self) -> Optional[DisplayState]:
        """Tick until the attempt leaves the in-progress state."""
        while self.state is DisplayState.IN_PROGRESS:
            await self.tick()
            if self.state is DisplayState.IN_PROGRESS:
                await self._sleep(self.tick_seconds)
        return self.state

    def leave(self) -> None:
        """Back to the intro screen. Answers are flushed and the clock keeps running."""
        if self.state is not DisplayState.IN_PROGRESS:
            return
        self.drafts.flush()
        record = self._records.read_or_new(self.key)
        record.phase = NotStarted(started_at=self.started_at)
        self._records.write(record)
        self.state = DisplayState.PRE_START

    def before_unload(self) -> Optional[str]:
        if self.drafts is not None:
            self.drafts.flush()
        if self.state is DisplayState.IN_PROGRESS:
            return LEAVE_WARNING
        return None

    def close(self) -> None:
        if self.drafts is not None:
            self.drafts.flush()
        if self._submit_task is not None and not self._submit_task.done():
            self._submit_task.cancel()

    # ---- submission ---------------------------------------------------------

    def time_spent_minutes(self) -> float:
        if self.clock is None:
            return 0.0
        return self.clock.elapsed_minutes()

    async def submit(self, allow_unanswered: bool = False) -> ExamResultRead:
        """
        Submit the current answers once. Concurrent callers (a double click, the
        expiry edge racing a manual submit) share the same in-flight request.
        """
        if self.result is not None and self.state is DisplayState.SUBMITTED:
            return self.result
        if self._submit_task is None:
            self._validate_submission(allow_unanswered)
            self.drafts.flush()
            self._submit_task = asyncio.ensure_future(self._submit_once())
        try:
            return await asyncio.shield(self._submit_task)
        finally:
            # a failed attempt must not block the next one
            task = self._submit_task
            if task is not None and task.done() and (task.cancelled() or task.exception() is not None):
                self._submit_task = None

    def _validate_submission(self, allow_unanswered: bool) -> None:
        if self.state not in (DisplayState.IN_PROGRESS, DisplayState.EXPIRED):
            raise SessionStateError(f"Cannot submit from state {self.state.value if self.state else None}")
        if self.key.assignment_id is None:
            raise MissingAssignment()
        answers = self.drafts.get()
        if not has_any_answer(answers):
            raise EmptySubmission()
        if not allow_unanswered and UNANSWERED in answers:
            unanswered = answers.count(UNANSWERED)
            raise IncompleteAnswers(f"{unanswered} question(s) still unanswered")

    async def _submit_once(self) -> ExamResultRead:
        answers = self.drafts.get()
        spent = self.time_spent_minutes()
        try:
            result = await with_backoff(
                lambda: self._api.submit_result(self.key.exam_id, self.key.assignment_id, answers, spent),
                attempts=self.max_attempts,
                sleep=self._sleep,
                label="submission",
            )
        except DuplicateSubmission:
            logger.warning("Exam %s was already submitted, marking complete", self.key.exam_id)
            self._mark_submitted(None)
            self.state = DisplayState.ALREADY_COMPLETED
            self._emit("already_completed", {})
            raise

        self._mark_submitted(result.id)
        self.result = result
        self.state = DisplayState.SUBMITTED
        logger.info("Submitted exam %s: score %s (%s/%s)", self.key.exam_id, result.score, result.correct_count, result.total_questions)
        return result

    def _mark_submitted(self, result_id) -> None:
        self.drafts.discard()
        record = self._records.read_or_new(self.key)
        record.phase = Submitted(started_at=self.started_at, result_id=result_id)
        record.answers = []
        record.remaining_seconds = 0
        record.cache = None
        self._records.write(record)

    async def _handle_expiry(self) -> None:
        self.drafts.flush()
        if has_any_answer(self.drafts.get()):
            try:
                result = await self.submit(allow_unanswered=True)
            except ExamGateError as exc:
                logger.error("Auto-submit of exam %s failed: %s", self.key.exam_id, exc.message)
                self._emit("submit_failed", {"error": exc, "auto": True})
                return
            except Exception as exc:
                logger.exception("Unexpected error while auto-submitting exam %s", self.key.exam_id)
                self._emit("submit_failed", {"error": exc, "auto": True})
                return
            self._emit("submitted", {"result": result, "auto": True})
            return

        logger.info("Exam %s expired with no answers", self.key.exam_id)
        self.drafts.discard()
        record = self._records.read_or_new(self.key)
        record.phase = ExpiredNoAnswers(started_at=self.started_at)
        record.answers = []
        record.remaining_seconds = 0
        self._records.write(record)
        self.state = DisplayState.EXPIRED_NO_ANSWERS
        self._emit("expired_no_answers", {})
