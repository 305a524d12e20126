from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from ..config import AUTOSAVE_DEBOUNCE_SECONDS
from ..services.scoring_service import UNANSWERED
from .clock import utc_now
from .records import SessionKey, SessionRecordStore

logger = logging.getLogger(__name__)


def blank_answers(question_count: int) -> List[int]:
    return [UNANSWERED] * question_count


class AnswerDraftStore:
    """
    In-progress answers for one attempt, persisted into its session record.

    ``set`` coalesces bursts of changes into one write per debounce window
    on the running event loop; ``flush`` writes whatever is pending right
    away (submit, leaving the page).
    """

    def __init__(
        self,
        records: SessionRecordStore,
        key: SessionKey,
        question_count: int,
        debounce_seconds: float = AUTOSAVE_DEBOUNCE_SECONDS,
        now: Callable = utc_now,
    ) -> None:
        self._records = records
        self.key = key
        self.question_count = question_count
        self.debounce_seconds = debounce_seconds
        self._now = now
        self._answers: List[int] = blank_answers(question_count)
        self._pending: Optional[asyncio.TimerHandle] = None
        self._dirty = False
        self.last_saved_at = None
        self.writes = 0

    def get(self) -> List[int]:
        return list(self._answers)

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self._answers if a != UNANSWERED)

    @property
    def has_pending(self) -> bool:
        return self._dirty

    def set(self, index: int, option_index: int) -> None:
        if not 0 <= index < self.question_count:
            raise IndexError(f"question index {index} out of range 0..{self.question_count - 1}")
        if option_index < UNANSWERED:
            raise ValueError(f"invalid option index {option_index}")
        if self._answers[index] == option_index:
            return
        self._answers[index] = option_index
        self._dirty = True
        self._schedule()

    def replace(self, answers: List[int]) -> None:
        self._answers = list(answers)
        self._dirty = False

    def load(self, key: Optional[SessionKey] = None) -> Optional[List[int]]:
        """
        Stored answers for ``key`` or None when nothing was saved. A stored list
        whose length differs from the current question count is discarded in
        favour of an all-unanswered list.
        """
        record = self._records.read(key or self.key)
        if record is None or not record.answers:
            return None
        answers = record.answers
        if len(answers) != self.question_count or any(a < UNANSWERED for a in answers):
            logger.warning(
                "Discarding saved answers for %s: %d stored, %d questions",
                (key or self.key).storage_key, len(answers), self.question_count,
            )
            return blank_answers(self.question_count)
        return list(answers)

    def persist(self, key: Optional[SessionKey] = None, answers: Optional[List[int]] = None) -> None:
        key = key or self.key
        record = self._records.read_or_new(key)
        record.answers = list(self._answers if answers is None else answers)
        record.saved_at = self._now()
        self._records.write(record)
        self.last_saved_at = record.saved_at
        self.writes += 1
        if key == self.key and answers is None:
            self._dirty = False

    def flush(self) -> None:
        self._cancel_pending()
        if self._dirty:
            self.persist()

    def discard(self) -> None:
        self._cancel_pending()
        self._dirty = False

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no event loop driving the session: write through
            self.persist()
            return
        self._cancel_pending()
        self._pending = loop.call_later(self.debounce_seconds, self._on_debounce)

    def _on_debounce(self) -> None:
        self._pending = None
        if self._dirty:
            self.persist()
            logger.debug("Auto-saved answers for %s", self.key.storage_key)
