"""
Error taxonomy shared by the submission gate and the session client.

Every error carries a machine-readable ``reason`` (sent to clients as
``{"reason": ..., "message": ...}``) and the HTTP status the routers use.

- ExamValidationError: rejected synchronously, never retried.
- ConflictError: duplicate submission, terminal ("already completed").
- NotFoundError: exam, assignment or questions missing.
- TransientError: throttling / network failure, retried with bounded backoff.
- DataIntegrityError: corrupt local state, recovered by discarding it.
"""
from typing import Dict, Optional, Type


class ExamGateError(Exception):
    reason = "error"
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"reason": self.reason, "message": self.message}


class ExamValidationError(ExamGateError):
    reason = "invalid"
    status_code = 400
    default_message = "Invalid request"


class MissingAssignment(ExamValidationError):
    reason = "missing-assignment"
    default_message = "Assignment ID is required for quiz submission"


class EmptySubmission(ExamValidationError):
    reason = "empty"
    default_message = "No question has been answered"


class AnswerMismatch(ExamValidationError):
    reason = "mismatch"
    default_message = "Answer count does not match the exam's question count"


class IncompleteAnswers(ExamValidationError):
    reason = "incomplete"
    default_message = "Some questions are still unanswered"


class SessionStateError(ExamValidationError):
    reason = "invalid-state"
    default_message = "The exam session is not in a state that allows this action"


class ConflictError(ExamGateError):
    reason = "conflict"
    status_code = 409
    default_message = "Conflict"


class DuplicateSubmission(ConflictError):
    reason = "duplicate"
    default_message = "You have already completed this exam"


class NotFoundError(ExamGateError):
    reason = "not-found"
    status_code = 404
    default_message = "Not found"


class ExamNotFound(NotFoundError):
    default_message = "Exam not found"


class AssignmentNotFound(NotFoundError):
    default_message = "Assignment not found"


class TransientError(ExamGateError):
    reason = "transient"
    status_code = 503
    default_message = "Service temporarily unavailable, please retry"


class DataIntegrityError(ExamGateError):
    reason = "data-integrity"
    default_message = "Stored session data is corrupt"


# reason -> most general class a client should raise for it
REJECTIONS: Dict[str, Type[ExamGateError]] = {
    MissingAssignment.reason: MissingAssignment,
    EmptySubmission.reason: EmptySubmission,
    AnswerMismatch.reason: AnswerMismatch,
    IncompleteAnswers.reason: IncompleteAnswers,
    SessionStateError.reason: SessionStateError,
    DuplicateSubmission.reason: DuplicateSubmission,
    NotFoundError.reason: NotFoundError,
    TransientError.reason: TransientError,
}
