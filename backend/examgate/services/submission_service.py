"""
At-most-once grading of exam attempts.

``submit_result`` is the only writer of ExamResult rows. Its existence check is
a fast path for a clear error message; the unique constraint on
(exam_id, student_id, assignment_id) is what actually decides a race between
two concurrent submissions.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import (
    AssignmentNotFound,
    DuplicateSubmission,
    EmptySubmission,
    ExamNotFound,
    MissingAssignment,
)
from ..models.exam_result_model import ExamResult
from ..models.user_model import User
from .exam_service import get_assignment, get_exam, get_exam_questions
from .scoring_service import has_any_answer, score_answers

logger = logging.getLogger(__name__)


async def find_result(session: AsyncSession, exam_id, student_id, assignment_id) -> Optional[ExamResult]:
    stmt = select(ExamResult).where(
        ExamResult.exam_id == exam_id,
        ExamResult.student_id == student_id,
        ExamResult.assignment_id == assignment_id,
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def check_completion(session: AsyncSession, exam_id, student_id, assignment_id) -> dict:
    # without an assignment there is nothing definitive to check; answer "not completed"
    if not assignment_id:
        logger.warning("Completion check without assignment_id for exam_id=%s student_id=%s", exam_id, student_id)
        return {"completed": False}
    existing = await find_result(session, exam_id, student_id, assignment_id)
    if existing is None:
        return {"completed": False}
    return {"completed": True, "result": existing}


def snapshot_profile(user: User) -> dict:
    gender = getattr(user, "gender", None)
    return {
        "student_code": getattr(user, "student_code", None) or "",
        "full_name": getattr(user, "full_name", None) or getattr(user, "email", "") or "",
        "class_name": getattr(user, "class_name", None) or "",
        "gender": gender.value if hasattr(gender, "value") else gender,
    }


async def submit_result(
    session: AsyncSession,
    student: User,
    exam_id,
    answers: Sequence[int],
    time_spent_minutes: float,
    assignment_id,
) -> ExamResult:
    if not assignment_id:
        raise MissingAssignment()

    existing = await find_result(session, exam_id, student.id, assignment_id)
    if existing is not None:
        raise DuplicateSubmission()

    exam = await get_exam(session, exam_id)
    if exam is None:
        raise ExamNotFound()

    if not has_any_answer(answers):
        raise EmptySubmission()

    assignment = await get_assignment(session, assignment_id)
    if assignment is None or assignment.exam_id != exam.id or assignment.assignee_id != student.id:
        raise AssignmentNotFound()

    questions, missing = await get_exam_questions(session, exam.id)
    if not questions:
        raise ExamNotFound("Exam has no questions that could be loaded")
    if missing:
        logger.warning(
            "Grading exam_id=%s with %d of %d questions (%d missing)",
            exam.id, len(questions), len(questions) + len(missing), len(missing),
        )

    summary = score_answers(answers, questions)

    result = ExamResult(
        exam_id=exam.id,
        student_id=student.id,
        assignment_id=assignment.id,
        answers=list(answers),
        score=summary.score,
        correct_count=summary.correct_count,
        total_questions=summary.total_questions,
        time_spent_minutes=round(float(time_spent_minutes or 0), 2),
        completed_at=datetime.now(timezone.utc),
        **snapshot_profile(student),
    )
    session.add(result)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info(
            "Concurrent submission lost the race for exam_id=%s student_id=%s assignment_id=%s",
            exam_id, student.id, assignment_id,
        )
        raise DuplicateSubmission()
    await session.refresh(result)

    logger.info(
        "Recorded result %s for exam_id=%s student_id=%s: %s/%s correct, score %.2f",
        result.id, exam.id, student.id, summary.correct_count, summary.total_questions, summary.score,
    )
    return result
