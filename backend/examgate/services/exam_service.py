import logging
from typing import List, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone

from ..models.exam_model import Exam, exam_questions
from ..models.question_model import QuestionDB
from ..models.assignment_model import Assignment

logger = logging.getLogger(__name__)


async def get_exam(session: AsyncSession, exam_id) -> Optional[Exam]:
    res = await session.execute(select(Exam).where(Exam.id == exam_id))
    return res.scalar_one_or_none()


async def get_assignment(session: AsyncSession, assignment_id) -> Optional[Assignment]:
    res = await session.execute(select(Assignment).where(Assignment.id == assignment_id))
    return res.scalar_one_or_none()


async def get_ordered_question_ids(session: AsyncSession, exam_id) -> List[UUID]:
    stmt = select(exam_questions.c.question_id).where(exam_questions.c.exam_id == exam_id).order_by(exam_questions.c.order)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def get_questions_by_ids(session: AsyncSession, qids: Sequence[UUID]) -> Tuple[List[QuestionDB], List[UUID]]:
    """Batch lookup that tolerates unknown ids. Returns (found in qids order, missing ids)."""
    if not qids:
        return [], []
    qres = await session.execute(select(QuestionDB).where(QuestionDB.id.in_(list(qids))))
    # Preserve order from qids
    qmap = {str(q.id): q for q in qres.scalars().all()}
    found = [qmap[str(qid)] for qid in qids if str(qid) in qmap]
    missing = [qid for qid in qids if str(qid) not in qmap]
    if missing:
        logger.warning("Questions not found: %s", ", ".join(str(m) for m in missing))
    return found, missing


async def get_exam_questions(session: AsyncSession, exam_id) -> Tuple[List[QuestionDB], List[UUID]]:
    qids = await get_ordered_question_ids(session, exam_id)
    return await get_questions_by_ids(session, qids)


def sanitize_question(q: QuestionDB) -> dict:
    # remove correct_option to prevent leaking
    return {
        'id': q.id,
        'text': q.text,
        'subject': q.subject,
        'options': q.options or [],
        'tags': q.tags or [],
    }


def to_utc(dt: datetime | None) -> datetime | None:
    """Normalize to an aware UTC datetime. Naive datetimes are assumed to already be UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def exam_to_read_dict(exam: Exam, question_ids: List[UUID]) -> dict:
    return {
        "id": exam.id,
        "title": exam.title,
        "subject": exam.subject,
        "duration": exam.duration,
        "is_active": exam.is_active,
        "questions": question_ids or [],
    }
