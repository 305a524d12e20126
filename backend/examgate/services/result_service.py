from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.exam_model import Exam
from ..models.exam_result_model import ExamResult


def _apply_filters(stmt, *, exam_id=None, student_id=None, search: str = "", class_name: str = "",
                   gender: str = "", min_score: Optional[float] = None, max_score: Optional[float] = None):
    if exam_id:
        stmt = stmt.where(ExamResult.exam_id == exam_id)
    if student_id:
        stmt = stmt.where(ExamResult.student_id == student_id)
    if search:
        pattern = f"%{search.lower().strip()}%"
        stmt = stmt.where(or_(
            func.lower(ExamResult.student_code).like(pattern),
            func.lower(ExamResult.full_name).like(pattern),
            func.lower(ExamResult.class_name).like(pattern),
        ))
    if class_name:
        stmt = stmt.where(ExamResult.class_name == class_name)
    if gender:
        stmt = stmt.where(ExamResult.gender == gender)
    if min_score is not None:
        stmt = stmt.where(ExamResult.score >= min_score)
    if max_score is not None:
        stmt = stmt.where(ExamResult.score <= max_score)
    return stmt


async def list_results(session: AsyncSession, page: int = 1, limit: int = 10, **filters) -> Tuple[List[ExamResult], int]:
    # newest first, paginated; filters as in _apply_filters
    if page < 1:
        page = 1
    if limit < 1:
        limit = 10

    count_stmt = _apply_filters(select(func.count()).select_from(ExamResult), **filters)
    total = (await session.execute(count_stmt)).scalar_one() or 0

    stmt = _apply_filters(select(ExamResult), **filters)
    stmt = stmt.order_by(ExamResult.completed_at.desc()).offset((page - 1) * limit).limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all()), int(total)


async def all_results(session: AsyncSession, **filters) -> List[ExamResult]:
    stmt = _apply_filters(select(ExamResult), **filters).order_by(ExamResult.completed_at.desc())
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def count_results_for_creator(session: AsyncSession, creator_id) -> int:
    """Number of results across every exam created by ``creator_id``."""
    stmt = (
        select(func.count())
        .select_from(ExamResult)
        .join(Exam, Exam.id == ExamResult.exam_id)
        .where(Exam.created_by == creator_id)
    )
    return int((await session.execute(stmt)).scalar_one() or 0)
