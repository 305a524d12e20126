from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response
import logging

from ..db import get_async_session
from ..dependencies import current_student, current_teacher
from ..errors import ExamGateError
from ..schemas.result_schema import CompletionStatus, ExamResultRead, ResultPage, ResultSubmit, ResultSummary
from ..services.exam_service import get_exam
from ..services.excel_service import XLSX_MEDIA_TYPE, export_filename, export_results
from ..services.result_service import all_results, count_results_for_creator, list_results
from ..services.submission_service import check_completion, submit_result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz-results", tags=["Results"])


def rejection(exc: ExamGateError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.get("/exam/{exam_id}", response_model=ResultPage, dependencies=[Depends(current_teacher)])
async def get_exam_results(
    exam_id: UUID,
    page: int = 1,
    limit: int = 10,
    search: str = "",
    class_name: str = "",
    gender: str = "",
    min_score: Optional[float] = None,
    max_score: Optional[float] = None,
    session: AsyncSession = Depends(get_async_session),
):
    """Results of one exam for teachers/admins, filterable by student code/name/class, gender and score."""
    items, total = await list_results(
        session, page=page, limit=limit, exam_id=exam_id, search=search,
        class_name=class_name, gender=gender, min_score=min_score, max_score=max_score,
    )
    return {"items": items, "total": total, "page": max(page, 1), "limit": limit if limit >= 1 else 10}


@router.get("/summary/my", response_model=ResultSummary)
async def get_my_results_summary(user=Depends(current_teacher), session: AsyncSession = Depends(get_async_session)):
    # results across the exams this teacher created
    return {"total_results": await count_results_for_creator(session, user.id)}


@router.get("/exam/{exam_id}/export", dependencies=[Depends(current_teacher)])
async def export_exam_results(
    exam_id: UUID,
    search: str = "",
    class_name: str = "",
    gender: str = "",
    session: AsyncSession = Depends(get_async_session),
):
    exam = await get_exam(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    results = await all_results(session, exam_id=exam_id, search=search, class_name=class_name, gender=gender)
    try:
        content = export_results(results, exam.title)
    except Exception as e:
        logger.exception("Error exporting results for exam_id=%s: %s", str(exam_id), e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error while exporting results")

    filename = export_filename(exam.title)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{exam_id}/check", response_model=CompletionStatus)
async def check_exam_completion(
    exam_id: UUID,
    assignment_id: Optional[UUID] = None,
    user=Depends(current_student),
    session: AsyncSession = Depends(get_async_session),
):
    # stateless and idempotent; clients poll it on every load
    return await check_completion(session, exam_id, user.id, assignment_id)


@router.post("", response_model=ExamResultRead, status_code=status.HTTP_201_CREATED)
async def submit_exam_result(payload: ResultSubmit, user=Depends(current_student), session: AsyncSession = Depends(get_async_session)):
    try:
        return await submit_result(
            session,
            user,
            payload.exam_id,
            payload.answers,
            payload.time_spent_minutes,
            payload.assignment_id,
        )
    except ExamGateError as e:
        logger.info(
            "Rejected submission for exam_id=%s student_id=%s assignment_id=%s: %s",
            str(payload.exam_id), str(user.id), str(payload.assignment_id), e.reason,
        )
        raise rejection(e)
    except Exception as e:
        logger.exception("Error while submitting result for exam_id=%s student_id=%s: %s", str(payload.exam_id), str(getattr(user, 'id', None)), e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error while submitting result")


@router.get("", response_model=ResultPage)
async def get_my_results(
    page: int = 1,
    limit: int = 10,
    exam_id: Optional[UUID] = None,
    min_score: Optional[float] = None,
    max_score: Optional[float] = None,
    user=Depends(current_student),
    session: AsyncSession = Depends(get_async_session),
):
    items, total = await list_results(
        session, page=page, limit=limit, exam_id=exam_id, student_id=user.id,
        min_score=min_score, max_score=max_score,
    )
    return {"items": items, "total": total, "page": max(page, 1), "limit": limit if limit >= 1 else 10}
