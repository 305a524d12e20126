from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..db import get_async_session
from ..dependencies import current_teacher
from ..models.question_model import QuestionDB
from ..models.user_model import UserRole
from ..schemas.question_schema import QuestionBatch, QuestionData, QuestionResponse
from ..security import current_active_user
from ..services.exam_service import get_questions_by_ids, sanitize_question

router = APIRouter(prefix="/questions", tags=["Question Bank"])


def _as_response(q: QuestionDB, user) -> dict:
    data = sanitize_question(q)
    if user.role != UserRole.STUDENT:
        data["correct_option"] = q.correct_option
    return data


@router.post("", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(current_teacher)])
async def create_question(payload: QuestionData, session: AsyncSession = Depends(get_async_session)):
    question = QuestionDB(
        text=payload.text,
        subject=payload.subject,
        options=payload.options,
        correct_option=payload.correct_option,
        tags=payload.tags,
    )
    session.add(question)
    await session.commit()
    await session.refresh(question)
    return question


@router.get("", response_model=QuestionBatch)
async def get_questions(
    ids: List[UUID] = Query(default=[]),
    session: AsyncSession = Depends(get_async_session),
    user=Depends(current_active_user),
):
    # batch lookup: unknown ids are reported in "missing" instead of failing the request
    found, missing = await get_questions_by_ids(session, ids)
    return {"items": [sanitize_question(q) for q in found], "missing": missing}


@router.get("/{question_id}")
async def get_question(question_id: UUID, session: AsyncSession = Depends(get_async_session), user=Depends(current_active_user)):
    # return a single question or 404; students never see the correct option
    result = await session.execute(select(QuestionDB).where(QuestionDB.id == question_id))
    question = result.scalar_one_or_none()

    if not question:
        raise HTTPException(status_code=404, detail="Question not found.")

    return _as_response(question, user)
