from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from uuid import UUID
from sqlalchemy import select, insert, delete
from sqlalchemy.ext.asyncio import AsyncSession


from ..db import get_async_session
from ..models.exam_model import Exam, exam_questions
from ..models.question_model import QuestionDB
from ..models.user_model import UserRole
from ..schemas.exam_schema import ExamCreate, ExamRead, ExamUpdate
from ..services.exam_service import get_exam, get_ordered_question_ids, exam_to_read_dict
from ..dependencies import current_teacher
from ..security import current_active_user

router = APIRouter(prefix="/exams", tags=["Exams"])


async def _validate_question_ids(session: AsyncSession, question_ids: List[UUID]):
    # check duplicate IDs
    if len(set(question_ids)) != len(question_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate question IDs are not allowed")

    # verify question ids exist
    qres = await session.execute(select(QuestionDB.id).where(QuestionDB.id.in_(question_ids)))
    if len(qres.scalars().all()) != len(question_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="One or more question IDs are invalid")


async def _link_questions(session: AsyncSession, exam_id: UUID, question_ids: List[UUID]):
    rows = [{"exam_id": exam_id, "question_id": qid, "order": idx} for idx, qid in enumerate(question_ids)]
    if rows:
        await session.execute(insert(exam_questions), rows)


@router.post("", response_model=ExamRead, status_code=status.HTTP_201_CREATED)
async def create_exam(payload: ExamCreate, user=Depends(current_teacher), session: AsyncSession = Depends(get_async_session)):
    # create exam and link questions in the order provided
    if payload.questions:
        await _validate_question_ids(session, payload.questions)

    exam = Exam(
        title=payload.title,
        subject=payload.subject,
        duration=payload.duration,
        is_active=payload.is_active,
        created_by=user.id,
    )
    session.add(exam)
    await session.flush()

    await _link_questions(session, exam.id, payload.questions or [])

    await session.commit()
    await session.refresh(exam)

    qids = await get_ordered_question_ids(session, exam.id)
    return exam_to_read_dict(exam, qids)


@router.get("/{exam_id}", response_model=ExamRead)
async def get_exam_definition(exam_id: UUID, session: AsyncSession = Depends(get_async_session), user=Depends(current_active_user)):

    #  get single exam. Students see only active exams.
    exam = await get_exam(session, exam_id)
    if not exam or (user.role == UserRole.STUDENT and not exam.is_active):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    qids = await get_ordered_question_ids(session, exam.id)
    return exam_to_read_dict(exam, qids)


@router.put("/{exam_id}", response_model=ExamRead, dependencies=[Depends(current_teacher)])
async def update_exam(exam_id: UUID, payload: ExamUpdate, session: AsyncSession = Depends(get_async_session)):
    # update only fields sent and replace question order if provided
    exam = await get_exam(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    if payload.title is not None:
        exam.title = payload.title
    if payload.subject is not None:
        exam.subject = payload.subject
    if payload.duration is not None:
        exam.duration = payload.duration
    if payload.is_active is not None:
        exam.is_active = payload.is_active

    session.add(exam)
    await session.flush()

    if payload.questions is not None:
        if payload.questions:
            await _validate_question_ids(session, payload.questions)

        # delete previous links, insert new links with order
        await session.execute(delete(exam_questions).where(exam_questions.c.exam_id == exam.id))
        await _link_questions(session, exam.id, payload.questions)

    await session.commit()
    await session.refresh(exam)

    qids = await get_ordered_question_ids(session, exam.id)
    return exam_to_read_dict(exam, qids)
