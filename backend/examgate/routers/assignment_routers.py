from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_teacher
from ..models.assignment_model import Assignment
from ..models.user_model import User, UserRole
from ..schemas.assignment_schema import AssignmentCreate, AssignmentRead
from ..security import current_active_user
from ..services.exam_service import get_assignment, get_exam, to_utc

router = APIRouter(prefix="/assignments", tags=["Assignments"])


@router.post("", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
async def create_assignment(payload: AssignmentCreate, user=Depends(current_teacher), session: AsyncSession = Depends(get_async_session)):
    exam = await get_exam(session, payload.exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    res = await session.execute(select(User).where(User.id == payload.assignee_id))
    assignee = res.scalar_one_or_none()
    if not assignee or assignee.role != UserRole.STUDENT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assignee must be an existing student")

    assignment = Assignment(
        exam_id=exam.id,
        assignee_id=assignee.id,
        assigned_by=user.id,
        due_at=to_utc(payload.due_at),
    )
    session.add(assignment)
    await session.commit()
    await session.refresh(assignment)
    return assignment


@router.get("", response_model=List[AssignmentRead])
async def list_my_assignments(user=Depends(current_active_user), session: AsyncSession = Depends(get_async_session)):
    # students see what they were given, teachers what they handed out
    if user.role == UserRole.STUDENT:
        stmt = select(Assignment).where(Assignment.assignee_id == user.id)
    else:
        stmt = select(Assignment).where(Assignment.assigned_by == user.id)
    res = await session.execute(stmt.order_by(Assignment.created_at.desc()))
    return res.scalars().all()


@router.get("/{assignment_id}", response_model=AssignmentRead)
async def get_assignment_by_id(assignment_id: UUID, user=Depends(current_active_user), session: AsyncSession = Depends(get_async_session)):
    assignment = await get_assignment(session, assignment_id)
    if not assignment or (user.role == UserRole.STUDENT and assignment.assignee_id != user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment
