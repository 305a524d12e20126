from pydantic import BaseModel, ConfigDict
from typing import Optional
from uuid import UUID
from datetime import datetime


class AssignmentCreate(BaseModel):
    exam_id: UUID
    assignee_id: UUID
    due_at: Optional[datetime] = None


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    exam_id: UUID
    assignee_id: UUID
    assigned_by: Optional[UUID] = None
    due_at: Optional[datetime] = None
    is_active: bool
    created_at: Optional[datetime] = None
