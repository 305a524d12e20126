from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List
from uuid import UUID


class ExamCreate(BaseModel):
    title: str
    subject: Optional[str] = None
    duration: int
    is_active: bool = True
    # Selected question IDs; the order in the list defines the exam order
    questions: Optional[List[UUID]] = None

    @field_validator("duration")
    @classmethod
    def duration_must_be_positive(cls, v):
        if v is None or v <= 0:
            raise ValueError("duration must be a positive integer (minutes)")
        return v


class ExamUpdate(BaseModel):
    title: Optional[str] = None
    subject: Optional[str] = None
    duration: Optional[int] = None
    is_active: Optional[bool] = None
    # Replace or reorder questions when provided
    questions: Optional[List[UUID]] = None

    @field_validator("duration")
    @classmethod
    def duration_must_be_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("duration must be a positive integer (minutes)")
        return v


class ExamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    subject: Optional[str] = None
    duration: int
    is_active: bool
    # Include ordered list of question IDs for the exam
    questions: List[UUID] = []
