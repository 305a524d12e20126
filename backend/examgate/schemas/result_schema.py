from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from ..services.exam_service import to_utc


class ResultSubmit(BaseModel):
    exam_id: UUID
    # one option index per question, -1 = unanswered
    answers: List[int]
    time_spent_minutes: float = Field(0.0, ge=0)
    # required for grading; left optional here so its absence is reported as
    # "missing-assignment" instead of a generic validation error
    assignment_id: Optional[UUID] = None

    @field_validator("answers")
    @classmethod
    def answers_are_option_indexes(cls, v):
        if any(a < -1 for a in v):
            raise ValueError("answers must be option indexes (>= 0) or -1 for unanswered")
        return v


class ExamResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    exam_id: UUID
    student_id: UUID
    assignment_id: UUID
    answers: List[int]
    score: float
    correct_count: int
    total_questions: int
    time_spent_minutes: float
    completed_at: datetime
    student_code: Optional[str] = None
    full_name: Optional[str] = None
    class_name: Optional[str] = None
    gender: Optional[str] = None

    @field_validator("completed_at")
    @classmethod
    def completed_at_in_utc(cls, v):
        return to_utc(v)


class CompletionStatus(BaseModel):
    completed: bool
    result: Optional[ExamResultRead] = None


class ResultPage(BaseModel):
    items: List[ExamResultRead]
    total: int
    page: int
    limit: int


class ResultSummary(BaseModel):
    total_results: int
