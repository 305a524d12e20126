from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from typing import List, Optional
from uuid import UUID


class QuestionData(BaseModel):
    """
    Schema for validating a new multiple-choice question.

    ``correct_option`` is an index into ``options`` (0=A, 1=B, ...).
    """
    text: str = Field(..., min_length=1, description="The question as shown to the student.")
    subject: Optional[str] = Field(None, description="Subject or course the question belongs to.")
    options: List[str] = Field(..., min_length=2, description="Answer options, in display order.")
    correct_option: int = Field(..., ge=0, description="Index of the correct option.")
    tags: List[str] = Field(default_factory=list, description="A list of keywords/tags for categorization.")

    @field_validator("correct_option")
    @classmethod
    def correct_option_in_range(cls, v, info: ValidationInfo):
        options = info.data.get("options") or []
        if options and v >= len(options):
            raise ValueError("correct_option must index one of the provided options.")
        return v


class QuestionPublic(BaseModel):
    """What a student sees: no correct option."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    subject: Optional[str] = None
    options: List[str]
    tags: List[str] = []


class QuestionResponse(QuestionPublic):
    correct_option: int


class QuestionBatch(BaseModel):
    items: List[QuestionPublic]
    # ids that did not resolve; the caller decides whether a partial set is usable
    missing: List[UUID] = []
