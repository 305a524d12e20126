from examgate.db import Base, JSONType
from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, Index, UniqueConstraint, Uuid
import uuid


class ExamResult(Base):
    __tablename__ = "exam_results"
    # the database, not the pre-check in submit_result, is what guarantees one result per triple
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", "assignment_id", name="uq_result_exam_student_assignment"),
        Index("ix_exam_results_student", "student_id"),
        Index("ix_exam_results_completed_at", "completed_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    exam_id = Column(Uuid, ForeignKey("exams.id"), nullable=False)
    student_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    assignment_id = Column(Uuid, ForeignKey("assignments.id"), nullable=False)

    # one option index per question, -1 = unanswered
    answers = Column(JSONType, nullable=False)
    score = Column(Float, nullable=False)
    correct_count = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    time_spent_minutes = Column(Float, nullable=False, default=0.0)
    completed_at = Column(DateTime(timezone=True), nullable=False)

    # snapshot of the student's profile at submission time
    student_code = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    class_name = Column(String, nullable=True)
    gender = Column(String, nullable=True)
