from examgate.db import Base
from sqlalchemy import String


"""
Exams Model and ExamQuestions Junction Table
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `title` | VARCHAR | |
| `subject` | VARCHAR | Optional |
| `duration` | INTEGER | In minutes |
| `is_active` | BOOLEAN | Default `true` |
| `created_by` | UUID | FK -> Users, nullable |

### ExamQuestions (Junction)
| Column | Type | Notes |
| :--- | :--- | :--- |
| `exam_id` | UUID | FK -> Exams |
| `question_id` | UUID | FK -> Questions |
| `order` | INTEGER | To maintain sequence in exam |
"""

from sqlalchemy import Column, Boolean, Integer, ForeignKey, Table, Uuid
import uuid


# Association (junction) table between exams and questions
exam_questions = Table(
    "exam_questions",
    Base.metadata,
    Column("exam_id", Uuid, ForeignKey("exams.id", ondelete="CASCADE"), primary_key=True),
    Column("question_id", Uuid, ForeignKey("questions.id"), primary_key=True),
    Column("order", Integer, nullable=False),
)


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    duration = Column(Integer, nullable=False)  # in minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
