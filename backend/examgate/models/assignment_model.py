from examgate.db import Base
from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Index, Uuid
from datetime import datetime, timezone
import uuid


def _utcnow():
    return datetime.now(timezone.utc)


class Assignment(Base):
    """One exam handed to one student. Together with exam and student it scopes a single result."""

    __tablename__ = "assignments"
    __table_args__ = (
        Index("ix_assignments_assignee", "assignee_id"),
        Index("ix_assignments_due_at", "due_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    assignee_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    assigned_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    due_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
