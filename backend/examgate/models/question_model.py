from examgate.db import Base, JSONType
import uuid
from sqlalchemy import Column, Integer, String, Uuid


class QuestionDB(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    text = Column(String, nullable=False)
    subject = Column(String, nullable=True)

    # options are shown in order; correct_option indexes into them (0=A, 1=B, ...)
    options = Column(JSONType, nullable=False)
    correct_option = Column(Integer, nullable=False)
    tags = Column(JSONType, nullable=True)
