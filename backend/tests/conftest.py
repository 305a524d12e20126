import asyncio
import os
import tempfile
import uuid
from pathlib import Path

import pytest

# the engine is built from DATABASE_URL at import time, so point it at a throwaway file first
_DB_PATH = Path(tempfile.gettempdir()) / f"examgate-test-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"

from fastapi.testclient import TestClient
from sqlalchemy import delete, insert

from examgate.app import app
from examgate.db import async_session_maker, create_db_and_tables, drop_db_and_tables
from examgate.models.assignment_model import Assignment
from examgate.models.exam_model import Exam, exam_questions
from examgate.models.question_model import QuestionDB
from examgate.models.user_model import Gender, User, UserRole
from examgate.security import current_active_user


class Seeder:
    """Writes fixture rows straight through the ORM."""

    def _add(self, *rows):
        async def go():
            async with async_session_maker() as session:
                session.add_all(rows)
                await session.commit()
        asyncio.run(go())
        return rows

    def user(self, role=UserRole.STUDENT, **profile) -> User:
        fields = {
            "email": f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
            "hashed_password": "not-a-real-hash",
            "full_name": "An Nguyen",
            "student_code": "S001",
            "class_name": "10A1",
            "gender": Gender.FEMALE,
        }
        fields.update(profile)
        user = User(
            id=uuid.uuid4(),
            is_active=True,
            is_superuser=False,
            is_verified=True,
            role=role,
            **fields,
        )
        self._add(user)
        return user

    def questions(self, correct_options, option_count=4):
        rows = [
            QuestionDB(
                id=uuid.uuid4(),
                text=f"Question {i + 1}",
                subject="Math",
                options=[f"Option {chr(ord('A') + k)}" for k in range(option_count)],
                correct_option=correct,
                tags=[],
            )
            for i, correct in enumerate(correct_options)
        ]
        self._add(*rows)
        return rows

    def exam(self, questions, duration=30, is_active=True, title="Algebra quiz", created_by=None) -> Exam:
        exam = Exam(
            id=uuid.uuid4(), title=title, subject="Math", duration=duration, is_active=is_active, created_by=created_by
        )

        async def go():
            async with async_session_maker() as session:
                session.add(exam)
                await session.flush()
                links = [{"exam_id": exam.id, "question_id": q.id, "order": i} for i, q in enumerate(questions)]
                if links:
                    await session.execute(insert(exam_questions), links)
                await session.commit()
        asyncio.run(go())
        return exam

    def assignment(self, exam, student, due_at=None, is_active=True) -> Assignment:
        assignment = Assignment(
            id=uuid.uuid4(), exam_id=exam.id, assignee_id=student.id, due_at=due_at, is_active=is_active
        )
        self._add(assignment)
        return assignment

    def delete_question(self, question_id):
        async def go():
            async with async_session_maker() as session:
                await session.execute(delete(QuestionDB).where(QuestionDB.id == question_id))
                await session.commit()
        asyncio.run(go())


async def _reset_tables():
    await drop_db_and_tables()
    await create_db_and_tables()


@pytest.fixture
def db():
    asyncio.run(_reset_tables())
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    return Seeder()


@pytest.fixture
def login_as():
    def _login(user):
        app.dependency_overrides[current_active_user] = lambda: user
        return user
    return _login


@pytest.fixture
def client(db):
    return TestClient(app)


def pytest_sessionfinish(session, exitstatus):
    if _DB_PATH.exists():
        _DB_PATH.unlink()
