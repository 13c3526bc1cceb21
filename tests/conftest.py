"""테스트 공통 fixture (임시 SQLite DB + ASGI 클라이언트)"""
import os

os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from quiz_engine.main import app
from quiz_engine.models import Base, Course, Quiz, QuizQuestion, get_db
from quiz_engine.models.enums import QuestionType, UserRole

INSTRUCTOR_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
STUDENT_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
OTHER_STUDENT_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
ADMIN_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")


def auth_headers(user_id: uuid.UUID, role: UserRole) -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": role.value}


@pytest.fixture
def now():
    """테스트 기준 시각"""
    return datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def test_session_maker(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db_session(test_session_maker):
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_session_maker):
    async def override_get_db():
        async with test_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def course(test_db_session):
    course = Course(id=1, name="데이터베이스 개론", instructor_id=INSTRUCTOR_ID)
    test_db_session.add(course)
    await test_db_session.commit()
    return course


@pytest.fixture
def make_quiz(test_db_session, course, now):
    """객관식(5점) + OX(5점), 제한 시간 10분 퀴즈 생성"""

    async def _make_quiz(**overrides) -> Quiz:
        fields = {
            "course_id": course.id,
            "title": "중간 점검 퀴즈",
            "duration_minutes": 10,
            "start_time": now - timedelta(minutes=1),
            "end_time": now + timedelta(days=1),
            "total_marks": 10,
            "shuffle_questions": False,
            "max_attempts": None,
            "is_active": True,
        }
        fields.update(overrides)
        quiz = Quiz(**fields)
        quiz.questions = [
            QuizQuestion(
                text="SQL에서 중복을 제거하는 키워드는?",
                question_type=QuestionType.MULTIPLE_CHOICE.value,
                marks=5,
                order=1,
                options=["DISTINCT", "UNIQUE", "GROUP", "ORDER"],
                correct_answer="DISTINCT",
            ),
            QuizQuestion(
                text="기본 키는 NULL을 허용한다.",
                question_type=QuestionType.TRUE_FALSE.value,
                marks=5,
                order=2,
                correct_answer="false",
            ),
        ]
        test_db_session.add(quiz)
        await test_db_session.commit()
        return quiz

    return _make_quiz
