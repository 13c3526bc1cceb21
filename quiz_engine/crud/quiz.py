from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.models.quiz_attempt import QuizAttempt


async def get_quiz_by_id(
    session: AsyncSession,
    quiz_id: int,
    load_relationships: bool = False,
) -> Quiz | None:
    """ID로 퀴즈 조회

    Args:
        session: 데이터베이스 세션
        quiz_id: 퀴즈 ID
        load_relationships: 문항과 과목을 함께 로드할지 여부
    """
    stmt = select(Quiz).where(Quiz.id == quiz_id)

    if load_relationships:
        stmt = stmt.options(
            selectinload(Quiz.questions),
            selectinload(Quiz.course),
        )

    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_quiz_with_questions(session: AsyncSession, quiz_id: int) -> Quiz | None:
    """응시용 퀴즈 조회 (활성 퀴즈만, 문항/과목 포함)"""
    stmt = (
        select(Quiz)
        .where(Quiz.id == quiz_id, Quiz.is_active.is_(True))
        .options(selectinload(Quiz.questions), selectinload(Quiz.course))
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_quiz(
    session: AsyncSession,
    quiz_fields: dict[str, Any],
    questions: list[dict[str, Any]],
) -> Quiz:
    """퀴즈와 문항을 한 트랜잭션으로 생성"""
    quiz = Quiz(**quiz_fields)
    quiz.questions = [QuizQuestion(**q) for q in questions]
    session.add(quiz)
    await session.commit()
    return await get_quiz_by_id(session, quiz.id, load_relationships=True)


async def update_quiz(
    session: AsyncSession,
    quiz: Quiz,
    changes: dict[str, Any],
) -> Quiz:
    """퀴즈 메타데이터 수정 (문항/총점은 변경하지 않음)"""
    for field, value in changes.items():
        setattr(quiz, field, value)
    await session.commit()
    return await get_quiz_by_id(session, quiz.id, load_relationships=True)


async def get_quizzes(
    session: AsyncSession,
    course_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[Sequence[Quiz], int]:
    """활성 퀴즈 목록 조회 (시작 시각 역순, 페이지네이션)"""
    stmt = select(Quiz).where(Quiz.is_active.is_(True))
    if course_id is not None:
        stmt = stmt.where(Quiz.course_id == course_id)
    if search:
        stmt = stmt.where(Quiz.title.contains(search))

    total = await session.scalar(select(func.count()).select_from(stmt.subquery()))

    stmt = (
        stmt.options(selectinload(Quiz.course))
        .order_by(Quiz.start_time.desc(), Quiz.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await session.execute(stmt)
    return result.scalars().all(), total or 0


async def get_quiz_counts(session: AsyncSession, quiz_id: int) -> tuple[int, int]:
    """퀴즈의 (문항 수, 응시 수)"""
    question_count = await session.scalar(
        select(func.count(QuizQuestion.id)).where(QuizQuestion.quiz_id == quiz_id)
    )
    attempt_count = await session.scalar(
        select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz_id)
    )
    return question_count or 0, attempt_count or 0
