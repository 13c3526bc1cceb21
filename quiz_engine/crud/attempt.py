import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quiz_engine.models.enums import AttemptStatus
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_answer import QuizAnswer
from quiz_engine.models.quiz_attempt import QuizAttempt

logger = logging.getLogger(__name__)


async def count_completed_attempts(
    session: AsyncSession,
    quiz_id: int,
    student_id: uuid.UUID,
) -> int:
    """완료(제출 + 만료)된 응시 횟수"""
    stmt = select(func.count(QuizAttempt.id)).where(
        QuizAttempt.quiz_id == quiz_id,
        QuizAttempt.student_id == student_id,
        QuizAttempt.is_completed.is_(True),
    )
    return await session.scalar(stmt) or 0


async def get_in_progress_attempt(
    session: AsyncSession,
    quiz_id: int,
    student_id: uuid.UUID,
) -> QuizAttempt | None:
    """진행 중인 응시 조회 (최대 1개)"""
    stmt = select(QuizAttempt).where(
        QuizAttempt.quiz_id == quiz_id,
        QuizAttempt.student_id == student_id,
        QuizAttempt.is_completed.is_(False),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_attempt(
    session: AsyncSession,
    quiz_id: int,
    student_id: uuid.UUID,
    started_at: datetime,
    question_order: list[int],
) -> QuizAttempt | None:
    """응시 생성 (조건부 INSERT)

    진행 중 응시 유니크 인덱스에 걸리면 None 반환 (동시 시작 요청이 먼저 생성한 경우).
    """
    attempt = QuizAttempt(
        quiz_id=quiz_id,
        student_id=student_id,
        started_at=started_at,
        is_completed=False,
        status=AttemptStatus.IN_PROGRESS.value,
        question_order=question_order,
    )
    session.add(attempt)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info(f"진행 중 응시 중복 생성 감지: quiz_id={quiz_id}, student_id={student_id}")
        return None
    return attempt


async def get_attempt_by_id(
    session: AsyncSession,
    attempt_id: int,
    load_answers: bool = False,
) -> QuizAttempt | None:
    """ID로 응시 조회 (퀴즈/문항/과목 포함)

    Args:
        session: 데이터베이스 세션
        attempt_id: 응시 ID
        load_answers: 채점된 답안(문항 포함)까지 로드할지 여부
    """
    stmt = (
        select(QuizAttempt)
        .where(QuizAttempt.id == attempt_id)
        .options(
            selectinload(QuizAttempt.quiz).selectinload(Quiz.questions),
            selectinload(QuizAttempt.quiz).selectinload(Quiz.course),
        )
    )
    if load_answers:
        stmt = stmt.options(selectinload(QuizAttempt.answers).selectinload(QuizAnswer.question))

    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def complete_attempt(
    session: AsyncSession,
    attempt_id: int,
    status: AttemptStatus,
    submitted_at: datetime,
    score: Decimal,
    percentage: Decimal,
) -> bool:
    """미완료 응시를 완료 처리 (compare-and-set)

    커밋은 호출자가 수행한다. 이미 완료된 응시면 False.
    """
    stmt = (
        update(QuizAttempt)
        .where(QuizAttempt.id == attempt_id, QuizAttempt.is_completed == False)  # noqa: E712
        .values(
            is_completed=True,
            status=status.value,
            submitted_at=submitted_at,
            score=score,
            percentage=percentage,
        )
        .execution_options(synchronize_session="evaluate")
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


def add_answers(session: AsyncSession, answers: list[QuizAnswer]) -> None:
    """채점된 답안 추가 (커밋은 호출자가 수행)"""
    session.add_all(answers)


async def get_completed_attempts_by_quiz(
    session: AsyncSession,
    quiz_id: int,
) -> Sequence[QuizAttempt]:
    """퀴즈의 완료된 응시 목록 (점수 내림차순)"""
    stmt = (
        select(QuizAttempt)
        .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.is_completed.is_(True))
        .options(selectinload(QuizAttempt.quiz))
        .order_by(QuizAttempt.score.desc(), QuizAttempt.submitted_at.asc(), QuizAttempt.id.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_completed_attempts_by_student(
    session: AsyncSession,
    student_id: uuid.UUID,
    quiz_id: int | None = None,
) -> Sequence[QuizAttempt]:
    """학생의 완료된 응시 목록 (최근 제출 순)"""
    stmt = select(QuizAttempt).where(
        QuizAttempt.student_id == student_id,
        QuizAttempt.is_completed.is_(True),
    )
    if quiz_id is not None:
        stmt = stmt.where(QuizAttempt.quiz_id == quiz_id)

    stmt = stmt.options(selectinload(QuizAttempt.quiz)).order_by(
        QuizAttempt.submitted_at.desc(), QuizAttempt.id.desc()
    )
    result = await session.execute(stmt)
    return result.scalars().all()
