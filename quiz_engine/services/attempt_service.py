"""응시 라이프사이클 관리

상태: 미응시(행 없음) → 진행 중 → 제출 완료 | 만료 (둘 다 종료 상태)

- (quiz, student)당 진행 중 응시는 DB 부분 유니크 인덱스로 최대 1개만 허용한다.
- 문항 순서는 응시 생성 시 한 번 정해 저장하고, 재개 시 그대로 재사용한다.
- 마감은 서버 시각 기준이며, 다음 시작/제출 호출 시점에 지연 감지한다 (백그라운드 정리 없음).
  시작 시점에 만료가 감지된 응시는 답안 없이 0점 처리된다 (서버가 받은 답안이 없음).
"""
import logging
import random
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.core.clock import as_utc, attempt_deadline, utc_now
from quiz_engine.crud import attempt as attempt_crud, course as course_crud, quiz as quiz_crud
from quiz_engine.exceptions import (
    AttemptConflictError,
    AttemptExpiredError,
    AttemptLimitReachedError,
    AttemptNotFoundError,
    QuizNotFoundError,
    ResultAccessForbiddenError,
)
from quiz_engine.models.enums import AttemptStatus, UserRole
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_attempt import QuizAttempt
from quiz_engine.schemas import attempt as attempt_schema, quiz as quiz_schema
from quiz_engine.services import access_guard, quiz_service

logger = logging.getLogger(__name__)


def build_question_order(quiz: Quiz) -> list[int]:
    """응시별 문항 순서 스냅샷 생성"""
    question_ids = [q.id for q in quiz_service.ordered_questions(quiz)]
    if quiz.shuffle_questions:
        random.shuffle(question_ids)
    return question_ids


def _questions_in_attempt_order(quiz: Quiz, attempt: QuizAttempt) -> list[quiz_schema.QuizQuestionResponse]:
    questions_by_id = {q.id: q for q in quiz.questions}
    return [
        quiz_schema.QuizQuestionResponse.model_validate(questions_by_id[question_id])
        for question_id in attempt.question_order
        if question_id in questions_by_id
    ]


def _start_response(
    quiz: Quiz,
    attempt: QuizAttempt,
    resumed: bool,
) -> attempt_schema.AttemptStartResponse:
    return attempt_schema.AttemptStartResponse(
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        started_at=as_utc(attempt.started_at),
        deadline=attempt_deadline(attempt.started_at, quiz.duration_minutes),
        resumed=resumed,
        questions=_questions_in_attempt_order(quiz, attempt),
    )


async def expire_attempt(
    session: AsyncSession,
    attempt: QuizAttempt,
    now: datetime,
) -> bool:
    """마감이 지난 응시를 0점 만료 처리 (답안 행은 만들지 않음)

    다른 요청이 먼저 완료 처리했으면 False.
    """
    try:
        expired = await attempt_crud.complete_attempt(
            session,
            attempt.id,
            status=AttemptStatus.EXPIRED,
            submitted_at=now,
            score=Decimal("0"),
            percentage=Decimal("0"),
        )
        await session.commit()
    except Exception as e:
        logger.error(f"응시 만료 처리 실패: {e}, attempt_id={attempt.id}", exc_info=True)
        await session.rollback()
        raise

    if expired:
        logger.info(f"응시 만료 처리: attempt_id={attempt.id}, quiz_id={attempt.quiz_id}")
    return expired


async def start_or_resume_attempt(
    session: AsyncSession,
    quiz_id: int,
    student_id: uuid.UUID,
    now: datetime | None = None,
    _retry_on_conflict: bool = True,
) -> attempt_schema.AttemptStartResponse:
    """응시 시작 또는 진행 중 응시 재개"""
    now = now or utc_now()
    quiz = await quiz_service.get_quiz_for_taking(session, quiz_id, now)

    if quiz.max_attempts is not None:
        completed_count = await attempt_crud.count_completed_attempts(session, quiz_id, student_id)
        if completed_count >= quiz.max_attempts:
            raise AttemptLimitReachedError(quiz_id, quiz.max_attempts)

    existing = await attempt_crud.get_in_progress_attempt(session, quiz_id, student_id)
    if existing:
        if now >= attempt_deadline(existing.started_at, quiz.duration_minutes):
            if await expire_attempt(session, existing, now):
                raise AttemptExpiredError(existing.id)
            # 동시 제출이 먼저 완료한 경우: 응시 횟수부터 다시 판단
            logger.info(f"만료 처리 전 응시가 완료됨: attempt_id={existing.id}, quiz_id={quiz_id}")
            return await start_or_resume_attempt(session, quiz_id, student_id, now, _retry_on_conflict)

        logger.info(f"응시 재개: attempt_id={existing.id}, quiz_id={quiz_id}, student_id={student_id}")
        return _start_response(quiz, existing, resumed=True)

    attempt = await attempt_crud.create_attempt(
        session,
        quiz_id=quiz_id,
        student_id=student_id,
        started_at=now,
        question_order=build_question_order(quiz),
    )
    if attempt is None:
        # 동시 시작 요청이 먼저 응시를 만든 경우: 처음부터 다시 판단 (1회)
        if not _retry_on_conflict:
            raise AttemptConflictError(quiz_id)
        return await start_or_resume_attempt(session, quiz_id, student_id, now, _retry_on_conflict=False)

    logger.info(
        f"응시 시작: attempt_id={attempt.id}, quiz_id={quiz_id}, student_id={student_id}, "
        f"shuffled={quiz.shuffle_questions}"
    )
    return _start_response(quiz, attempt, resumed=False)


def build_attempt_result(
    attempt: QuizAttempt,
    include_answers: bool = True,
) -> attempt_schema.AttemptResultResponse:
    """저장된 응시/답안으로 결과 응답 구성 (answers 관계가 로드되어 있어야 함)"""
    answers = None
    if include_answers:
        answers = [
            attempt_schema.AnswerResultResponse(
                question_id=answer.question_id,
                question_text=answer.question.text,
                submitted_answer=answer.answer_text,
                correct_answer=answer.question.correct_answer,
                is_correct=answer.is_correct,
                marks_awarded=answer.marks_awarded,
            )
            for answer in attempt.answers
        ]

    return attempt_schema.AttemptResultResponse(
        attempt_id=attempt.id,
        quiz_id=attempt.quiz_id,
        quiz_title=attempt.quiz.title,
        student_id=attempt.student_id,
        status=attempt.status,
        started_at=as_utc(attempt.started_at),
        submitted_at=as_utc(attempt.submitted_at) if attempt.submitted_at else None,
        score=attempt.score,
        percentage=attempt.percentage,
        total_marks=attempt.quiz.total_marks,
        answers=answers,
    )


async def get_attempt_result(
    session: AsyncSession,
    attempt_id: int,
    requester_id: uuid.UUID,
    requester_role: UserRole | str,
) -> attempt_schema.AttemptResultResponse:
    """응시 결과 조회 (본인, 담당 강사, 관리자만)"""
    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id, load_answers=True)
    if not attempt:
        raise AttemptNotFoundError(attempt_id)

    instructor_id = await course_crud.get_course_instructor_id(session, attempt.quiz.course_id)
    access_guard.ensure_can_view_result(attempt, requester_id, requester_role, instructor_id)

    return build_attempt_result(attempt)


async def list_quiz_attempts(
    session: AsyncSession,
    quiz_id: int,
    requester_id: uuid.UUID,
    requester_role: UserRole | str,
) -> attempt_schema.AttemptListResponse:
    """퀴즈의 완료된 응시 목록 (점수 내림차순)"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    instructor_id = await course_crud.get_course_instructor_id(session, quiz.course_id)
    if not access_guard.can_manage_quiz(requester_id, requester_role, instructor_id):
        raise ResultAccessForbiddenError(quiz_id)

    attempts = await attempt_crud.get_completed_attempts_by_quiz(session, quiz_id)
    results = [build_attempt_result(a, include_answers=False) for a in attempts]
    return attempt_schema.AttemptListResponse(attempts=results, total=len(results))


async def list_student_attempts(
    session: AsyncSession,
    student_id: uuid.UUID,
    quiz_id: int | None = None,
) -> attempt_schema.AttemptListResponse:
    """학생 본인의 완료된 응시 목록 (최근 제출 순)"""
    attempts = await attempt_crud.get_completed_attempts_by_student(session, student_id, quiz_id)
    results = [build_attempt_result(a, include_answers=False) for a in attempts]
    return attempt_schema.AttemptListResponse(attempts=results, total=len(results))
