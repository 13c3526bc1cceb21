import logging
import math
import uuid
from datetime import datetime

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.core.clock import as_utc, utc_now
from quiz_engine.crud import attempt as attempt_crud, course as course_crud, quiz as quiz_crud
from quiz_engine.exceptions import (
    CourseNotFoundError,
    InvalidQuizRequestError,
    QuizEndedError,
    QuizNotFoundError,
    QuizNotStartedError,
)
from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.schemas import quiz as quiz_schema
from quiz_engine.services import notification_service

logger = logging.getLogger(__name__)


def ordered_questions(quiz: Quiz) -> list[QuizQuestion]:
    """선언된 표시 순서대로 정렬된 문항"""
    return sorted(quiz.questions, key=lambda q: (q.order, q.id))


async def get_quiz_for_taking(
    session: AsyncSession,
    quiz_id: int,
    now: datetime | None = None,
) -> Quiz:
    """응시 가능한 퀴즈 조회 (문항 포함, 부수효과 없음)

    비활성/삭제된 퀴즈는 NotFound, 응시 가능 시간 밖이면 NotStarted/Ended.
    """
    now = now or utc_now()
    quiz = await quiz_crud.get_active_quiz_with_questions(session, quiz_id)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    if now < as_utc(quiz.start_time):
        raise QuizNotStartedError(quiz_id)
    if now > as_utc(quiz.end_time):
        raise QuizEndedError(quiz_id)

    return quiz


async def get_quiz_detail_for_taking(
    session: AsyncSession,
    quiz_id: int,
    now: datetime | None = None,
) -> quiz_schema.QuizDetailResponse:
    """응시 전 퀴즈 미리보기 (선언 순서, 정답 미포함)"""
    quiz = await get_quiz_for_taking(session, quiz_id, now)
    return quiz_schema.QuizDetailResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        duration_minutes=quiz.duration_minutes,
        start_time=quiz.start_time,
        end_time=quiz.end_time,
        total_marks=quiz.total_marks,
        questions=[quiz_schema.QuizQuestionResponse.model_validate(q) for q in ordered_questions(quiz)],
    )


async def _to_quiz_response(session: AsyncSession, quiz: Quiz) -> quiz_schema.QuizResponse:
    question_count, attempt_count = await quiz_crud.get_quiz_counts(session, quiz.id)
    return quiz_schema.QuizResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        duration_minutes=quiz.duration_minutes,
        start_time=quiz.start_time,
        end_time=quiz.end_time,
        total_marks=quiz.total_marks,
        is_active=quiz.is_active,
        shuffle_questions=quiz.shuffle_questions,
        max_attempts=quiz.max_attempts,
        course_id=quiz.course_id,
        course_name=quiz.course.name if quiz.course else "",
        question_count=question_count,
        attempt_count=attempt_count,
        created_at=quiz.created_at,
    )


async def create_quiz(
    session: AsyncSession,
    request: quiz_schema.QuizCreateRequest,
    background_tasks: BackgroundTasks | None = None,
) -> quiz_schema.QuizResponse:
    """퀴즈 생성 (총점은 생성 시점 배점 합계로 고정)"""
    course = await course_crud.get_course_by_id(session, request.course_id)
    if not course:
        raise CourseNotFoundError(request.course_id)

    quiz_fields = {
        "course_id": request.course_id,
        "title": request.title,
        "description": request.description,
        "duration_minutes": request.duration_minutes,
        "start_time": as_utc(request.start_time),
        "end_time": as_utc(request.end_time),
        "total_marks": sum(q.marks for q in request.questions),
        "shuffle_questions": request.shuffle_questions,
        "max_attempts": request.max_attempts,
        "is_active": True,
    }
    questions = [
        {
            "text": q.text,
            "question_type": q.question_type.value,
            "marks": q.marks,
            "order": q.order,
            "options": q.options,
            "correct_answer": q.correct_answer,
        }
        for q in request.questions
    ]

    try:
        quiz = await quiz_crud.create_quiz(session, quiz_fields, questions)
    except Exception as e:
        logger.error(f"퀴즈 생성 실패: {e}, course_id={request.course_id}", exc_info=True)
        await session.rollback()
        raise

    logger.info(
        f"퀴즈 생성 성공: quiz_id={quiz.id}, question_count={len(questions)}, "
        f"total_marks={quiz.total_marks}"
    )
    await notification_service.send_or_schedule(
        background_tasks, notification_service.notify_quiz_available, quiz.course_id, quiz.id, quiz.title
    )
    return await _to_quiz_response(session, quiz)


async def get_quiz(session: AsyncSession, quiz_id: int) -> quiz_schema.QuizResponse:
    """퀴즈 조회"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_relationships=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)
    return await _to_quiz_response(session, quiz)


async def update_quiz(
    session: AsyncSession,
    quiz_id: int,
    request: quiz_schema.QuizUpdateRequest,
) -> quiz_schema.QuizResponse:
    """퀴즈 메타데이터 수정 (관리자/강사)"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_relationships=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    # description, max_attempts만 명시적 null 허용 (max_attempts=null → 무제한)
    changes = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if value is not None or field in ("description", "max_attempts")
    }
    for field in ("start_time", "end_time"):
        if changes.get(field) is not None:
            changes[field] = as_utc(changes[field])

    start_time = changes.get("start_time") or as_utc(quiz.start_time)
    end_time = changes.get("end_time") or as_utc(quiz.end_time)
    if start_time >= end_time:
        raise InvalidQuizRequestError("start_time은 end_time보다 빨라야 합니다")

    quiz = await quiz_crud.update_quiz(session, quiz, changes)
    logger.info(f"퀴즈 수정: quiz_id={quiz_id}, fields={sorted(changes)}")
    return await _to_quiz_response(session, quiz)


async def list_quizzes(
    session: AsyncSession,
    course_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
    student_id: uuid.UUID | None = None,
) -> quiz_schema.QuizListResponse:
    """퀴즈 목록 조회 (학생이면 본인 완료 응시 정보 포함)"""
    quizzes, total = await quiz_crud.get_quizzes(session, course_id, search, page, page_size)

    my_attempts = {}
    if student_id is not None:
        # 최근 제출 순이므로 퀴즈별 첫 항목이 최신 응시
        for attempt in await attempt_crud.get_completed_attempts_by_student(session, student_id):
            my_attempts.setdefault(attempt.quiz_id, attempt)

    items = []
    for quiz in quizzes:
        attempt = my_attempts.get(quiz.id)
        items.append(
            quiz_schema.QuizListItemResponse(
                id=quiz.id,
                title=quiz.title,
                start_time=quiz.start_time,
                end_time=quiz.end_time,
                duration_minutes=quiz.duration_minutes,
                total_marks=quiz.total_marks,
                course_name=quiz.course.name if quiz.course else "",
                has_attempted=attempt is not None,
                my_attempt_id=attempt.id if attempt else None,
                my_score=attempt.score if attempt else None,
            )
        )

    return quiz_schema.QuizListResponse(
        quizzes=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if page_size else 0,
    )
