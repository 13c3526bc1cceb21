import logging
import re
import uuid
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.core.clock import as_utc, attempt_deadline, utc_now
from quiz_engine.core.config import settings
from quiz_engine.crud import attempt as attempt_crud
from quiz_engine.exceptions import (
    AttemptAlreadySubmittedError,
    AttemptExpiredError,
    AttemptNotFoundError,
    InvalidAnswerPayloadError,
)
from quiz_engine.models.enums import AttemptStatus
from quiz_engine.models.quiz import QuizQuestion
from quiz_engine.models.quiz_answer import QuizAnswer
from quiz_engine.schemas import attempt as attempt_schema
from quiz_engine.services import attempt_service, notification_service

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# 단답형 정규화 정책 (설정 answer_normalization)
NORMALIZERS: dict[str, Callable[[str], str]] = {
    "trim_ignore_case": lambda text: text.strip().casefold(),
    "collapse_whitespace": lambda text: _WHITESPACE.sub(" ", text.strip()).casefold(),
}

PERCENT_PRECISION = Decimal("0.01")


def normalize_answer(text: str, policy: str | None = None) -> str:
    """채점 비교용 답안 정규화"""
    normalizer = NORMALIZERS[policy or settings.answer_normalization]
    return normalizer(text)


def grade_answer(correct_answer: str, submitted_answer: str, policy: str | None = None) -> bool:
    """정답 여부 판정 (대소문자 무시, 앞뒤 공백 무시)"""
    return normalize_answer(submitted_answer, policy) == normalize_answer(correct_answer, policy)


def calculate_percentage(score: Decimal, total_marks: int) -> Decimal:
    """100 * score / total_marks (소수 둘째 자리 반올림, 총점 0이면 0)"""
    if total_marks <= 0:
        return Decimal("0")
    return (score * 100 / Decimal(total_marks)).quantize(PERCENT_PRECISION, rounding=ROUND_HALF_UP)


def _validate_answers(
    attempt_id: int,
    answers: list[attempt_schema.AnswerSubmission],
    questions_by_id: dict[int, QuizQuestion],
) -> None:
    seen: set[int] = set()
    for answer in answers:
        if answer.question_id not in questions_by_id:
            raise InvalidAnswerPayloadError(
                f"퀴즈에 없는 문항입니다: question_id={answer.question_id}, attempt_id={attempt_id}"
            )
        if answer.question_id in seen:
            raise InvalidAnswerPayloadError(
                f"같은 문항에 답안이 중복 제출되었습니다: question_id={answer.question_id}"
            )
        seen.add(answer.question_id)


async def submit_attempt(
    session: AsyncSession,
    attempt_id: int,
    student_id: uuid.UUID,
    request: attempt_schema.AttemptSubmitRequest,
    now: datetime | None = None,
    background_tasks: BackgroundTasks | None = None,
) -> attempt_schema.AttemptResultResponse:
    """답안 제출 및 채점 (응시당 정확히 1회)"""
    now = now or utc_now()

    attempt = await attempt_crud.get_attempt_by_id(session, attempt_id)
    if not attempt or attempt.student_id != student_id:
        raise AttemptNotFoundError(attempt_id)

    if attempt.is_completed:
        raise AttemptAlreadySubmittedError(attempt_id)

    quiz = attempt.quiz
    if now > attempt_deadline(attempt.started_at, quiz.duration_minutes):
        if not await attempt_service.expire_attempt(session, attempt, now):
            raise AttemptAlreadySubmittedError(attempt_id)
        logger.warning(f"마감 이후 제출 거부: attempt_id={attempt_id}, student_id={student_id}")
        raise AttemptExpiredError(attempt_id)

    questions_by_id = {q.id: q for q in quiz.questions}
    _validate_answers(attempt_id, request.answers, questions_by_id)

    graded: list[QuizAnswer] = []
    results: list[attempt_schema.AnswerResultResponse] = []
    for answer in request.answers:
        question = questions_by_id[answer.question_id]
        is_correct = grade_answer(question.correct_answer, answer.answer)
        marks_awarded = Decimal(question.marks) if is_correct else Decimal("0")

        graded.append(
            QuizAnswer(
                attempt_id=attempt_id,
                question_id=question.id,
                answer_text=answer.answer,
                is_correct=is_correct,
                marks_awarded=marks_awarded,
            )
        )
        results.append(
            attempt_schema.AnswerResultResponse(
                question_id=question.id,
                question_text=question.text,
                submitted_answer=answer.answer,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                marks_awarded=marks_awarded,
            )
        )

    # 미응답 문항은 0점 (답안 행 없음)
    score = sum((a.marks_awarded for a in graded), Decimal("0"))
    percentage = calculate_percentage(score, quiz.total_marks)

    # is_completed 확인과 설정을 한 트랜잭션에서 (compare-and-set)
    try:
        completed = await attempt_crud.complete_attempt(
            session,
            attempt_id,
            status=AttemptStatus.SUBMITTED,
            submitted_at=now,
            score=score,
            percentage=percentage,
        )
        if not completed:
            await session.rollback()
            raise AttemptAlreadySubmittedError(attempt_id)

        attempt_crud.add_answers(session, graded)
        await session.commit()
    except AttemptAlreadySubmittedError:
        raise
    except Exception as e:
        logger.error(f"답안 저장 실패: {e}, attempt_id={attempt_id}", exc_info=True)
        await session.rollback()
        raise

    logger.info(
        f"응시 제출 완료: attempt_id={attempt_id}, score={score}/{quiz.total_marks}, "
        f"percentage={percentage}, answered={len(graded)}/{len(questions_by_id)}"
    )

    course = quiz.course
    course_name = course.name if course else "Unknown"
    await notification_service.send_or_schedule(
        background_tasks, notification_service.notify_grade_posted, student_id, course_name, quiz.title, score
    )
    if course:
        await notification_service.send_or_schedule(
            background_tasks,
            notification_service.notify_attempt_submitted,
            course.instructor_id,
            student_id,
            quiz.title,
            attempt_id,
        )

    return attempt_schema.AttemptResultResponse(
        attempt_id=attempt_id,
        quiz_id=quiz.id,
        quiz_title=quiz.title,
        student_id=student_id,
        status=AttemptStatus.SUBMITTED,
        started_at=as_utc(attempt.started_at),
        submitted_at=now,
        score=score,
        percentage=percentage,
        total_marks=quiz.total_marks,
        answers=results,
    )
