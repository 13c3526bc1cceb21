"""Attempt Service 테스트 (임시 SQLite DB)"""
import random
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import select

from quiz_engine.crud import attempt as attempt_crud
from quiz_engine.exceptions import (
    AttemptAlreadySubmittedError,
    AttemptExpiredError,
    AttemptLimitReachedError,
    QuizEndedError,
    QuizNotFoundError,
    QuizNotStartedError,
    ResultAccessForbiddenError,
)
from quiz_engine.models import QuizAnswer, QuizAttempt
from quiz_engine.models.enums import AttemptStatus, UserRole
from quiz_engine.schemas import attempt as attempt_schema
from quiz_engine.services import attempt_service, grading_service

from tests.conftest import INSTRUCTOR_ID, OTHER_STUDENT_ID, STUDENT_ID


def _answers(*pairs) -> attempt_schema.AttemptSubmitRequest:
    return attempt_schema.AttemptSubmitRequest(
        answers=[attempt_schema.AnswerSubmission(question_id=q, answer=a) for q, a in pairs]
    )


@pytest.mark.asyncio
async def test_start_creates_attempt_with_deadline(test_db_session, make_quiz, now):
    """새 응시 생성: 선언 순서, 마감 = 시작 + 제한 시간"""
    quiz = await make_quiz()

    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    assert started.resumed is False
    assert started.deadline == now + timedelta(minutes=10)
    assert [q.id for q in started.questions] == [q.id for q in quiz.questions]


@pytest.mark.asyncio
async def test_start_hides_correct_answers(test_db_session, make_quiz, now):
    """응시 문항에는 정답이 포함되지 않음"""
    quiz = await make_quiz()

    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    payload = started.model_dump()
    assert all("correct_answer" not in q for q in payload["questions"])


@pytest.mark.asyncio
async def test_resume_returns_same_attempt_and_frozen_order(test_db_session, make_quiz, now):
    """재개 시 같은 응시, 저장된 셔플 순서 그대로"""
    quiz = await make_quiz(shuffle_questions=True)

    first = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    with patch.object(random, "shuffle", side_effect=lambda ids: ids.reverse()) as mock_shuffle:
        resumed = await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=3)
        )

    mock_shuffle.assert_not_called()
    assert resumed.resumed is True
    assert resumed.attempt_id == first.attempt_id
    assert [q.id for q in resumed.questions] == [q.id for q in first.questions]
    assert resumed.deadline == first.deadline


@pytest.mark.asyncio
async def test_shuffle_snapshot_is_permutation(test_db_session, make_quiz, now):
    """셔플 스냅샷은 문항 ID의 순열"""
    quiz = await make_quiz(shuffle_questions=True)

    with patch.object(random, "shuffle", side_effect=lambda ids: ids.reverse()):
        started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    expected = [q.id for q in reversed(quiz.questions)]
    assert [q.id for q in started.questions] == expected
    stored = await test_db_session.get(QuizAttempt, started.attempt_id)
    assert stored.question_order == expected


@pytest.mark.asyncio
async def test_all_correct_scores_full_marks(test_db_session, make_quiz, now):
    """시나리오 1: 2분 안에 모두 정답 → 10점, 100%"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    result = await grading_service.submit_attempt(
        test_db_session,
        started.attempt_id,
        STUDENT_ID,
        _answers((mc.id, "distinct"), (tf.id, " False ")),
        now=now + timedelta(minutes=2),
    )

    assert result.score == 10
    assert result.percentage == 100
    assert result.total_marks == 10
    assert result.status == AttemptStatus.SUBMITTED
    assert all(a.is_correct for a in result.answers)


@pytest.mark.asyncio
async def test_half_correct_scores_half(test_db_session, make_quiz, now):
    """시나리오 2: 객관식 정답, OX 오답 → 5점, 50%"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    result = await grading_service.submit_attempt(
        test_db_session,
        started.attempt_id,
        STUDENT_ID,
        _answers((mc.id, "DISTINCT"), (tf.id, "true")),
        now=now + timedelta(minutes=2),
    )

    assert result.score == 5
    assert result.percentage == 50
    breakdown = {a.question_id: a for a in result.answers}
    assert breakdown[mc.id].marks_awarded == 5
    assert breakdown[tf.id].is_correct is False
    assert breakdown[tf.id].correct_answer == "false"


@pytest.mark.asyncio
async def test_unanswered_question_has_no_answer_row(test_db_session, make_quiz, now):
    """미응답 문항은 0점이며 답안 행이 생기지 않음"""
    quiz = await make_quiz()
    mc, _ = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    result = await grading_service.submit_attempt(
        test_db_session, started.attempt_id, STUDENT_ID, _answers((mc.id, "DISTINCT")), now=now
    )

    assert result.score == 5
    rows = (await test_db_session.execute(
        select(QuizAnswer).where(QuizAnswer.attempt_id == started.attempt_id)
    )).scalars().all()
    assert [r.question_id for r in rows] == [mc.id]
    assert sum(r.marks_awarded for r in rows) == Decimal("5")


@pytest.mark.asyncio
async def test_passive_expiry_on_restart(test_db_session, make_quiz, now):
    """시나리오 3: 마감 후 재시작 → 만료, 0점 처리, 이후 제출은 AlreadySubmitted"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    with pytest.raises(AttemptExpiredError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=11)
        )

    attempt = await test_db_session.get(QuizAttempt, started.attempt_id)
    assert attempt.is_completed is True
    assert attempt.status == AttemptStatus.EXPIRED.value
    assert attempt.score == 0
    assert attempt.percentage == 0

    with pytest.raises(AttemptAlreadySubmittedError):
        await grading_service.submit_attempt(
            test_db_session,
            started.attempt_id,
            STUDENT_ID,
            _answers((mc.id, "DISTINCT"), (tf.id, "false")),
            now=now + timedelta(minutes=12),
        )


@pytest.mark.asyncio
async def test_restart_exactly_at_deadline_expires(test_db_session, make_quiz, now):
    """마감 시각과 같은 시각의 재시작도 만료"""
    quiz = await make_quiz()
    await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    with pytest.raises(AttemptExpiredError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=10)
        )


@pytest.mark.asyncio
async def test_attempt_limit_reached(test_db_session, make_quiz, now):
    """시나리오 4: max_attempts=1, 1회 완료 후 재시작 → AttemptLimitReached"""
    quiz = await make_quiz(max_attempts=1)
    mc, _ = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    await grading_service.submit_attempt(
        test_db_session, started.attempt_id, STUDENT_ID, _answers((mc.id, "DISTINCT")), now=now
    )

    with pytest.raises(AttemptLimitReachedError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=1)
        )


@pytest.mark.asyncio
async def test_expired_attempt_counts_toward_limit(test_db_session, make_quiz, now):
    """만료된 응시도 완료 횟수에 포함"""
    quiz = await make_quiz(max_attempts=1)
    await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    with pytest.raises(AttemptExpiredError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=11)
        )

    with pytest.raises(AttemptLimitReachedError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=12)
        )


@pytest.mark.asyncio
async def test_new_attempt_allowed_after_completion_without_limit(test_db_session, make_quiz, now):
    """횟수 제한이 없으면 완료 후 새 응시 생성"""
    quiz = await make_quiz(max_attempts=None)
    first = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    await grading_service.submit_attempt(test_db_session, first.attempt_id, STUDENT_ID, _answers(), now=now)

    second = await attempt_service.start_or_resume_attempt(
        test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(minutes=1)
    )

    assert second.attempt_id != first.attempt_id
    assert second.resumed is False


@pytest.mark.asyncio
async def test_submit_after_deadline_is_rejected(test_db_session, make_quiz, now):
    """마감 이후 제출 → Expired (채점하지 않고 만료 처리)"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)

    with pytest.raises(AttemptExpiredError):
        await grading_service.submit_attempt(
            test_db_session,
            started.attempt_id,
            STUDENT_ID,
            _answers((mc.id, "DISTINCT"), (tf.id, "false")),
            now=now + timedelta(minutes=10, seconds=1),
        )

    attempt = await test_db_session.get(QuizAttempt, started.attempt_id)
    assert attempt.status == AttemptStatus.EXPIRED.value
    assert attempt.score == 0
    rows = (await test_db_session.execute(
        select(QuizAnswer).where(QuizAnswer.attempt_id == started.attempt_id)
    )).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_double_submit_is_idempotent(test_db_session, make_quiz, now):
    """두 번째 제출은 AlreadySubmitted, 점수 변화 없음"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    started = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    await grading_service.submit_attempt(
        test_db_session, started.attempt_id, STUDENT_ID, _answers((mc.id, "DISTINCT")), now=now
    )

    with pytest.raises(AttemptAlreadySubmittedError):
        await grading_service.submit_attempt(
            test_db_session,
            started.attempt_id,
            STUDENT_ID,
            _answers((mc.id, "DISTINCT"), (tf.id, "false")),
            now=now + timedelta(minutes=1),
        )

    attempt = await test_db_session.get(QuizAttempt, started.attempt_id)
    assert attempt.score == 5


@pytest.mark.asyncio
async def test_start_rejects_quiz_outside_window(test_db_session, make_quiz, now):
    """응시 가능 시간 밖이면 NotStarted / Ended"""
    quiz = await make_quiz()

    with pytest.raises(QuizNotStartedError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now - timedelta(hours=1)
        )
    with pytest.raises(QuizEndedError):
        await attempt_service.start_or_resume_attempt(
            test_db_session, quiz.id, STUDENT_ID, now=now + timedelta(days=2)
        )


@pytest.mark.asyncio
async def test_start_rejects_inactive_quiz(test_db_session, make_quiz, now):
    """비활성 퀴즈는 NotFound"""
    quiz = await make_quiz(is_active=False)

    with pytest.raises(QuizNotFoundError):
        await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)


@pytest.mark.asyncio
async def test_in_progress_uniqueness_enforced_by_storage(test_db_session, make_quiz, now):
    """진행 중 응시 중복 INSERT는 DB 제약으로 거부"""
    quiz = await make_quiz()
    # 중복 INSERT 롤백 후 세션 객체는 만료되므로 ID를 미리 보관
    quiz_id = quiz.id

    first = await attempt_crud.create_attempt(test_db_session, quiz_id, STUDENT_ID, now, [1, 2])
    duplicate = await attempt_crud.create_attempt(test_db_session, quiz_id, STUDENT_ID, now, [1, 2])
    other_student = await attempt_crud.create_attempt(test_db_session, quiz_id, OTHER_STUDENT_ID, now, [1, 2])

    assert first is not None
    assert duplicate is None
    assert other_student is not None


@pytest.mark.asyncio
async def test_concurrent_start_resumes_winner(test_db_session, make_quiz, now):
    """동시 시작 경합: 조회 시점에 없던 응시가 INSERT 시점에 있으면 그 응시를 재개"""
    quiz = await make_quiz()
    quiz_id = quiz.id
    winner = await attempt_crud.create_attempt(test_db_session, quiz_id, STUDENT_ID, now, [q.id for q in quiz.questions])
    winner_id = winner.id

    real_lookup = attempt_crud.get_in_progress_attempt
    calls = []

    async def stale_then_real(session, target_quiz_id, student_id):
        calls.append(target_quiz_id)
        if len(calls) == 1:
            return None
        return await real_lookup(session, target_quiz_id, student_id)

    with patch.object(attempt_crud, "get_in_progress_attempt", side_effect=stale_then_real):
        started = await attempt_service.start_or_resume_attempt(test_db_session, quiz_id, STUDENT_ID, now=now)

    assert started.attempt_id == winner_id
    assert started.resumed is True
    attempts = (await test_db_session.execute(
        select(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id)
    )).scalars().all()
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_list_quiz_attempts_sorted_by_score(test_db_session, make_quiz, now):
    """퀴즈 응시 목록은 점수 내림차순"""
    quiz = await make_quiz()
    mc, tf = quiz.questions
    low = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, STUDENT_ID, now=now)
    await grading_service.submit_attempt(test_db_session, low.attempt_id, STUDENT_ID, _answers((mc.id, "x")), now=now)
    high = await attempt_service.start_or_resume_attempt(test_db_session, quiz.id, OTHER_STUDENT_ID, now=now)
    await grading_service.submit_attempt(
        test_db_session, high.attempt_id, OTHER_STUDENT_ID, _answers((mc.id, "DISTINCT"), (tf.id, "false")), now=now
    )

    result = await attempt_service.list_quiz_attempts(test_db_session, quiz.id, INSTRUCTOR_ID, UserRole.INSTRUCTOR)

    assert result.total == 2
    assert [a.attempt_id for a in result.attempts] == [high.attempt_id, low.attempt_id]
    assert result.attempts[0].answers is None


@pytest.mark.asyncio
async def test_list_quiz_attempts_forbidden_for_other_instructor(test_db_session, make_quiz):
    """다른 과목 강사는 퀴즈 응시 목록 조회 불가"""
    quiz = await make_quiz()

    with pytest.raises(ResultAccessForbiddenError):
        await attempt_service.list_quiz_attempts(test_db_session, quiz.id, OTHER_STUDENT_ID, UserRole.INSTRUCTOR)


@pytest.mark.asyncio
async def test_list_quiz_attempts_quiz_not_found(test_db_session, course):
    """존재하지 않는 퀴즈"""
    with pytest.raises(QuizNotFoundError):
        await attempt_service.list_quiz_attempts(test_db_session, 999, INSTRUCTOR_ID, UserRole.ADMIN)


@pytest.mark.asyncio
async def test_restart_after_deadline_when_submit_won_race(test_db_session, make_quiz, now):
    """만료 처리 직전에 제출이 먼저 완료되면 Expired 대신 새 응시를 시작"""
    quiz = await make_quiz()
    quiz_id = quiz.id
    first = await attempt_service.start_or_resume_attempt(test_db_session, quiz_id, STUDENT_ID, now=now)
    later = now + timedelta(minutes=11)

    real_expire = attempt_service.expire_attempt

    async def submit_then_expire(session, attempt, expire_now):
        # 동시 제출이 먼저 커밋된 상황
        await attempt_crud.complete_attempt(
            session,
            attempt.id,
            status=AttemptStatus.SUBMITTED,
            submitted_at=now + timedelta(minutes=9),
            score=Decimal("5"),
            percentage=Decimal("50"),
        )
        await session.commit()
        return await real_expire(session, attempt, expire_now)

    with patch.object(attempt_service, "expire_attempt", side_effect=submit_then_expire) as mock_expire:
        started = await attempt_service.start_or_resume_attempt(test_db_session, quiz_id, STUDENT_ID, now=later)

    mock_expire.assert_called_once()
    assert started.resumed is False
    assert started.attempt_id != first.attempt_id
    previous = await test_db_session.get(QuizAttempt, first.attempt_id)
    assert previous.status == AttemptStatus.SUBMITTED.value
    assert previous.score == 5


@pytest.mark.asyncio
async def test_restart_after_deadline_when_submit_won_race_hits_limit(test_db_session, make_quiz, now):
    """제출이 먼저 완료되어 횟수를 채웠으면 AttemptLimitReached"""
    quiz = await make_quiz(max_attempts=1)
    quiz_id = quiz.id
    await attempt_service.start_or_resume_attempt(test_db_session, quiz_id, STUDENT_ID, now=now)

    async def submit_first(session, attempt, expire_now):
        await attempt_crud.complete_attempt(
            session,
            attempt.id,
            status=AttemptStatus.SUBMITTED,
            submitted_at=now + timedelta(minutes=9),
            score=Decimal("0"),
            percentage=Decimal("0"),
        )
        await session.commit()
        return False

    with patch.object(attempt_service, "expire_attempt", side_effect=submit_first):
        with pytest.raises(AttemptLimitReachedError):
            await attempt_service.start_or_resume_attempt(
                test_db_session, quiz_id, STUDENT_ID, now=now + timedelta(minutes=11)
            )
