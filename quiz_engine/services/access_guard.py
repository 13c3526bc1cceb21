import uuid

from quiz_engine.exceptions import ResultAccessForbiddenError
from quiz_engine.models.enums import UserRole
from quiz_engine.models.quiz_attempt import QuizAttempt


def can_view_result(
    attempt: QuizAttempt,
    requester_id: uuid.UUID,
    requester_role: UserRole | str,
    course_instructor_id: uuid.UUID | None,
) -> bool:
    """응시 결과 조회 가능 여부: 본인, 관리자, 해당 과목 담당 강사"""
    if requester_id == attempt.student_id:
        return True
    if requester_role == UserRole.ADMIN:
        return True
    return course_instructor_id is not None and requester_id == course_instructor_id


def ensure_can_view_result(
    attempt: QuizAttempt,
    requester_id: uuid.UUID,
    requester_role: UserRole | str,
    course_instructor_id: uuid.UUID | None,
) -> None:
    if not can_view_result(attempt, requester_id, requester_role, course_instructor_id):
        raise ResultAccessForbiddenError(attempt.id)


def can_manage_quiz(
    requester_id: uuid.UUID,
    requester_role: UserRole | str,
    course_instructor_id: uuid.UUID | None,
) -> bool:
    """퀴즈 전체 응시 결과 조회 가능 여부: 관리자, 해당 과목 담당 강사"""
    if requester_role == UserRole.ADMIN:
        return True
    return course_instructor_id is not None and requester_id == course_instructor_id
