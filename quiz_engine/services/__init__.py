from quiz_engine.services.access_guard import can_view_result
from quiz_engine.services.attempt_service import (
    get_attempt_result,
    list_quiz_attempts,
    list_student_attempts,
    start_or_resume_attempt,
)
from quiz_engine.services.grading_service import grade_answer, submit_attempt
from quiz_engine.services.notification_service import notify_grade_posted
from quiz_engine.services.quiz_service import (
    create_quiz,
    get_quiz,
    get_quiz_for_taking,
    list_quizzes,
    update_quiz,
)

__all__ = [
    "can_view_result",
    "create_quiz",
    "get_quiz",
    "get_quiz_for_taking",
    "list_quizzes",
    "update_quiz",
    "start_or_resume_attempt",
    "submit_attempt",
    "grade_answer",
    "get_attempt_result",
    "list_quiz_attempts",
    "list_student_attempts",
    "notify_grade_posted",
]
