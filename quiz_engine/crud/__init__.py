from quiz_engine.crud.attempt import (
    add_answers,
    complete_attempt,
    count_completed_attempts,
    create_attempt,
    get_attempt_by_id,
    get_completed_attempts_by_quiz,
    get_completed_attempts_by_student,
    get_in_progress_attempt,
)
from quiz_engine.crud.course import (
    get_course_by_id,
    get_course_instructor_id,
)
from quiz_engine.crud.quiz import (
    create_quiz,
    get_active_quiz_with_questions,
    get_quiz_by_id,
    get_quiz_counts,
    get_quizzes,
    update_quiz,
)

__all__ = [
    "get_course_by_id",
    "get_course_instructor_id",
    "get_quiz_by_id",
    "get_active_quiz_with_questions",
    "get_quizzes",
    "get_quiz_counts",
    "create_quiz",
    "update_quiz",
    "count_completed_attempts",
    "get_in_progress_attempt",
    "create_attempt",
    "get_attempt_by_id",
    "complete_attempt",
    "add_answers",
    "get_completed_attempts_by_quiz",
    "get_completed_attempts_by_student",
]
