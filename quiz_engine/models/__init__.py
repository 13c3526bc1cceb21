from quiz_engine.models.base import Base, get_db
from quiz_engine.models.course import Course
from quiz_engine.models.enums import AttemptStatus, QuestionType, UserRole
from quiz_engine.models.quiz import Quiz, QuizQuestion
from quiz_engine.models.quiz_answer import QuizAnswer
from quiz_engine.models.quiz_attempt import QuizAttempt

__all__ = [
    "Base",
    "Course",
    "Quiz",
    "QuizQuestion",
    "QuizAttempt",
    "QuizAnswer",
    "QuestionType",
    "AttemptStatus",
    "UserRole",
    "get_db",
]
