from quiz_engine.schemas.attempt import (
    AnswerResultResponse,
    AnswerSubmission,
    AttemptListResponse,
    AttemptResultResponse,
    AttemptStartResponse,
    AttemptSubmitRequest,
)
from quiz_engine.schemas.quiz import (
    QuizCreateRequest,
    QuizDetailResponse,
    QuizListItemResponse,
    QuizListResponse,
    QuizQuestionCreateRequest,
    QuizQuestionResponse,
    QuizResponse,
    QuizUpdateRequest,
)

__all__ = [
    "QuizCreateRequest",
    "QuizQuestionCreateRequest",
    "QuizUpdateRequest",
    "QuizResponse",
    "QuizListItemResponse",
    "QuizListResponse",
    "QuizQuestionResponse",
    "QuizDetailResponse",
    "AttemptStartResponse",
    "AnswerSubmission",
    "AttemptSubmitRequest",
    "AnswerResultResponse",
    "AttemptResultResponse",
    "AttemptListResponse",
]
