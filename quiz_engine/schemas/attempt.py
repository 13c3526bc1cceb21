import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from quiz_engine.models.enums import AttemptStatus
from quiz_engine.schemas.quiz import QuizQuestionResponse


class AttemptStartResponse(BaseModel):
    """응시 시작/재개 응답 스키마"""
    attempt_id: int
    quiz_id: int
    started_at: datetime
    deadline: datetime = Field(..., description="제출 마감 시각 (서버 기준)")
    resumed: bool = Field(False, description="기존 진행 중 응시를 재개했는지 여부")
    questions: list[QuizQuestionResponse]


class AnswerSubmission(BaseModel):
    """문항별 제출 답안"""
    question_id: int
    answer: str


class AttemptSubmitRequest(BaseModel):
    """답안 제출 요청 스키마 (미응답 문항은 생략)"""
    answers: list[AnswerSubmission] = Field(default_factory=list)


class AnswerResultResponse(BaseModel):
    """문항별 채점 결과"""
    question_id: int
    question_text: str
    submitted_answer: str
    correct_answer: str
    is_correct: bool
    marks_awarded: float


class AttemptResultResponse(BaseModel):
    """응시 결과 응답 스키마"""
    attempt_id: int
    quiz_id: int
    quiz_title: str
    student_id: uuid.UUID
    status: AttemptStatus
    started_at: datetime
    submitted_at: datetime | None
    score: float | None
    percentage: float | None
    total_marks: int
    answers: list[AnswerResultResponse] | None = None


class AttemptListResponse(BaseModel):
    """응시 결과 목록 응답 스키마"""
    attempts: list[AttemptResultResponse]
    total: int
