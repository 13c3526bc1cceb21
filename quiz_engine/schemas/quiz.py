from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from quiz_engine.core.clock import as_utc
from quiz_engine.models.enums import QuestionType


class QuizQuestionCreateRequest(BaseModel):
    """문항 생성 요청 스키마"""
    text: str = Field(..., min_length=1, description="문항 내용")
    question_type: QuestionType = Field(QuestionType.MULTIPLE_CHOICE, description="문항 유형")
    marks: int = Field(..., gt=0, description="배점")
    order: int = Field(..., description="표시 순서")
    options: list[str] | None = Field(None, description="선택지 (객관식만)")
    correct_answer: str = Field(..., min_length=1, description="정답 (객관식: 선택지 값, OX: true/false)")

    @model_validator(mode="after")
    def drop_options_for_non_choice(self) -> "QuizQuestionCreateRequest":
        """객관식이 아닌 문항은 선택지를 저장하지 않음"""
        if self.question_type != QuestionType.MULTIPLE_CHOICE:
            self.options = None
        return self


class QuizCreateRequest(BaseModel):
    """퀴즈 생성 요청 스키마"""
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    duration_minutes: int = Field(..., gt=0, description="제한 시간 (분)")
    start_time: datetime
    end_time: datetime
    shuffle_questions: bool = False
    max_attempts: int | None = Field(1, gt=0, description="최대 응시 횟수 (None이면 무제한)")
    course_id: int
    questions: list[QuizQuestionCreateRequest] = Field(..., min_length=1, description="문항 목록 (1개 이상)")

    @model_validator(mode="after")
    def validate_window(self) -> "QuizCreateRequest":
        # naive 값은 UTC로 간주 (naive/aware 혼합 비교 방지)
        if as_utc(self.start_time) >= as_utc(self.end_time):
            raise ValueError("start_time은 end_time보다 빨라야 합니다")
        return self


class QuizUpdateRequest(BaseModel):
    """퀴즈 수정 요청 스키마 (문항/총점은 수정 불가)"""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    duration_minutes: int | None = Field(None, gt=0)
    start_time: datetime | None = None
    end_time: datetime | None = None
    shuffle_questions: bool | None = None
    max_attempts: int | None = Field(None, gt=0)
    is_active: bool | None = None


class QuizResponse(BaseModel):
    """퀴즈 응답 스키마"""
    id: int
    title: str
    description: str | None
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    total_marks: int
    is_active: bool
    shuffle_questions: bool
    max_attempts: int | None
    course_id: int
    course_name: str
    question_count: int
    attempt_count: int
    created_at: datetime


class QuizListItemResponse(BaseModel):
    """퀴즈 목록 항목 (요청 학생의 완료 응시 정보 포함)"""
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    total_marks: int
    course_name: str
    has_attempted: bool = False
    my_attempt_id: int | None = None
    my_score: float | None = None


class QuizListResponse(BaseModel):
    """퀴즈 목록 응답 스키마"""
    quizzes: list[QuizListItemResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class QuizQuestionResponse(BaseModel):
    """응시용 문항 응답 스키마 (정답 미포함)"""
    id: int
    text: str
    question_type: QuestionType
    marks: int
    order: int
    options: list[str] | None

    model_config = {"from_attributes": True}


class QuizDetailResponse(BaseModel):
    """응시용 퀴즈 상세 응답 스키마"""
    id: int
    title: str
    description: str | None
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    total_marks: int
    questions: list[QuizQuestionResponse]

    model_config = {"from_attributes": True}
