import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Numeric, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiz_engine.models.base import Base, TimestampMixin
from quiz_engine.models.enums import AttemptStatus


class QuizAttempt(Base, TimestampMixin):
    __tablename__ = "quiz_attempts"

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_id: Mapped[int] = mapped_column(ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=AttemptStatus.IN_PROGRESS.value, nullable=False)
    score: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), default=None)
    # 응시 생성 시 고정된 문항 순서 (재개 시 재셔플 금지)
    question_order: Mapped[list[int]] = mapped_column(JSON, nullable=False)

    quiz: Mapped["Quiz"] = relationship("Quiz", back_populates="attempts")
    answers: Mapped[list["QuizAnswer"]] = relationship(
        "QuizAnswer",
        back_populates="attempt",
        order_by="QuizAnswer.id",
    )


# (quiz, student)당 진행 중 응시는 최대 1개 (DB 레벨 보장)
Index(
    "uq_quiz_attempts_in_progress",
    QuizAttempt.quiz_id,
    QuizAttempt.student_id,
    unique=True,
    postgresql_where=QuizAttempt.is_completed == false(),
    sqlite_where=QuizAttempt.is_completed == false(),
)
