import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiz_engine.models.base import Base, TimestampMixin


class Course(Base, TimestampMixin):
    """과목 (강의 관리 모듈 소유, 여기서는 담당 강사/이름 조회용)"""
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    instructor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    quizzes: Mapped[list["Quiz"]] = relationship("Quiz", back_populates="course")
