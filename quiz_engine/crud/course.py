import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.models.course import Course


async def get_course_by_id(session: AsyncSession, course_id: int) -> Course | None:
    """ID로 과목 조회"""
    result = await session.execute(select(Course).where(Course.id == course_id))
    return result.scalar_one_or_none()


async def get_course_instructor_id(session: AsyncSession, course_id: int) -> uuid.UUID | None:
    """과목 담당 강사 ID 조회"""
    return await session.scalar(select(Course.instructor_id).where(Course.id == course_id))
