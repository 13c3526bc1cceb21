from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.api.deps import CurrentUser, get_current_user, require_roles
from quiz_engine.models.base import get_db
from quiz_engine.models.enums import UserRole
from quiz_engine.schemas import attempt as attempt_schema
from quiz_engine.services import attempt_service, grading_service

router = APIRouter(prefix="/attempts", tags=["attempts"])

student_only = require_roles(UserRole.STUDENT)


@router.get("/mine", response_model=attempt_schema.AttemptListResponse)
async def list_my_attempts(
    quiz_id: int | None = Query(None, description="퀴즈 ID"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_only),
):
    """내 응시 결과 목록 API"""
    return await attempt_service.list_student_attempts(db, user.id, quiz_id)


@router.post("/{attempt_id}/submit", response_model=attempt_schema.AttemptResultResponse)
async def submit_attempt(
    attempt_id: int,
    request: attempt_schema.AttemptSubmitRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_only),
):
    """답안 제출 API"""
    return await grading_service.submit_attempt(db, attempt_id, user.id, request, background_tasks=background_tasks)


@router.get("/{attempt_id}", response_model=attempt_schema.AttemptResultResponse)
async def get_attempt_result(
    attempt_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """응시 결과 조회 API (본인, 담당 강사, 관리자)"""
    return await attempt_service.get_attempt_result(db, attempt_id, user.id, user.role)
