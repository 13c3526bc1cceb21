from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.api.deps import CurrentUser, get_current_user, require_roles
from quiz_engine.models.base import get_db
from quiz_engine.models.enums import UserRole
from quiz_engine.schemas import attempt as attempt_schema, quiz as quiz_schema
from quiz_engine.services import attempt_service, quiz_service

router = APIRouter(prefix="/quizzes", tags=["quizzes"])

staff_only = require_roles(UserRole.ADMIN, UserRole.INSTRUCTOR)
student_only = require_roles(UserRole.STUDENT)


@router.post("", response_model=quiz_schema.QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: quiz_schema.QuizCreateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(staff_only),
):
    """퀴즈 생성 API (관리자/강사)"""
    return await quiz_service.create_quiz(db, request, background_tasks)


@router.get("", response_model=quiz_schema.QuizListResponse)
async def list_quizzes(
    course_id: int | None = Query(None, description="과목 ID"),
    search: str | None = Query(None, description="제목 검색어"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """퀴즈 목록 조회 API"""
    student_id = user.id if user.role == UserRole.STUDENT else None
    return await quiz_service.list_quizzes(db, course_id, search, page, page_size, student_id)


@router.get("/{quiz_id}", response_model=quiz_schema.QuizResponse)
async def get_quiz(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """퀴즈 조회 API"""
    return await quiz_service.get_quiz(db, quiz_id)


@router.patch("/{quiz_id}", response_model=quiz_schema.QuizResponse)
async def update_quiz(
    quiz_id: int,
    request: quiz_schema.QuizUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(staff_only),
):
    """퀴즈 수정 API (관리자/강사)"""
    return await quiz_service.update_quiz(db, quiz_id, request)


@router.get("/{quiz_id}/take", response_model=quiz_schema.QuizDetailResponse)
async def get_quiz_for_taking(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_only),
):
    """응시 전 퀴즈 미리보기 API"""
    return await quiz_service.get_quiz_detail_for_taking(db, quiz_id)


@router.post("/{quiz_id}/attempts", response_model=attempt_schema.AttemptStartResponse)
async def start_attempt(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_only),
):
    """응시 시작/재개 API"""
    return await attempt_service.start_or_resume_attempt(db, quiz_id, user.id)


@router.get("/{quiz_id}/attempts", response_model=attempt_schema.AttemptListResponse)
async def list_quiz_attempts(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(staff_only),
):
    """퀴즈 응시 결과 목록 API (점수 내림차순)"""
    return await attempt_service.list_quiz_attempts(db, quiz_id, user.id, user.role)
