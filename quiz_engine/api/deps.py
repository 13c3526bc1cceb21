import uuid
from dataclasses import dataclass

from fastapi import Depends, Header

from quiz_engine.exceptions import MissingCredentialsError, RoleNotAllowedError
from quiz_engine.models.enums import UserRole


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    role: UserRole


async def get_current_user(
    x_user_id: str | None = Header(None, description="요청자 ID (인증 게이트웨이가 주입)"),
    x_user_role: str | None = Header(None, description="요청자 역할 (Student | Instructor | Admin)"),
) -> CurrentUser:
    """게이트웨이가 전달한 헤더로 요청자 식별"""
    if not x_user_id or not x_user_role:
        raise MissingCredentialsError()
    try:
        return CurrentUser(id=uuid.UUID(x_user_id), role=UserRole(x_user_role))
    except ValueError:
        raise MissingCredentialsError("요청자 정보 형식이 올바르지 않습니다")


def require_roles(*roles: UserRole):
    """지정한 역할만 허용하는 의존성"""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise RoleNotAllowedError(user.role.value)
        return user

    return dependency
