"""채점/퀴즈 이벤트 알림 (외부 알림 서비스 연동)

호출자는 DB 트랜잭션 커밋 이후에만 호출한다. 전송 실패는 여기서 로깅만 하고
호출자에게 전파하지 않는다 (채점 결과는 이미 확정된 상태).
API 요청에서는 BackgroundTasks로 넘겨 응답을 막지 않는다.
"""
import logging
import uuid
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

import httpx
from fastapi import BackgroundTasks

from quiz_engine.core.clock import utc_now
from quiz_engine.core.config import settings

logger = logging.getLogger(__name__)


async def _dispatch(event: dict[str, Any]) -> None:
    """이벤트 전송 (webhook 미설정 시 로그만 기록)"""
    event = {**event, "occurred_at": utc_now().isoformat()}
    try:
        if not settings.notification_webhook_url:
            logger.info(f"알림 이벤트 (webhook 미설정): {event}")
            return

        async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
            response = await client.post(settings.notification_webhook_url, json=event)
            response.raise_for_status()
        logger.debug(f"알림 전송 성공: type={event['type']}")
    except Exception as e:
        logger.error(
            f"알림 전송 실패: type={event.get('type')}, error={e.__class__.__name__}: {str(e)}",
            exc_info=True,
        )


async def send_or_schedule(
    background_tasks: BackgroundTasks | None,
    notify: Callable[..., Awaitable[None]],
    *args: Any,
) -> None:
    """응답 전송 이후 알림 실행 (BackgroundTasks가 없으면 바로 전송)"""
    if background_tasks is None:
        await notify(*args)
        return
    background_tasks.add_task(notify, *args)


async def notify_grade_posted(
    student_id: uuid.UUID,
    course_name: str,
    item_title: str,
    score: Decimal,
) -> None:
    """성적 게시 알림 (학생 대상)"""
    await _dispatch({
        "type": "grade_posted",
        "user_id": str(student_id),
        "course_name": course_name,
        "item_title": item_title,
        "score": float(score),
    })


async def notify_quiz_available(course_id: int, quiz_id: int, quiz_title: str) -> None:
    """새 퀴즈 공개 알림 (수강생 대상)"""
    await _dispatch({
        "type": "quiz_available",
        "course_id": course_id,
        "quiz_id": quiz_id,
        "quiz_title": quiz_title,
    })


async def notify_attempt_submitted(
    instructor_id: uuid.UUID,
    student_id: uuid.UUID,
    quiz_title: str,
    attempt_id: int,
) -> None:
    """응시 제출 알림 (담당 강사 대상)"""
    await _dispatch({
        "type": "attempt_submitted",
        "user_id": str(instructor_id),
        "student_id": str(student_id),
        "quiz_title": quiz_title,
        "attempt_id": attempt_id,
    })
