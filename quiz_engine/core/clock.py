from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """서버 기준 현재 시각 (UTC, timezone-aware)"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """DB에서 naive로 읽힌 값(SQLite)은 UTC로 간주"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def attempt_deadline(started_at: datetime, duration_minutes: int) -> datetime:
    """응시 마감 시각 = 시작 시각 + 제한 시간"""
    return as_utc(started_at) + timedelta(minutes=duration_minutes)
