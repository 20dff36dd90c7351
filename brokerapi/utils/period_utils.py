"""
수익 지급 기간 계산 유틸리티

모든 시각은 UTC 기준으로 계산합니다. SQLite 등에서 읽어온 naive datetime 은 UTC 로 간주합니다.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from brokerapi.config import Settings, settings as default_settings
from brokerapi.models.position import PositionKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """naive datetime 은 UTC 로 간주하고, aware datetime 은 UTC 로 변환"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def period_length(kind: PositionKind, settings: Optional[Settings] = None) -> timedelta:
    """포지션 종류별 지급 주기 (투자: 일, 라이브 트레이드: 시간)"""
    settings = settings or default_settings
    if kind == PositionKind.LIVE_TRADE:
        return timedelta(hours=settings.LIVE_TRADE_PERIOD_HOURS)
    return timedelta(hours=settings.INVESTMENT_PERIOD_HOURS)


def periods_elapsed(start_time: datetime, now: datetime, length: timedelta) -> int:
    """floor((now - start_time) / length), 시작 전이면 0"""
    elapsed = ensure_utc(now) - ensure_utc(start_time)
    if elapsed <= timedelta(0):
        return 0
    return int(elapsed // length)


def truncate_to_granularity(dt: datetime, length: timedelta) -> datetime:
    """지급 단위(일 이상이면 자정, 그 외 정시)로 절삭"""
    dt = ensure_utc(dt)
    if length >= timedelta(days=1):
        return dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return dt.replace(minute=0, second=0, microsecond=0)


def period_at(start_time: datetime, period_index: int, length: timedelta) -> datetime:
    """period_index 번째 기간의 종료 시각 (절삭), 멱등성 키로 사용"""
    return truncate_to_granularity(ensure_utc(start_time) + length * period_index, length)


def maturity_time(start_time: datetime, duration: int, length: timedelta) -> datetime:
    return ensure_utc(start_time) + length * duration
