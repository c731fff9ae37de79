"""Time helpers. Datetimes are stored as naive UTC; messages are rendered in DISPLAY_TIMEZONE."""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import DISPLAY_TIMEZONE

_WEEKDAYS_JA = ["月", "火", "水", "木", "金", "土", "日"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_display_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(DISPLAY_TIMEZONE))


def format_datetime_with_weekday(value: datetime) -> str:
    """e.g. "2025年11月15日(土) 21:00" """
    local = to_display_time(value)
    weekday = _WEEKDAYS_JA[local.weekday()]
    return f"{local.year}年{local.month}月{local.day}日({weekday}) {local.strftime('%H:%M')}"


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")
