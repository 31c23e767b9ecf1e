"""Time utilities for timezone-aware datetime handling."""

from datetime import datetime, timezone
from typing import Optional
import pytz


# 第三方介面常見的發布時間格式
_PUBLISH_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
)


def utcnow() -> datetime:
    """取得當前 UTC 時間 (tz-aware)"""
    return datetime.now(timezone.utc)


def now_millis() -> int:
    """當前時間 (epoch millis)"""
    return int(utcnow().timestamp() * 1000)


def to_utc(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    轉換時間為 UTC tz-aware datetime

    Args:
        dt: 輸入時間
        tz_name: 原時區名稱 (若 dt 為 naive)

    Returns:
        UTC tz-aware datetime
    """
    if dt.tzinfo is None:
        if tz_name:
            tz = pytz.timezone(tz_name)
            dt = tz.localize(dt)
        else:
            dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_millis(dt: datetime, tz_name: Optional[str] = None) -> int:
    return int(to_utc(dt, tz_name).timestamp() * 1000)


def format_iso8601(dt: datetime) -> str:
    """格式化為 ISO8601 字串"""
    return dt.isoformat()


def parse_publish_time(text: Optional[str], tz_name: Optional[str] = None) -> Optional[int]:
    """
    解析人類可讀的發布時間字串

    Args:
        text: 例如 "2024-05-01 13:20:00" 或 ISO8601
        tz_name: naive 時間所屬時區

    Returns:
        epoch millis；無法解析時為 None
    """
    if not text or not isinstance(text, str):
        return None

    value = text.strip()
    if not value:
        return None

    try:
        return to_millis(datetime.fromisoformat(value.replace("Z", "+00:00")), tz_name)
    except (ValueError, OverflowError):
        pass

    for fmt in _PUBLISH_TIME_FORMATS:
        try:
            return to_millis(datetime.strptime(value, fmt), tz_name)
        except (ValueError, OverflowError):
            continue

    return None
