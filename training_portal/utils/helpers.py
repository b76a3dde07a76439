from datetime import datetime, date
from typing import Any, Optional

import pytz

from training_portal.config.settings import settings


def utc_now() -> datetime:
    """当前UTC时间（带时区）"""
    return datetime.now(pytz.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite 取回的时间不带时区，统一按 UTC 处理"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def local_today() -> date:
    """按配置时区计算的今天"""
    return datetime.now(pytz.timezone(settings.TIMEZONE)).date()


def format_timestamp(dt: datetime = None) -> str:
    """格式化时间戳"""
    if not dt:
        dt = utc_now()
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_int(value: Any, default: int) -> int:
    """宽松地解析整数，无法解析或为空时返回默认值"""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
