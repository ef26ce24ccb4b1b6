"""
工具函数模块
"""
import re
from datetime import datetime, timezone
from typing import Optional

# Go 零值时间，Alertmanager 用它表示「未结束」
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_RFC3339_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})?$"
)


def parse_timestamp(time_str: Optional[str]) -> Optional[datetime]:
    """
    解析 Alertmanager 的 RFC3339 时间并统一为 UTC

    支持格式：
    - 2024-01-15T10:30:00Z
    - 2024-01-15T10:30:00.123Z
    - 2026-02-10T01:47:51.122980105+08:00（纳秒精度，截断到微秒）

    Returns:
        带时区的 UTC datetime；空字符串返回 None

    Raises:
        ValueError: 无法识别的时间格式
    """
    if not time_str:
        return None

    m = _RFC3339_PATTERN.match(time_str.strip())
    if not m:
        raise ValueError(f"无法解析时间格式: {time_str}")

    date_part, time_part, frac, tz = m.groups()
    # fromisoformat 在旧版本只接受 3 或 6 位小数，统一补齐/截断到 6 位
    micro = ("." + (frac[1:] + "000000")[:6]) if frac else ""
    tz_str = "+00:00" if not tz or tz in ("Z", "z") else tz
    try:
        dt = datetime.fromisoformat(f"{date_part}T{time_part}{micro}{tz_str}")
        return dt.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"时间超出范围: {time_str}") from e


def format_utc(dt: Optional[datetime]) -> str:
    """格式化为 YYYY-MM-DD HH:MM:SS UTC，None 按零值时间输出"""
    if dt is None:
        dt = ZERO_TIME
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    # strftime 的 %Y 在部分平台上不会为 1000 年以前补零
    return f"{dt.year:04d}-{dt:%m-%d %H:%M:%S} UTC"


def format_restored_date(dt: Optional[datetime] = None) -> str:
    """ServiceNow u_restored_date 字段格式：MM/DD/YYYY hh:mm:ss AM|PM（UTC）"""
    if dt is None:
        dt = datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%m/%d/%Y %I:%M:%S %p")
