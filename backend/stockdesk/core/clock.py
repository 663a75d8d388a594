"""
华尔街时间
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from stockdesk.core.constants import WALL_STREET_TZ


def wall_street_now(now: datetime | None = None) -> datetime:
    """当前美东时间；传入的 naive 时间按 UTC 处理"""
    tz = ZoneInfo(WALL_STREET_TZ)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(tz)


def format_wall_street_time(now: datetime | None = None) -> str:
    """格式化为 'MM/DD/YYYY, HH:MM EST'"""
    return wall_street_now(now).strftime("%m/%d/%Y, %H:%M") + " EST"
