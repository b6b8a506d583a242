"""
Date helpers.

A user's "day" does not end at midnight: it ends at their day cut
(daily_reset_time, local to timezone_name). 01:30 with a 04:00 cut still
belongs to the previous day.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time as dtime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from levelup.errors import ValidationError

DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_DAY_CUT = "00:00:00"
WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {tz_name}") from exc


def parse_day_cut(value: Optional[str]) -> dtime:
    raw = (value or DEFAULT_DAY_CUT).strip()
    parts = raw.split(":")
    try:
        nums = [int(p) for p in parts]
    except ValueError as exc:
        raise ValidationError(f"Invalid day cut time: {raw}") from exc
    if not 2 <= len(nums) <= 3:
        raise ValidationError(f"Invalid day cut time: {raw}")
    hours, minutes = nums[0], nums[1]
    seconds = nums[2] if len(nums) == 3 else 0
    if not (0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        raise ValidationError(f"Invalid day cut time: {raw}")
    return dtime(hours, minutes, seconds)


def format_day_cut(t: dtime) -> str:
    return t.strftime("%H:%M:%S")


def local_now(now: datetime, tz_name: Optional[str]) -> datetime:
    return now.astimezone(get_zone(tz_name))


def local_day(now: datetime, tz_name: Optional[str] = None, day_cut: Optional[str] = None) -> date:
    cut = parse_day_cut(day_cut)
    shifted = local_now(now, tz_name) - timedelta(hours=cut.hour, minutes=cut.minute, seconds=cut.second)
    return shifted.date()


def day_bounds_utc(
    day: date,
    tz_name: Optional[str] = None,
    day_cut: Optional[str] = None,
) -> Tuple[datetime, datetime]:
    """[start, end) of a logical day, as UTC datetimes."""
    zone = get_zone(tz_name)
    cut = parse_day_cut(day_cut)
    start = datetime.combine(day, cut, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), cut, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def next_day_cut(now: datetime, tz_name: Optional[str] = None, day_cut: Optional[str] = None) -> datetime:
    _, end = day_bounds_utc(local_day(now, tz_name, day_cut), tz_name, day_cut)
    return end


def monday_of_week(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_days(monday: date) -> List[date]:
    return [monday + timedelta(days=i) for i in range(7)]


def date_range(start: date, end: date) -> List[date]:
    if end < start:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(d: date, years: int) -> date:
    return add_months(d, 12 * years)


def time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def utc_offset_label(dt: datetime) -> str:
    offset = dt.utcoffset() or timedelta(0)
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, rem = divmod(abs(total), 3600)
    return f"UTC{sign}{hours:02d}:{rem // 60:02d}"


def format_minutes(minutes: int) -> str:
    minutes = int(minutes or 0)
    if minutes <= 0:
        return "0"
    h, m = divmod(minutes, 60)
    if h == 0:
        return f"{m}m"
    if m == 0:
        return f"{h}h"
    return f"{h}h {m}m"


def format_duration_until(seconds: float) -> str:
    total_min = max(0, int(seconds // 60))
    h, m = divmod(total_min, 60)
    return f"{h} hours {m} min"
