"""
User profile: wallet (gold), experience (xp, level), streak counters and
day-cut settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from levelup import streak
from levelup.dates import (
    DEFAULT_TIMEZONE,
    format_day_cut,
    get_zone,
    local_day,
    parse_day_cut,
    to_iso,
    utc_now,
)
from levelup.db import DbConfig, PgConn, fetch_one, get_conn
from levelup.errors import NotFoundError, ValidationError
from levelup.log import get_logger
from levelup.models import Profile

log = get_logger("profiles")

# priority -> (gold, xp)
PRIORITY_REWARDS: Dict[str, Tuple[int, int]] = {
    "low": (10, 20),
    "medium": (20, 40),
    "high": (50, 100),
}


@dataclass(frozen=True)
class RewardResult:
    gold: int
    xp: int
    leveled_up: bool = False
    new_level: int = 1


# -------------------------
# XP math
# -------------------------

def xp_needed_for_level(level: int) -> int:
    return max(1, int(level)) * 100


def apply_xp(level: int, xp: int, gained: int) -> Tuple[int, int]:
    """Returns (level, xp) after adding `gained`, carrying overflow across levels."""
    xp += gained
    while xp >= xp_needed_for_level(level):
        xp -= xp_needed_for_level(level)
        level += 1
    return level, xp


# -------------------------
# DB
# -------------------------

def _ensure_profile(conn: PgConn, user: str, tz_name: str = DEFAULT_TIMEZONE) -> None:
    conn.execute(
        """
        INSERT INTO user_profiles (id, timezone_name, created_at)
        VALUES (?, ?, ?)
        ON CONFLICT(id) DO NOTHING
        """,
        (user, tz_name, to_iso(utc_now())),
    )


def _get_profile(conn: PgConn, user: str) -> Profile:
    row = fetch_one(conn, "SELECT * FROM user_profiles WHERE id=?", (user,))
    if row is None:
        raise NotFoundError("Profile not found.")
    return Profile.from_row(row)


def profile_today(profile: Profile, now: Optional[datetime] = None) -> date:
    return local_day(now or utc_now(), profile.timezone_name, profile.daily_reset_time)


def _add_rewards(conn: PgConn, user: str, gold: int, xp: int) -> RewardResult:
    p = _get_profile(conn, user)
    new_level, new_xp = apply_xp(p.level, p.xp, int(xp))
    conn.execute(
        "UPDATE user_profiles SET gold=?, xp=?, level=? WHERE id=?",
        (p.gold + int(gold), new_xp, new_level, user),
    )
    leveled_up = new_level > p.level
    if leveled_up:
        log.info("%s reached level %d", user, new_level)
    return RewardResult(gold=int(gold), xp=int(xp), leveled_up=leveled_up, new_level=new_level)


def get_profile(
    cfg: DbConfig,
    user: str,
    now: Optional[datetime] = None,
    default_timezone: str = DEFAULT_TIMEZONE,
) -> Profile:
    """Fetch (creating on first access) and bring the streak up to date."""
    with get_conn(cfg) as conn:
        _ensure_profile(conn, user, default_timezone)
        profile = _get_profile(conn, user)
        streak._recalculate(conn, user, profile_today(profile, now))
        return _get_profile(conn, user)


def add_rewards(cfg: DbConfig, user: str, gold: int, xp: int) -> RewardResult:
    with get_conn(cfg) as conn:
        return _add_rewards(conn, user, gold, xp)


def update_settings(cfg: DbConfig, user: str, *, daily_reset_time: str, timezone_name: str) -> Profile:
    cut = format_day_cut(parse_day_cut(daily_reset_time))
    get_zone(timezone_name)
    with get_conn(cfg) as conn:
        conn.execute(
            "UPDATE user_profiles SET daily_reset_time=?, timezone_name=? WHERE id=?",
            (cut, timezone_name, user),
        )
        profile = _get_profile(conn, user)
    log.info("Updated settings for %s: day cut %s, timezone %s", user, cut, timezone_name)
    return profile


def grant_rest_credits(cfg: DbConfig, user: str, count: int = 1) -> int:
    if int(count) <= 0:
        raise ValidationError("Rest credits to grant must be positive.")
    with get_conn(cfg) as conn:
        conn.execute(
            "UPDATE user_profiles SET rest_credits = rest_credits + ? WHERE id=?",
            (int(count), user),
        )
        credits = _get_profile(conn, user).rest_credits
    log.info("Granted %d rest credit(s) to %s", count, user)
    return credits
