from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, List, Optional, Set, Tuple

from levelup.dates import to_iso, utc_now
from levelup.db import DbConfig, PgConn, fetch_one, get_conn
from levelup.errors import NoRestCreditsError, NotFoundError, ValidationError
from levelup.log import get_logger

log = get_logger("streak")

COMPLETED = "completed"
MISSED = "missed"
FUTURE = "future"


# -------------------------
# Pure helpers
# -------------------------

def compute_streak(days: Iterable[date], today: date) -> int:
    """
    Consecutive checked-in days ending today. While today is still open the
    streak runs through yesterday instead of dropping to zero.
    """
    checked = set(days)
    cur = today if today in checked else today - timedelta(days=1)
    streak = 0
    while cur in checked:
        streak += 1
        cur -= timedelta(days=1)
    return streak


def longest_run(days: Iterable[date]) -> int:
    best = 0
    run = 0
    prev: Optional[date] = None
    for d in sorted(set(days)):
        run = run + 1 if prev is not None and d - prev == timedelta(days=1) else 1
        best = max(best, run)
        prev = d
    return best


def month_days(year: int, month: int) -> List[date]:
    return [date(year, month, i) for i in range(1, calendar.monthrange(year, month)[1] + 1)]


def day_status(d: date, checked: Set[date], today: date) -> str:
    if d in checked:
        return COMPLETED
    if d > today:
        return FUTURE
    return MISSED


# -------------------------
# DB
# -------------------------

def _checked_in_days(conn: PgConn, user: str) -> Set[date]:
    rows = conn.execute("SELECT day FROM daily_check_ins WHERE user_id=?", (user,)).fetchall()
    return {date.fromisoformat(str(d)[:10]) for (d,) in rows}


def _record_check_in(conn: PgConn, user: str, day: date, *, makeup: bool = False) -> bool:
    cur = conn.execute(
        """
        INSERT INTO daily_check_ins (user_id, day, is_makeup, created_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(user_id, day) DO NOTHING
        """,
        (user, day.isoformat(), int(makeup), to_iso(utc_now())),
    )
    return cur.rowcount == 1


def _recalculate(conn: PgConn, user: str, today: date) -> Tuple[int, int]:
    days = _checked_in_days(conn, user)
    current = compute_streak(days, today)
    row = fetch_one(conn, "SELECT longest_streak FROM user_profiles WHERE id=?", (user,))
    stored_longest = int(row["longest_streak"] or 0) if row else 0
    longest = max(stored_longest, longest_run(days), current)

    last_day: Optional[str] = None
    if current:
        last_day = (today if today in days else today - timedelta(days=1)).isoformat()

    conn.execute(
        "UPDATE user_profiles SET current_streak=?, longest_streak=?, last_streak_date=? WHERE id=?",
        (current, longest, last_day, user),
    )
    return current, longest


def record_check_in(cfg: DbConfig, user: str, day: date, today: Optional[date] = None) -> bool:
    with get_conn(cfg) as conn:
        inserted = _record_check_in(conn, user, day)
        _recalculate(conn, user, today or day)
    if inserted:
        log.info("Checked in %s for %s", day.isoformat(), user)
    return inserted


def is_checked_in(cfg: DbConfig, user: str, day: date) -> bool:
    with get_conn(cfg) as conn:
        row = conn.execute(
            "SELECT 1 FROM daily_check_ins WHERE user_id=? AND day=?",
            (user, day.isoformat()),
        ).fetchone()
    return row is not None


def checked_in_days(cfg: DbConfig, user: str) -> Set[date]:
    with get_conn(cfg) as conn:
        return _checked_in_days(conn, user)


def recalculate_streak(cfg: DbConfig, user: str, today: date) -> Tuple[int, int]:
    with get_conn(cfg) as conn:
        return _recalculate(conn, user, today)


def month_calendar(cfg: DbConfig, user: str, year: int, month: int, today: date) -> List[Tuple[date, str]]:
    checked = checked_in_days(cfg, user)
    return [(d, day_status(d, checked, today)) for d in month_days(year, month)]


def make_up_day(cfg: DbConfig, user: str, day: date, today: date) -> int:
    """Spend one rest credit to check in a missed day. Returns credits left."""
    if day > today:
        raise ValidationError("Cannot make up a future day.")

    with get_conn(cfg) as conn:
        row = fetch_one(conn, "SELECT rest_credits FROM user_profiles WHERE id=?", (user,))
        if row is None:
            raise NotFoundError("Profile not found.")
        credits = int(row["rest_credits"] or 0)
        if credits <= 0:
            raise NoRestCreditsError("No rest credits left.")
        if not _record_check_in(conn, user, day, makeup=True):
            raise ValidationError(f"{day.isoformat()} is already checked in.")
        conn.execute(
            "UPDATE user_profiles SET rest_credits = rest_credits - 1 WHERE id=?",
            (user,),
        )
        _recalculate(conn, user, today)

    log.info("Made up %s for %s using a rest credit (%d left)", day.isoformat(), user, credits - 1)
    return credits - 1
