from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from levelup.dates import date_range, day_bounds_utc, local_day, monday_of_week, parse_iso, to_iso, week_days
from levelup.db import DbConfig, get_conn
from levelup.models import Profile, Task
from levelup.tasks import POMODORO_MINUTES, target_minutes

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass(frozen=True)
class TimeSummary:
    today_minutes: int
    week_minutes: int

    @property
    def today_pomodoros(self) -> int:
        return self.today_minutes // POMODORO_MINUTES

    @property
    def week_pomodoros(self) -> int:
        return self.week_minutes // POMODORO_MINUTES


@dataclass(frozen=True)
class WeeklyHistogram:
    this_monday: date
    last_week: List[int]
    this_week: List[int]


@dataclass(frozen=True)
class BurnDown:
    target_minutes: int
    days: List[date]
    ideal: List[float]
    actual: List[Optional[int]]


def minutes_by_day(
    cfg: DbConfig,
    user: str,
    start: date,
    end: date,
    profile: Profile,
    task_id: Optional[str] = None,
) -> Dict[date, int]:
    """Worked minutes per logical day in [start, end], optionally for one task."""
    lo, _ = day_bounds_utc(start, profile.timezone_name, profile.daily_reset_time)
    _, hi = day_bounds_utc(end, profile.timezone_name, profile.daily_reset_time)
    sql = """
        SELECT completed_at, actual_duration_minutes
        FROM pomodoros
        WHERE user_id=? AND completed_at >= ? AND completed_at < ?
    """
    params = [user, to_iso(lo), to_iso(hi)]
    if task_id:
        sql += " AND task_id=?"
        params.append(task_id)
    with get_conn(cfg) as conn:
        rows = conn.execute(sql, params).fetchall()

    out: Dict[date, int] = {}
    for completed_at, minutes in rows:
        d = local_day(parse_iso(completed_at), profile.timezone_name, profile.daily_reset_time)
        out[d] = out.get(d, 0) + int(minutes or 0)
    return out


def time_summary(cfg: DbConfig, user: str, profile: Profile, now: datetime) -> TimeSummary:
    today = local_day(now, profile.timezone_name, profile.daily_reset_time)
    monday = monday_of_week(today)
    by_day = minutes_by_day(cfg, user, monday, today, profile)
    return TimeSummary(
        today_minutes=by_day.get(today, 0),
        week_minutes=sum(by_day.values()),
    )


def weekly_histogram(cfg: DbConfig, user: str, profile: Profile, now: datetime) -> WeeklyHistogram:
    today = local_day(now, profile.timezone_name, profile.daily_reset_time)
    this_monday = monday_of_week(today)
    last_monday = this_monday - timedelta(days=7)
    by_day = minutes_by_day(cfg, user, last_monday, this_monday + timedelta(days=6), profile)
    return WeeklyHistogram(
        this_monday=this_monday,
        last_week=[by_day.get(d, 0) for d in week_days(last_monday)],
        this_week=[by_day.get(d, 0) for d in week_days(this_monday)],
    )


def build_burn_down(
    target: int,
    start: date,
    today: date,
    deadline: Optional[date],
    spent_by_day: Dict[date, int],
) -> BurnDown:
    """
    Actual line: remaining minutes at the end of each day up to today.
    Ideal line: straight from target on the first day to 0 on the deadline.
    """
    if spent_by_day:
        start = min(start, min(spent_by_day))
    end = max(today, deadline) if deadline else today
    days = date_range(start, end)

    actual: List[Optional[int]] = []
    remaining = target
    for d in days:
        if d > today:
            actual.append(None)
            continue
        remaining = max(remaining - spent_by_day.get(d, 0), 0)
        actual.append(remaining)

    ideal: List[float] = []
    span = (deadline - start).days if deadline else 0
    for i, d in enumerate(days):
        if deadline is None:
            ideal.append(float(target))
        elif span <= 0 or d >= deadline:
            ideal.append(0.0)
        else:
            ideal.append(round(target * (1 - i / span), 2))

    return BurnDown(target_minutes=target, days=days, ideal=ideal, actual=actual)


def burn_down(cfg: DbConfig, user: str, task: Task, profile: Profile, now: datetime) -> BurnDown:
    today = local_day(now, profile.timezone_name, profile.daily_reset_time)
    created = local_day(parse_iso(task.created_at) or now, profile.timezone_name, profile.daily_reset_time)
    deadline = date.fromisoformat(task.deadline[:10]) if task.deadline else None
    lo = min(created, today)
    spent = minutes_by_day(cfg, user, lo - timedelta(days=365), today, profile, task_id=task.id)
    return build_burn_down(target_minutes(task), lo, today, deadline, spent)


# -------------------------
# Charts
# -------------------------
# Figures are built outside pyplot, so nothing piles up across Streamlit reruns.

def histogram_figure(hist: WeeklyHistogram):
    from matplotlib.figure import Figure

    fig = Figure()
    ax = fig.add_subplot(111)
    xs = list(range(7))
    width = 0.4
    ax.bar([x - width / 2 for x in xs], hist.last_week, width, label="Last week")
    ax.bar([x + width / 2 for x in xs], hist.this_week, width, label="This week")
    ax.set_xticks(xs)
    ax.set_xticklabels(WEEKDAY_LABELS)
    ax.set_ylabel("Minutes")
    ax.set_title(f"Focused minutes (week of {hist.this_monday.isoformat()})")
    ax.legend()
    return fig


def burn_down_figure(bd: BurnDown, title: str):
    from matplotlib.figure import Figure

    fig = Figure()
    ax = fig.add_subplot(111)
    ax.plot(bd.days, bd.ideal, linestyle="--", label="Ideal")
    shown = [(d, v) for d, v in zip(bd.days, bd.actual) if v is not None]
    if shown:
        ax.plot([d for d, _ in shown], [v for _, v in shown], marker="o", label="Remaining")
    ax.set_title(f"Burn-down: {title}")
    ax.set_ylabel("Minutes remaining")
    ax.set_xlabel("Date")
    ax.set_ylim(0, max(1, bd.target_minutes) * 1.05)
    ax.legend()
    fig.autofmt_xdate()
    return fig
