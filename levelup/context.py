"""
Snapshot of everything the LLM needs to know about the user right now.

The snapshot is a plain JSON-serialisable dict: it is rendered into prompts
and stored verbatim next to each revelation.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from levelup import goals as goals_mod
from levelup import profiles, tasks as tasks_mod
from levelup.dates import (
    WEEKDAY_NAMES,
    day_bounds_utc,
    format_duration_until,
    local_day,
    local_now,
    next_day_cut,
    parse_day,
    parse_day_cut,
    parse_iso,
    time_of_day,
    to_iso,
    utc_now,
    utc_offset_label,
)
from levelup.db import DbConfig, fetch_all, get_conn
from levelup.models import Pomodoro, Task

RECENT_DAYS = 7


def _task_dict(task: Task, **extra: Any) -> Dict[str, Any]:
    d = dataclasses.asdict(task)
    d["target_minutes"] = tasks_mod.target_minutes(task)
    d.update(extra)
    return d


def temporal_context(now: datetime, tz_name: str, day_cut: str) -> Dict[str, Any]:
    local = local_now(now, tz_name)
    cut_at = next_day_cut(now, tz_name, day_cut)
    return {
        "current_time": to_iso(now),
        "current_local_time": local.strftime("%Y-%m-%d %H:%M"),
        "day_of_week": WEEKDAY_NAMES[local.weekday()],
        "utc_offset": utc_offset_label(local),
        "time_of_day": time_of_day(local.hour),
        "timezone": tz_name,
        "day_cut": parse_day_cut(day_cut).strftime("%H:%M"),
        "time_until_day_end": format_duration_until((cut_at - now).total_seconds()),
    }


def performance_summary(pomos: List[Pomodoro], titles: Dict[str, str], tz_name: str, day_cut: str) -> Dict[str, Any]:
    by_day: Dict[str, Dict[str, int]] = {}
    by_task: Dict[str, Dict[str, Any]] = {}
    ratings: List[int] = []
    for p in pomos:
        day = local_day(parse_iso(p.completed_at), tz_name, day_cut).isoformat()
        slot = by_day.setdefault(day, {"count": 0, "minutes": 0})
        slot["count"] += 1
        slot["minutes"] += int(p.actual_duration_minutes or 0)

        if p.task_id:
            t = by_task.setdefault(
                p.task_id,
                {"task_id": p.task_id, "task_title": titles.get(p.task_id, "Unknown task"), "count": 0, "minutes": 0},
            )
            t["count"] += 1
            t["minutes"] += int(p.actual_duration_minutes or 0)
        if p.focus_rating:
            ratings.append(int(p.focus_rating))

    total = len(pomos)
    return {
        "pomodoros_by_day": [{"date": d, **v} for d, v in sorted(by_day.items())],
        "pomodoros_by_task": sorted(by_task.values(), key=lambda t: (-t["count"], t["task_title"])),
        "total_count": total,
        "avg_per_day": total / RECENT_DAYS,
        "avg_focus_rating": (sum(ratings) / len(ratings)) if ratings else 0.0,
    }


def collect_context(
    cfg: DbConfig,
    user: str,
    message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utc_now()
    profile = profiles.get_profile(cfg, user, now=now)
    tz_name, day_cut = profile.timezone_name, profile.daily_reset_time
    today = local_day(now, tz_name, day_cut)

    active_goals = goals_mod.get_active_goals(cfg, user)
    goals_ctx: Dict[str, List[Dict[str, str]]] = {t: [] for t in goals_mod.GOAL_TYPES}
    for t, g in active_goals.items():
        goals_ctx[t].append({"description": g.description, "target_date": g.target_date})

    all_tasks = tasks_mod.list_tasks(cfg, user)
    titles = {t.id: t.title for t in all_tasks}
    daily = [t for t in all_tasks if t.task_type == "daily"]
    onetime = [t for t in all_tasks if t.task_type == "onetime"]

    start_today, end_today = day_bounds_utc(today, tz_name, day_cut)
    recent_start = now - timedelta(days=RECENT_DAYS)
    with get_conn(cfg) as conn:
        links = tasks_mod._links(conn, user)
        progress = tasks_mod._daily_progress(conn, user, today, tz_name, day_cut)
        recent_rows = fetch_all(
            conn,
            "SELECT * FROM pomodoros WHERE user_id=? AND completed_at >= ? ORDER BY completed_at DESC",
            (user, to_iso(recent_start)),
        )
        today_count = conn.execute(
            "SELECT COUNT(*) FROM pomodoros WHERE user_id=? AND completed_at >= ? AND completed_at < ?",
            (user, to_iso(start_today), to_iso(end_today)),
        ).fetchone()[0]

    def linked_titles(task_id: str) -> List[str]:
        return [titles[d] for o, d in links if o == task_id and d in titles]

    week_ahead = today + timedelta(days=RECENT_DAYS)
    with_deadlines = [
        _task_dict(t)
        for t in onetime
        if t.deadline and not t.is_completed and today <= parse_day(t.deadline) <= week_ahead
    ]
    recently_completed = [
        _task_dict(t)
        for t in onetime
        if t.completed_at and parse_iso(t.completed_at) >= recent_start
    ]

    return {
        "today": today.isoformat(),
        "goals": goals_ctx,
        "tasks": {
            "daily": {
                "active": [_task_dict(t) for t in daily if t.is_active and not t.is_completed],
                "paused": [_task_dict(t) for t in daily if not t.is_active and not t.is_completed],
                "today_progress": [
                    {
                        "task_id": p.task.id,
                        "task_title": p.task.title,
                        "target_minutes": p.target_minutes,
                        "completed_minutes": p.completed_minutes,
                        "is_done": p.is_done,
                    }
                    for p in progress
                ],
            },
            "onetime": {
                "active": [
                    _task_dict(t, linked_daily_titles=linked_titles(t.id))
                    for t in onetime
                    if t.is_active and not t.is_completed
                ],
                "paused": [_task_dict(t) for t in onetime if not t.is_active and not t.is_completed],
                "with_deadlines": with_deadlines,
                "recently_completed": recently_completed,
            },
        },
        "temporal": temporal_context(now, tz_name, day_cut),
        "performance": {
            "last_7_days": performance_summary(
                [Pomodoro.from_row(r) for r in recent_rows], titles, tz_name, day_cut
            ),
            "streak": {"current": profile.current_streak, "longest": profile.longest_streak},
        },
        "profile": {
            "today_pomodoros": int(today_count or 0),
            "level": profile.level,
            "gold": profile.gold,
        },
        "user_message": (message or "").strip() or None,
    }
