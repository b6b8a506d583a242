"""
Pomodoro sessions.

The running session lives in active_pomodoros (one row per user) so it
survives page reloads. Pausing freezes the remaining time; resuming pushes
ends_at forward by the pause length. Completing turns the session into a
pomodoros row and settles every side effect in one transaction: rewards,
task progress, daily checklist, check-in and streak.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from levelup.dates import local_day, parse_iso, to_iso, utc_now
from levelup.db import DbConfig, PgConn, fetch_all, fetch_one, get_conn, new_id
from levelup.errors import NotFoundError, ValidationError
from levelup.log import get_logger
from levelup.models import ActivePomodoro, Pomodoro, Task
from levelup.profiles import RewardResult, _add_rewards, _get_profile
from levelup.streak import _record_check_in, _recalculate
from levelup.tasks import (
    _daily_progress,
    _get_task,
    _mark_completed,
    _recalculate_task_progress,
    all_daily_done,
    target_minutes,
)

log = get_logger("pomodoro")

DURATION_OPTIONS = [15, 25, 45, 60]
COMPLETION_TYPES = ["natural", "overtime", "early", "manual"]

PausePeriods = List[Dict[str, Optional[str]]]


@dataclass
class CompletionResult:
    pomodoro: Pomodoro
    rewards: RewardResult
    task_completed: bool = False
    daily_targets_reached: List[str] = field(default_factory=list)
    checked_in: bool = False


# -------------------------
# Timer math
# -------------------------

def seconds_remaining(active: ActivePomodoro, now: datetime) -> int:
    """Negative once the planned time has run out (overtime)."""
    ref = parse_iso(active.paused_at) or now
    return int((parse_iso(active.ends_at) - ref).total_seconds())


def elapsed_work_seconds(active: ActivePomodoro, now: datetime) -> int:
    end = parse_iso(active.paused_at) or now
    wall = (end - parse_iso(active.started_at)).total_seconds()
    return max(0, int(wall) - int(active.total_paused_seconds or 0))


def classify_completion(planned_minutes: int, work_seconds: int) -> Tuple[str, int, int]:
    """Returns (completion_type, actual_minutes, overtime_minutes)."""
    planned_s = int(planned_minutes) * 60
    if work_seconds >= planned_s + 60:
        overtime = (work_seconds - planned_s) // 60
        return "overtime", int(planned_minutes) + overtime, overtime
    if work_seconds >= planned_s:
        return "natural", int(planned_minutes), 0
    return "early", max(1, work_seconds // 60), 0


def work_periods(started_at: str, completed_at: str, pause_periods: PausePeriods) -> List[Tuple[datetime, datetime]]:
    """Split a session into the intervals that were actually worked."""
    start = parse_iso(started_at)
    end = parse_iso(completed_at)
    periods: List[Tuple[datetime, datetime]] = []
    cursor = start
    for p in sorted(pause_periods or [], key=lambda x: x.get("paused_at") or ""):
        paused = parse_iso(p.get("paused_at"))
        if paused is None:
            continue
        resumed = parse_iso(p.get("resumed_at")) or end
        if paused > cursor:
            periods.append((cursor, min(paused, end)))
        cursor = max(cursor, resumed)
    if cursor < end:
        periods.append((cursor, end))
    return periods


def _validate_rating(focus_rating: Optional[int]) -> Optional[int]:
    if focus_rating is None:
        return None
    if not 1 <= int(focus_rating) <= 5:
        raise ValidationError("Focus rating must be between 1 and 5.")
    return int(focus_rating)


# -------------------------
# Active session
# -------------------------

def _get_active(conn: PgConn, user: str) -> Optional[ActivePomodoro]:
    row = fetch_one(conn, "SELECT * FROM active_pomodoros WHERE user_id=?", (user,))
    return ActivePomodoro.from_row(row) if row else None


def _require_active(conn: PgConn, user: str) -> ActivePomodoro:
    active = _get_active(conn, user)
    if active is None:
        raise NotFoundError("No active pomodoro.")
    return active


def get_active(cfg: DbConfig, user: str) -> Optional[ActivePomodoro]:
    with get_conn(cfg) as conn:
        return _get_active(conn, user)


def start_pomodoro(
    cfg: DbConfig,
    user: str,
    task_id: str,
    duration_minutes: int = 25,
    now: Optional[datetime] = None,
) -> ActivePomodoro:
    """Start a session; if one is already running it is returned unchanged."""
    if int(duration_minutes) not in DURATION_OPTIONS:
        raise ValidationError(f"Duration must be one of {DURATION_OPTIONS} minutes.")
    now = now or utc_now()

    with get_conn(cfg) as conn:
        existing = _get_active(conn, user)
        if existing is not None:
            return existing

        task = _get_task(conn, user, task_id)
        if task.is_archived or not task.is_active or task.is_completed:
            raise ValidationError(f"Task {task.title!r} is not active.")

        active = ActivePomodoro(
            id=new_id(),
            user_id=user,
            task_id=task.id,
            duration_minutes=int(duration_minutes),
            started_at=to_iso(now),
            ends_at=to_iso(now + timedelta(minutes=int(duration_minutes))),
        )
        conn.execute(
            """
            INSERT INTO active_pomodoros (
                id, user_id, task_id, duration_minutes, started_at, ends_at,
                paused_at, total_paused_seconds, pause_periods
            )
            VALUES (?, ?, ?, ?, ?, ?, NULL, 0, '[]')
            """,
            (active.id, user, active.task_id, active.duration_minutes, active.started_at, active.ends_at),
        )
    log.info("Started %d min pomodoro on %r", active.duration_minutes, task.title)
    return active


def pause_pomodoro(cfg: DbConfig, user: str, now: Optional[datetime] = None) -> ActivePomodoro:
    now = now or utc_now()
    with get_conn(cfg) as conn:
        active = _require_active(conn, user)
        if active.is_paused:
            return active
        periods = list(active.pause_periods) + [{"paused_at": to_iso(now), "resumed_at": None}]
        conn.execute(
            "UPDATE active_pomodoros SET paused_at=?, pause_periods=? WHERE id=?",
            (to_iso(now), json.dumps(periods), active.id),
        )
        return _require_active(conn, user)


def _close_pause(active: ActivePomodoro, now: datetime) -> Tuple[int, str, PausePeriods]:
    """Returns (pause_seconds, new_ends_at, pause_periods) for resuming at `now`."""
    paused_at = parse_iso(active.paused_at)
    pause_s = max(0, int((now - paused_at).total_seconds()))
    ends_at = parse_iso(active.ends_at) + timedelta(seconds=pause_s)
    periods = [dict(p) for p in active.pause_periods]
    if periods and periods[-1].get("resumed_at") is None:
        periods[-1]["resumed_at"] = to_iso(now)
    return pause_s, to_iso(ends_at), periods


def resume_pomodoro(cfg: DbConfig, user: str, now: Optional[datetime] = None) -> ActivePomodoro:
    now = now or utc_now()
    with get_conn(cfg) as conn:
        active = _require_active(conn, user)
        if not active.is_paused:
            return active
        pause_s, ends_at, periods = _close_pause(active, now)
        conn.execute(
            """
            UPDATE active_pomodoros
            SET paused_at=NULL, ends_at=?, total_paused_seconds=?, pause_periods=?
            WHERE id=?
            """,
            (ends_at, int(active.total_paused_seconds) + pause_s, json.dumps(periods), active.id),
        )
        return _require_active(conn, user)


def cancel_pomodoro(cfg: DbConfig, user: str) -> None:
    with get_conn(cfg) as conn:
        conn.execute("DELETE FROM active_pomodoros WHERE user_id=?", (user,))
    log.info("Cancelled active pomodoro for %s", user)


# -------------------------
# Recording sessions
# -------------------------

def _upsert_daily_completion(conn: PgConn, user: str, day: str, task_id: str, minutes: int, target: int, done: bool) -> bool:
    """
    Returns True when the task's reward for `day` is due. is_completed follows
    the live minutes; is_rewarded is never cleared once set.
    """
    prev = fetch_one(
        conn,
        "SELECT is_rewarded FROM daily_task_completions WHERE task_id=? AND day=?",
        (task_id, day),
    )
    already_paid = bool(prev and prev["is_rewarded"])
    pay = done and not already_paid
    conn.execute(
        """
        INSERT INTO daily_task_completions (
            task_id, user_id, day, minutes_completed, target_minutes, is_completed, is_rewarded
        )
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(task_id, day) DO UPDATE SET
          minutes_completed = excluded.minutes_completed,
          target_minutes = excluded.target_minutes,
          is_completed = excluded.is_completed,
          is_rewarded = excluded.is_rewarded
        """,
        (task_id, user, day, int(minutes), int(target), int(done), int(already_paid or pay)),
    )
    return pay


def _record_session(
    conn: PgConn,
    user: str,
    task: Task,
    *,
    planned: int,
    actual: int,
    overtime: int,
    completion_type: str,
    pause_periods: PausePeriods,
    started_at: datetime,
    completed_at: datetime,
    focus_rating: Optional[int],
    note: str,
    now: datetime,
) -> CompletionResult:
    profile = _get_profile(conn, user)

    pomo = Pomodoro(
        id=new_id(),
        user_id=user,
        task_id=task.id,
        duration_minutes=int(planned),
        actual_duration_minutes=int(actual),
        completion_type=completion_type,
        started_at=to_iso(started_at),
        completed_at=to_iso(completed_at),
        overtime_minutes=int(overtime),
        pause_periods=pause_periods,
        enemy_type=task.category,
        focus_rating=focus_rating,
        accomplishment_note=(note or "").strip() or None,
        gold_earned=0,
        xp_earned=0,
    )
    conn.execute(
        """
        INSERT INTO pomodoros (
            id, user_id, task_id, duration_minutes, actual_duration_minutes, overtime_minutes,
            completion_type, pause_periods, started_at, completed_at, enemy_type,
            focus_rating, accomplishment_note, gold_earned, xp_earned
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            pomo.id, user, pomo.task_id, pomo.duration_minutes, pomo.actual_duration_minutes,
            pomo.overtime_minutes, pomo.completion_type, json.dumps(pomo.pause_periods),
            pomo.started_at, pomo.completed_at, pomo.enemy_type, pomo.focus_rating,
            pomo.accomplishment_note, pomo.gold_earned, pomo.xp_earned,
        ),
    )
    conn.execute(
        """
        UPDATE tasks SET completed_minutes = completed_minutes + ?, completed_pomodoros = completed_pomodoros + 1
        WHERE id=? AND user_id=?
        """,
        (int(actual), task.id, user),
    )

    gold = xp = 0
    task_completed = False
    if task.task_type == "onetime" and not task.is_completed:
        target = target_minutes(task)
        if target > 0 and task.completed_minutes + int(actual) >= target:
            _mark_completed(conn, user, task, completed_at)
            gold += task.gold_reward
            xp += task.xp_reward
            task_completed = True

    day = local_day(completed_at, profile.timezone_name, profile.daily_reset_time)
    progress = _daily_progress(conn, user, day, profile.timezone_name, profile.daily_reset_time)
    reached: List[str] = []
    for p in progress:
        if _upsert_daily_completion(conn, user, day.isoformat(), p.task.id, p.completed_minutes, p.target_minutes, p.is_done):
            gold += p.task.gold_reward
            xp += p.task.xp_reward
            reached.append(p.task.title)

    checked_in = False
    if all_daily_done(progress):
        checked_in = _record_check_in(conn, user, day)
    _recalculate(conn, user, local_day(now, profile.timezone_name, profile.daily_reset_time))

    conn.execute("UPDATE user_profiles SET total_pomodoros = total_pomodoros + 1 WHERE id=?", (user,))
    rewards = _add_rewards(conn, user, gold, xp)
    if gold or xp:
        # The session that crosses a target carries its reward.
        conn.execute("UPDATE pomodoros SET gold_earned=?, xp_earned=? WHERE id=?", (gold, xp, pomo.id))
        pomo = dataclasses.replace(pomo, gold_earned=gold, xp_earned=xp)

    return CompletionResult(
        pomodoro=pomo,
        rewards=rewards,
        task_completed=task_completed,
        daily_targets_reached=reached,
        checked_in=checked_in,
    )


def complete_pomodoro(
    cfg: DbConfig,
    user: str,
    *,
    focus_rating: Optional[int] = None,
    note: str = "",
    now: Optional[datetime] = None,
) -> CompletionResult:
    now = now or utc_now()
    focus_rating = _validate_rating(focus_rating)

    with get_conn(cfg) as conn:
        active = _require_active(conn, user)
        work_s = elapsed_work_seconds(active, now)
        periods = [dict(p) for p in active.pause_periods]
        if active.is_paused:
            _, _, periods = _close_pause(active, now)

        completion_type, actual, overtime = classify_completion(active.duration_minutes, work_s)
        task = _get_task(conn, user, active.task_id)
        result = _record_session(
            conn,
            user,
            task,
            planned=active.duration_minutes,
            actual=actual,
            overtime=overtime,
            completion_type=completion_type,
            pause_periods=periods,
            started_at=parse_iso(active.started_at),
            completed_at=now,
            focus_rating=focus_rating,
            note=note,
            now=now,
        )
        conn.execute("DELETE FROM active_pomodoros WHERE id=?", (active.id,))

    log.info(
        "Completed %s pomodoro on %r: %d min (+%d overtime), +%d gold +%d xp",
        completion_type, task.title, actual, overtime, result.rewards.gold, result.rewards.xp,
    )
    return result


def log_manual_pomodoro(
    cfg: DbConfig,
    user: str,
    task_id: str,
    minutes: int,
    completed_at: datetime,
    *,
    focus_rating: Optional[int] = None,
    note: str = "",
    now: Optional[datetime] = None,
) -> CompletionResult:
    """Log a session after the fact. Its start is traced back from completed_at."""
    now = now or utc_now()
    if int(minutes) <= 0:
        raise ValidationError("Minutes must be positive.")
    if completed_at > now:
        raise ValidationError("Cannot log a pomodoro in the future.")
    focus_rating = _validate_rating(focus_rating)

    with get_conn(cfg) as conn:
        task = _get_task(conn, user, task_id)
        if task.is_archived:
            raise ValidationError(f"Task {task.title!r} is archived.")
        result = _record_session(
            conn,
            user,
            task,
            planned=int(minutes),
            actual=int(minutes),
            overtime=0,
            completion_type="manual",
            pause_periods=[],
            started_at=completed_at - timedelta(minutes=int(minutes)),
            completed_at=completed_at,
            focus_rating=focus_rating,
            note=note,
            now=now,
        )
    log.info("Logged manual %d min pomodoro on %r", minutes, task.title)
    return result


# -------------------------
# History
# -------------------------

def _get_pomodoro(conn: PgConn, user: str, pomodoro_id: str) -> Pomodoro:
    row = fetch_one(conn, "SELECT * FROM pomodoros WHERE id=? AND user_id=?", (pomodoro_id, user))
    if row is None:
        raise NotFoundError("Pomodoro not found.")
    return Pomodoro.from_row(row)


def list_pomodoros(cfg: DbConfig, user: str, start: datetime, end: datetime) -> List[Pomodoro]:
    with get_conn(cfg) as conn:
        rows = fetch_all(
            conn,
            """
            SELECT * FROM pomodoros
            WHERE user_id=? AND completed_at >= ? AND completed_at < ?
            ORDER BY completed_at DESC
            """,
            (user, to_iso(start), to_iso(end)),
        )
    return [Pomodoro.from_row(r) for r in rows]


def edit_pomodoro(
    cfg: DbConfig,
    user: str,
    pomodoro_id: str,
    *,
    actual_minutes: Optional[int] = None,
    task_id: Optional[str] = None,
    focus_rating: Optional[int] = None,
    note: Optional[str] = None,
) -> Pomodoro:
    """Fields left as None keep their value. Progress of the old and new task is recomputed."""
    focus_rating = _validate_rating(focus_rating)
    with get_conn(cfg) as conn:
        pomo = _get_pomodoro(conn, user, pomodoro_id)
        old_task_id = pomo.task_id

        actual = pomo.actual_duration_minutes if actual_minutes is None else int(actual_minutes)
        if actual <= 0:
            raise ValidationError("Minutes must be positive.")
        new_task_id = pomo.task_id
        enemy_type = pomo.enemy_type
        if task_id is not None and task_id != pomo.task_id:
            new_task = _get_task(conn, user, task_id)
            new_task_id = new_task.id
            enemy_type = new_task.category

        conn.execute(
            """
            UPDATE pomodoros SET
                actual_duration_minutes=?, overtime_minutes=?, task_id=?, enemy_type=?,
                focus_rating=?, accomplishment_note=?
            WHERE id=? AND user_id=?
            """,
            (
                actual,
                max(0, actual - int(pomo.duration_minutes)),
                new_task_id,
                enemy_type,
                pomo.focus_rating if focus_rating is None else focus_rating,
                pomo.accomplishment_note if note is None else (note.strip() or None),
                pomodoro_id,
                user,
            ),
        )
        for tid in {old_task_id, new_task_id}:
            if tid:
                _recalculate_task_progress(conn, user, tid)
        updated = _get_pomodoro(conn, user, pomodoro_id)
    log.info("Edited pomodoro %s", pomodoro_id)
    return updated


def delete_pomodoro(cfg: DbConfig, user: str, pomodoro_id: str) -> None:
    with get_conn(cfg) as conn:
        pomo = _get_pomodoro(conn, user, pomodoro_id)
        conn.execute("DELETE FROM pomodoros WHERE id=? AND user_id=?", (pomodoro_id, user))
        if pomo.task_id:
            _recalculate_task_progress(conn, user, pomo.task_id)
        conn.execute(
            "UPDATE user_profiles SET total_pomodoros = CASE WHEN total_pomodoros > 0 THEN total_pomodoros - 1 ELSE 0 END WHERE id=?",
            (user,),
        )
    log.info("Deleted pomodoro %s", pomodoro_id)
