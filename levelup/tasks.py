"""
Tasks and task relationships.

Two kinds of task:
- daily: a fixed number of minutes every day (target_duration_minutes)
- onetime: a project with a deadline and an estimate, completed once

A one-time task can be linked to daily tasks. Pomodoros logged on the
one-time task then also count toward the linked daily tasks' checklist for
that day, while stats keep attributing the minutes to the one-time task only.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from levelup.dates import day_bounds_utc, parse_day, to_iso, utc_now
from levelup.db import DbConfig, PgConn, fetch_all, fetch_one, get_conn, new_id
from levelup.errors import NotFoundError, ValidationError
from levelup.log import get_logger
from levelup.models import Task
from levelup.profiles import PRIORITY_REWARDS, RewardResult, _add_rewards

log = get_logger("tasks")

CATEGORIES = ["study", "exercise", "work", "creative", "admin"]
PRIORITIES = ["low", "medium", "high"]
TASK_TYPES = ["daily", "onetime"]
POMODORO_MINUTES = 25

EDITABLE_FIELDS = {
    "title",
    "description",
    "category",
    "priority",
    "target_duration_minutes",
    "deadline",
    "estimated_pomodoros",
    "estimated_minutes",
    "gold_reward",
    "xp_reward",
}


@dataclass(frozen=True)
class DailyProgress:
    task: Task
    target_minutes: int
    own_minutes: int
    linked_minutes: int

    @property
    def completed_minutes(self) -> int:
        return self.own_minutes + self.linked_minutes

    @property
    def remaining_minutes(self) -> int:
        return max(0, self.target_minutes - self.completed_minutes)

    @property
    def is_done(self) -> bool:
        return self.completed_minutes >= self.target_minutes

    @property
    def percent(self) -> int:
        if self.target_minutes <= 0:
            return 0
        return round(self.completed_minutes / self.target_minutes * 100)


# -------------------------
# Helpers
# -------------------------

def target_minutes(task: Task) -> int:
    if task.task_type == "daily":
        return int(task.target_duration_minutes or 0)
    if task.estimated_minutes:
        return int(task.estimated_minutes)
    return int(task.estimated_pomodoros or 0) * POMODORO_MINUTES


def _deadline_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    d = parse_day(str(value))
    return d.isoformat() if d else None


def validate_task(task: Task) -> None:
    if not (task.title or "").strip():
        raise ValidationError("Task title is required.")
    if task.task_type not in TASK_TYPES:
        raise ValidationError(f"Unknown task type: {task.task_type}")
    if task.category not in CATEGORIES:
        raise ValidationError(f"Unknown category: {task.category}")
    if task.priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority: {task.priority}")
    if task.task_type == "daily" and int(task.target_duration_minutes or 0) <= 0:
        raise ValidationError("Daily tasks need a target duration.")
    if task.task_type == "onetime" and not task.deadline:
        raise ValidationError("One-time tasks need a deadline.")
    for name in ("estimated_pomodoros", "estimated_minutes", "gold_reward", "xp_reward"):
        value = getattr(task, name)
        if value is not None and int(value) < 0:
            raise ValidationError(f"{name} cannot be negative.")


def _get_task(conn: PgConn, user: str, task_id: str) -> Task:
    row = fetch_one(conn, "SELECT * FROM tasks WHERE id=? AND user_id=?", (task_id, user))
    if row is None:
        raise NotFoundError("Task not found.")
    return Task.from_row(row)


def _links(conn: PgConn, user: str) -> List[Tuple[str, str]]:
    rows = conn.execute(
        "SELECT onetime_task_id, daily_task_id FROM task_relationships WHERE user_id=?",
        (user,),
    ).fetchall()
    return [(str(o), str(d)) for o, d in rows]


def _minutes_by_task(conn: PgConn, user: str, start: datetime, end: datetime) -> Dict[str, int]:
    rows = conn.execute(
        """
        SELECT task_id, SUM(actual_duration_minutes)
        FROM pomodoros
        WHERE user_id=? AND task_id IS NOT NULL AND completed_at >= ? AND completed_at < ?
        GROUP BY task_id
        """,
        (user, to_iso(start), to_iso(end)),
    ).fetchall()
    return {str(t): int(m or 0) for t, m in rows}


# -------------------------
# CRUD
# -------------------------

def create_task(
    cfg: DbConfig,
    user: str,
    *,
    title: str,
    task_type: str,
    category: str = "work",
    priority: str = "medium",
    description: str = "",
    target_duration_minutes: Optional[int] = None,
    deadline: Any = None,
    estimated_pomodoros: Optional[int] = None,
    estimated_minutes: Optional[int] = None,
    gold_reward: Optional[int] = None,
    xp_reward: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Task:
    default_gold, default_xp = PRIORITY_REWARDS.get(priority, PRIORITY_REWARDS["medium"])
    daily = task_type == "daily"
    task = Task(
        id=new_id(),
        user_id=user,
        title=(title or "").strip(),
        task_type=task_type,
        description=(description or "").strip(),
        category=category,
        priority=priority,
        target_duration_minutes=int(target_duration_minutes) if daily and target_duration_minutes else None,
        deadline=None if daily else _deadline_str(deadline),
        estimated_pomodoros=None if daily or estimated_pomodoros is None else int(estimated_pomodoros),
        estimated_minutes=None if daily or estimated_minutes is None else int(estimated_minutes),
        gold_reward=default_gold if gold_reward is None else int(gold_reward),
        xp_reward=default_xp if xp_reward is None else int(xp_reward),
        created_at=to_iso(now or utc_now()),
    )
    validate_task(task)

    with get_conn(cfg) as conn:
        conn.execute(
            """
            INSERT INTO tasks (
                id, user_id, title, description, category, priority, task_type,
                target_duration_minutes, deadline, estimated_pomodoros, estimated_minutes,
                completed_pomodoros, completed_minutes, gold_reward, xp_reward,
                is_active, is_completed, is_archived, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 0, ?, ?, 1, 0, 0, ?)
            """,
            (
                task.id, user, task.title, task.description, task.category, task.priority, task.task_type,
                task.target_duration_minutes, task.deadline, task.estimated_pomodoros, task.estimated_minutes,
                task.gold_reward, task.xp_reward, task.created_at,
            ),
        )
    log.info("Created %s task %r", task.task_type, task.title)
    return task


def get_task(cfg: DbConfig, user: str, task_id: str) -> Task:
    with get_conn(cfg) as conn:
        return _get_task(conn, user, task_id)


def list_tasks(
    cfg: DbConfig,
    user: str,
    *,
    task_type: Optional[str] = None,
    include_archived: bool = False,
) -> List[Task]:
    sql = "SELECT * FROM tasks WHERE user_id=?"
    params: List[Any] = [user]
    if task_type:
        sql += " AND task_type=?"
        params.append(task_type)
    if not include_archived:
        sql += " AND is_archived=0"
    sql += " ORDER BY created_at DESC"
    with get_conn(cfg) as conn:
        rows = fetch_all(conn, sql, params)
    return [Task.from_row(r) for r in rows]


def update_task(cfg: DbConfig, user: str, task_id: str, **changes: Any) -> Task:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    with get_conn(cfg) as conn:
        task = _get_task(conn, user, task_id)
        if "deadline" in changes:
            changes["deadline"] = _deadline_str(changes["deadline"])
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
        updated = dataclasses.replace(task, **changes)
        validate_task(updated)
        conn.execute(
            """
            UPDATE tasks SET
                title=?, description=?, category=?, priority=?, target_duration_minutes=?,
                deadline=?, estimated_pomodoros=?, estimated_minutes=?, gold_reward=?, xp_reward=?
            WHERE id=? AND user_id=?
            """,
            (
                updated.title, updated.description, updated.category, updated.priority,
                updated.target_duration_minutes, updated.deadline, updated.estimated_pomodoros,
                updated.estimated_minutes, int(updated.gold_reward), int(updated.xp_reward),
                task_id, user,
            ),
        )
    log.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)))
    return updated


def set_active(cfg: DbConfig, user: str, task_id: str, active: bool) -> None:
    with get_conn(cfg) as conn:
        _get_task(conn, user, task_id)
        conn.execute(
            "UPDATE tasks SET is_active=? WHERE id=? AND user_id=?",
            (int(bool(active)), task_id, user),
        )
    log.info("%s task %s", "Resumed" if active else "Paused", task_id)


def archive_task(cfg: DbConfig, user: str, task_id: str, now: Optional[datetime] = None) -> None:
    with get_conn(cfg) as conn:
        _get_task(conn, user, task_id)
        conn.execute(
            "UPDATE tasks SET is_archived=1, archived_at=? WHERE id=? AND user_id=?",
            (to_iso(now or utc_now()), task_id, user),
        )
        conn.execute("DELETE FROM active_pomodoros WHERE user_id=? AND task_id=?", (user, task_id))
    log.info("Archived task %s", task_id)


def unarchive_task(cfg: DbConfig, user: str, task_id: str) -> None:
    with get_conn(cfg) as conn:
        _get_task(conn, user, task_id)
        conn.execute(
            "UPDATE tasks SET is_archived=0, archived_at=NULL WHERE id=? AND user_id=?",
            (task_id, user),
        )
    log.info("Unarchived task %s", task_id)


def delete_task(cfg: DbConfig, user: str, task_id: str) -> None:
    """Deletes the task and its links. Logged pomodoros are kept, detached from the task."""
    with get_conn(cfg) as conn:
        _get_task(conn, user, task_id)
        conn.execute(
            "DELETE FROM task_relationships WHERE user_id=? AND (onetime_task_id=? OR daily_task_id=?)",
            (user, task_id, task_id),
        )
        conn.execute("DELETE FROM active_pomodoros WHERE user_id=? AND task_id=?", (user, task_id))
        conn.execute("DELETE FROM daily_task_completions WHERE user_id=? AND task_id=?", (user, task_id))
        conn.execute("UPDATE pomodoros SET task_id=NULL WHERE user_id=? AND task_id=?", (user, task_id))
        conn.execute("DELETE FROM tasks WHERE id=? AND user_id=?", (task_id, user))
    log.info("Deleted task %s", task_id)


def _mark_completed(conn: PgConn, user: str, task: Task, now: datetime) -> None:
    conn.execute(
        "UPDATE tasks SET is_completed=1, is_active=0, completed_at=? WHERE id=? AND user_id=?",
        (to_iso(now), task.id, user),
    )
    log.info("Completed one-time task %r", task.title)


def _complete_onetime(conn: PgConn, user: str, task: Task, now: datetime) -> RewardResult:
    _mark_completed(conn, user, task, now)
    return _add_rewards(conn, user, task.gold_reward, task.xp_reward)


def complete_onetime_task(cfg: DbConfig, user: str, task_id: str, now: Optional[datetime] = None) -> RewardResult:
    with get_conn(cfg) as conn:
        task = _get_task(conn, user, task_id)
        if task.task_type != "onetime":
            raise ValidationError("Only one-time tasks can be completed.")
        if task.is_completed:
            raise ValidationError("Task is already completed.")
        return _complete_onetime(conn, user, task, now or utc_now())


def _recalculate_task_progress(conn: PgConn, user: str, task_id: str) -> Tuple[int, int]:
    row = conn.execute(
        """
        SELECT COALESCE(SUM(actual_duration_minutes), 0), COUNT(*)
        FROM pomodoros
        WHERE user_id=? AND task_id=?
        """,
        (user, task_id),
    ).fetchone()
    minutes, count = int(row[0] or 0), int(row[1] or 0)
    conn.execute(
        "UPDATE tasks SET completed_minutes=?, completed_pomodoros=? WHERE id=? AND user_id=?",
        (minutes, count, task_id, user),
    )
    return minutes, count


def recalculate_task_progress(cfg: DbConfig, user: str, task_id: str) -> Tuple[int, int]:
    with get_conn(cfg) as conn:
        return _recalculate_task_progress(conn, user, task_id)


# -------------------------
# Relationships
# -------------------------

def _pair(a: Task, b: Task) -> Tuple[str, str]:
    """(onetime_id, daily_id) for two tasks of opposite types."""
    if a.task_type == b.task_type:
        raise ValidationError("Only a one-time task and a daily task can be linked.")
    return (a.id, b.id) if a.task_type == "onetime" else (b.id, a.id)


def _link(conn: PgConn, user: str, task: Task, other: Task) -> Tuple[str, str]:
    onetime_id, daily_id = _pair(task, other)
    conn.execute(
        """
        INSERT INTO task_relationships (id, user_id, onetime_task_id, daily_task_id, created_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(user_id, onetime_task_id, daily_task_id) DO NOTHING
        """,
        (new_id(), user, onetime_id, daily_id, to_iso(utc_now())),
    )
    return onetime_id, daily_id


def _unlink(conn: PgConn, user: str, task: Task, other: Task) -> Tuple[str, str]:
    onetime_id, daily_id = _pair(task, other)
    conn.execute(
        "DELETE FROM task_relationships WHERE user_id=? AND onetime_task_id=? AND daily_task_id=?",
        (user, onetime_id, daily_id),
    )
    return onetime_id, daily_id


def link_tasks(cfg: DbConfig, user: str, task_id: str, other_id: str) -> None:
    with get_conn(cfg) as conn:
        onetime_id, daily_id = _link(conn, user, _get_task(conn, user, task_id), _get_task(conn, user, other_id))
    log.info("Linked one-time task %s to daily task %s", onetime_id, daily_id)


def unlink_tasks(cfg: DbConfig, user: str, task_id: str, other_id: str) -> None:
    with get_conn(cfg) as conn:
        onetime_id, daily_id = _unlink(conn, user, _get_task(conn, user, task_id), _get_task(conn, user, other_id))
    log.info("Unlinked one-time task %s from daily task %s", onetime_id, daily_id)


def _linked_ids(conn: PgConn, user: str, task: Task) -> Set[str]:
    if task.task_type == "onetime":
        return {d for o, d in _links(conn, user) if o == task.id}
    return {o for o, d in _links(conn, user) if d == task.id}


def linked_tasks(cfg: DbConfig, user: str, task_id: str) -> List[Task]:
    with get_conn(cfg) as conn:
        task = _get_task(conn, user, task_id)
        ids = _linked_ids(conn, user, task)
        return [_get_task(conn, user, i) for i in sorted(ids)]


def relationship_candidates(cfg: DbConfig, user: str, task_id: str) -> List[Task]:
    task = get_task(cfg, user, task_id)
    other = "daily" if task.task_type == "onetime" else "onetime"
    return [t for t in list_tasks(cfg, user, task_type=other) if t.is_active and not t.is_completed]


def diff_relationships(current: Iterable[str], selected: Iterable[str]) -> Tuple[List[str], List[str]]:
    cur, sel = set(current), set(selected)
    return sorted(sel - cur), sorted(cur - sel)


def save_relationships(cfg: DbConfig, user: str, task_id: str, selected_ids: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Apply a draft selection of linked tasks in one transaction. Returns (added, removed) ids."""
    with get_conn(cfg) as conn:
        task = _get_task(conn, user, task_id)
        to_add, to_remove = diff_relationships(_linked_ids(conn, user, task), selected_ids)
        for other_id in to_add:
            _link(conn, user, task, _get_task(conn, user, other_id))
        for other_id in to_remove:
            _unlink(conn, user, task, _get_task(conn, user, other_id))
    log.info("Saved links for task %s (+%d / -%d)", task_id, len(to_add), len(to_remove))
    return to_add, to_remove


# -------------------------
# Daily checklist
# -------------------------

def _daily_progress(conn: PgConn, user: str, day: date, tz_name: str, day_cut: str) -> List[DailyProgress]:
    start, end = day_bounds_utc(day, tz_name, day_cut)
    minutes = _minutes_by_task(conn, user, start, end)
    links = _links(conn, user)
    rows = fetch_all(
        conn,
        """
        SELECT * FROM tasks
        WHERE user_id=? AND task_type='daily' AND is_active=1 AND is_archived=0
        ORDER BY created_at ASC
        """,
        (user,),
    )
    out: List[DailyProgress] = []
    for row in rows:
        task = Task.from_row(row)
        linked = sum(minutes.get(o, 0) for o, d in links if d == task.id)
        out.append(
            DailyProgress(
                task=task,
                target_minutes=target_minutes(task),
                own_minutes=minutes.get(task.id, 0),
                linked_minutes=linked,
            )
        )
    return out


def daily_progress(cfg: DbConfig, user: str, day: date, tz_name: str, day_cut: str) -> List[DailyProgress]:
    with get_conn(cfg) as conn:
        return _daily_progress(conn, user, day, tz_name, day_cut)


def all_daily_done(progress: List[DailyProgress]) -> bool:
    return bool(progress) and all(p.is_done for p in progress)
