from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from levelup.dates import add_months, add_years, to_iso, utc_now
from levelup.db import DbConfig, fetch_all, fetch_one, get_conn, new_id
from levelup.errors import NotFoundError, ValidationError
from levelup.log import get_logger
from levelup.models import Goal

log = get_logger("goals")

GOAL_TYPES = ["3year", "1year", "1month"]
GOAL_LABELS = {"3year": "3-Year Goal", "1year": "1-Year Goal", "1month": "1-Month Goal"}


def target_date_for(goal_type: str, start: date) -> date:
    if goal_type == "3year":
        return add_years(start, 3)
    if goal_type == "1year":
        return add_years(start, 1)
    if goal_type == "1month":
        return add_months(start, 1)
    raise ValidationError(f"Unknown goal type: {goal_type}")


def get_active_goals(cfg: DbConfig, user: str) -> Dict[str, Goal]:
    with get_conn(cfg) as conn:
        rows = fetch_all(
            conn,
            """
            SELECT * FROM goals
            WHERE user_id=? AND is_active=1
            ORDER BY target_date ASC, created_at DESC
            """,
            (user,),
        )
    out: Dict[str, Goal] = {}
    for row in rows:
        g = Goal.from_row(row)
        out.setdefault(g.goal_type, g)
    return out


def missing_goal_types(goals: Dict[str, Goal]) -> List[str]:
    return [t for t in GOAL_TYPES if t not in goals]


def create_goal(
    cfg: DbConfig,
    user: str,
    goal_type: str,
    description: str,
    now: Optional[datetime] = None,
) -> Goal:
    """A new goal replaces the active goal of the same type."""
    description = (description or "").strip()
    if goal_type not in GOAL_TYPES:
        raise ValidationError(f"Unknown goal type: {goal_type}")
    if not description:
        raise ValidationError("Goal description cannot be empty.")

    now = now or utc_now()
    goal = Goal(
        id=new_id(),
        user_id=user,
        goal_type=goal_type,
        description=description,
        target_date=target_date_for(goal_type, now.date()).isoformat(),
        created_at=to_iso(now),
    )
    with get_conn(cfg) as conn:
        conn.execute(
            "UPDATE goals SET is_active=0 WHERE user_id=? AND goal_type=? AND is_active=1",
            (user, goal_type),
        )
        conn.execute(
            """
            INSERT INTO goals (id, user_id, goal_type, description, target_date, is_active, is_completed, created_at)
            VALUES (?, ?, ?, ?, ?, 1, 0, ?)
            """,
            (goal.id, user, goal_type, description, goal.target_date, goal.created_at),
        )
    log.info("Created %s goal for %s", goal_type, user)
    return goal


def _get_goal(cfg: DbConfig, user: str, goal_id: str) -> Goal:
    with get_conn(cfg) as conn:
        row = fetch_one(conn, "SELECT * FROM goals WHERE id=? AND user_id=?", (goal_id, user))
    if row is None:
        raise NotFoundError("Goal not found.")
    return Goal.from_row(row)


def update_goal_description(cfg: DbConfig, user: str, goal_id: str, description: str) -> Goal:
    description = (description or "").strip()
    if not description:
        raise ValidationError("Goal description cannot be empty.")
    _get_goal(cfg, user, goal_id)
    with get_conn(cfg) as conn:
        conn.execute(
            "UPDATE goals SET description=? WHERE id=? AND user_id=?",
            (description, goal_id, user),
        )
    log.info("Updated goal %s description", goal_id)
    return _get_goal(cfg, user, goal_id)


def evaluate_goal(
    cfg: DbConfig,
    user: str,
    goal_id: str,
    note: str,
    completed: bool,
    now: Optional[datetime] = None,
) -> Goal:
    _get_goal(cfg, user, goal_id)
    with get_conn(cfg) as conn:
        conn.execute(
            """
            UPDATE goals SET evaluation_note=?, evaluated_at=?, is_completed=?
            WHERE id=? AND user_id=?
            """,
            ((note or "").strip(), to_iso(now or utc_now()), int(bool(completed)), goal_id, user),
        )
    log.info("Evaluated goal %s (completed=%s)", goal_id, bool(completed))
    return _get_goal(cfg, user, goal_id)


def goal_history(cfg: DbConfig, user: str) -> List[Goal]:
    with get_conn(cfg) as conn:
        rows = fetch_all(
            conn,
            "SELECT * FROM goals WHERE user_id=? AND is_active=0 ORDER BY created_at DESC",
            (user,),
        )
    return [Goal.from_row(r) for r in rows]
