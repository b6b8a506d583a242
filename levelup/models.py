from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

BOOL_COLUMNS = {"is_active", "is_completed", "is_archived", "is_purchased", "is_makeup"}
JSON_COLUMNS = {"pause_periods", "context_snapshot"}


def _coerce(name: str, value: Any) -> Any:
    if name in BOOL_COLUMNS:
        return bool(value)
    if name in JSON_COLUMNS:
        if value is None or value == "":
            return [] if name == "pause_periods" else {}
        if isinstance(value, str):
            return json.loads(value)
    return value


class RowModel:
    @classmethod
    def from_row(cls, row: Dict[str, Any]):
        kwargs = {f.name: _coerce(f.name, row[f.name]) for f in fields(cls) if f.name in row}  # type: ignore[arg-type]
        return cls(**kwargs)


@dataclass
class Profile(RowModel):
    id: str
    gold: int = 0
    xp: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    last_streak_date: Optional[str] = None
    rest_credits: int = 0
    total_pomodoros: int = 0
    daily_reset_time: str = "00:00:00"
    timezone_name: str = "Asia/Shanghai"
    created_at: str = ""


@dataclass
class Goal(RowModel):
    id: str
    user_id: str
    goal_type: str
    description: str
    target_date: str
    is_active: bool = True
    is_completed: bool = False
    evaluation_note: Optional[str] = None
    evaluated_at: Optional[str] = None
    created_at: str = ""


@dataclass
class Task(RowModel):
    id: str
    user_id: str
    title: str
    task_type: str
    description: str = ""
    category: str = "work"
    priority: str = "medium"
    target_duration_minutes: Optional[int] = None
    deadline: Optional[str] = None
    estimated_pomodoros: Optional[int] = None
    estimated_minutes: Optional[int] = None
    completed_pomodoros: int = 0
    completed_minutes: int = 0
    gold_reward: int = 10
    xp_reward: int = 20
    is_active: bool = True
    is_completed: bool = False
    completed_at: Optional[str] = None
    is_archived: bool = False
    archived_at: Optional[str] = None
    created_at: str = ""

    @property
    def is_daily(self) -> bool:
        return self.task_type == "daily"


@dataclass
class ActivePomodoro(RowModel):
    id: str
    user_id: str
    task_id: str
    duration_minutes: int
    started_at: str
    ends_at: str
    paused_at: Optional[str] = None
    total_paused_seconds: int = 0
    pause_periods: List[Dict[str, Optional[str]]] = field(default_factory=list)

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None


@dataclass
class Pomodoro(RowModel):
    id: str
    user_id: str
    task_id: Optional[str]
    duration_minutes: int
    actual_duration_minutes: int
    completion_type: str
    started_at: str
    completed_at: str
    overtime_minutes: int = 0
    pause_periods: List[Dict[str, Optional[str]]] = field(default_factory=list)
    enemy_type: Optional[str] = None
    focus_rating: Optional[int] = None
    accomplishment_note: Optional[str] = None
    gold_earned: int = 0
    xp_earned: int = 0


@dataclass
class ShopItem(RowModel):
    id: str
    user_id: str
    name: str
    description: str = ""
    gold_cost: int = 0
    is_purchased: bool = False
    purchased_at: Optional[str] = None
    created_at: str = ""


@dataclass
class Revelation(RowModel):
    id: str
    user_id: str
    revelation_text: str
    suggestion_type: str = "revelation"
    context_snapshot: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
