"""
Database access.

The app talks to Postgres (Supabase) through psycopg2. For local runs and
tests a "sqlite:///path/to/file.db" URL selects the stdlib sqlite3 driver
behind the same adapter, so every query is written once in qmark style.

Conventions shared by both backends:
- ids are uuid4 strings generated client-side
- timestamps are ISO-8601 UTC strings, days are "YYYY-MM-DD"
- flags are INTEGER 0/1, JSON payloads are TEXT
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import psycopg2

from levelup.log import get_logger

log = get_logger("db")

SQLITE_PREFIX = "sqlite:///"

Params = Tuple[Any, ...] | List[Any] | None


@dataclass(frozen=True)
class DbConfig:
    database_url: str

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith(SQLITE_PREFIX)


class PgConn:
    """
    Tiny adapter so all queries can use sqlite-style code:
    - conn.execute(sql, params) -> cursor
    - commit on clean exit, rollback on exception
    """
    def __init__(self, database_url: str):
        self._database_url = database_url
        self._conn: Any = None

    def _open(self) -> Any:
        conn = psycopg2.connect(self._database_url)
        conn.autocommit = False
        return conn

    def __enter__(self) -> "PgConn":
        self._conn = self._open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._conn is not None
        try:
            if exc_type is None:
                self._conn.commit()
            else:
                self._conn.rollback()
        finally:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        assert self._conn is not None
        self._conn.commit()

    @staticmethod
    def _sql(sql: str) -> str:
        # Convert sqlite qmark params "?" -> psycopg2 "%s"
        return sql.replace("?", "%s")

    def execute(self, sql: str, params: Params = None):
        assert self._conn is not None
        cur = self._conn.cursor()
        cur.execute(self._sql(sql), params or ())
        return cur


class SqliteConn(PgConn):
    def _open(self) -> Any:
        return sqlite3.connect(self._database_url[len(SQLITE_PREFIX):])

    @staticmethod
    def _sql(sql: str) -> str:
        return sql


def get_conn(cfg: DbConfig) -> PgConn:
    if cfg.is_sqlite:
        return SqliteConn(cfg.database_url)
    return PgConn(cfg.database_url)


def new_id() -> str:
    return str(uuid.uuid4())


def _as_dicts(cur) -> List[Dict[str, Any]]:
    cols = [c[0] for c in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def fetch_all(conn: PgConn, sql: str, params: Params = None) -> List[Dict[str, Any]]:
    return _as_dicts(conn.execute(sql, params))


def fetch_one(conn: PgConn, sql: str, params: Params = None) -> Optional[Dict[str, Any]]:
    rows = fetch_all(conn, sql, params)
    return rows[0] if rows else None


SCHEMA: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        id TEXT PRIMARY KEY,
        gold INTEGER NOT NULL DEFAULT 0,
        xp INTEGER NOT NULL DEFAULT 0,
        level INTEGER NOT NULL DEFAULT 1,
        current_streak INTEGER NOT NULL DEFAULT 0,
        longest_streak INTEGER NOT NULL DEFAULT 0,
        last_streak_date TEXT,
        rest_credits INTEGER NOT NULL DEFAULT 0,
        total_pomodoros INTEGER NOT NULL DEFAULT 0,
        daily_reset_time TEXT NOT NULL DEFAULT '00:00:00',
        timezone_name TEXT NOT NULL DEFAULT 'Asia/Shanghai',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS goals (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        goal_type TEXT NOT NULL,
        description TEXT NOT NULL,
        target_date TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        is_completed INTEGER NOT NULL DEFAULT 0,
        evaluation_note TEXT,
        evaluated_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT 'work',
        priority TEXT NOT NULL DEFAULT 'medium',
        task_type TEXT NOT NULL,
        target_duration_minutes INTEGER,
        deadline TEXT,
        estimated_pomodoros INTEGER,
        estimated_minutes INTEGER,
        completed_pomodoros INTEGER NOT NULL DEFAULT 0,
        completed_minutes INTEGER NOT NULL DEFAULT 0,
        gold_reward INTEGER NOT NULL DEFAULT 10,
        xp_reward INTEGER NOT NULL DEFAULT 20,
        is_active INTEGER NOT NULL DEFAULT 1,
        is_completed INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT,
        is_archived INTEGER NOT NULL DEFAULT 0,
        archived_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS task_relationships (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        onetime_task_id TEXT NOT NULL,
        daily_task_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (user_id, onetime_task_id, daily_task_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS active_pomodoros (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        task_id TEXT NOT NULL,
        duration_minutes INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        ends_at TEXT NOT NULL,
        paused_at TEXT,
        total_paused_seconds INTEGER NOT NULL DEFAULT 0,
        pause_periods TEXT NOT NULL DEFAULT '[]'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pomodoros (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        task_id TEXT,
        duration_minutes INTEGER NOT NULL,
        actual_duration_minutes INTEGER NOT NULL,
        overtime_minutes INTEGER NOT NULL DEFAULT 0,
        completion_type TEXT NOT NULL,
        pause_periods TEXT NOT NULL DEFAULT '[]',
        started_at TEXT NOT NULL,
        completed_at TEXT NOT NULL,
        enemy_type TEXT,
        focus_rating INTEGER,
        accomplishment_note TEXT,
        gold_earned INTEGER NOT NULL DEFAULT 0,
        xp_earned INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_task_completions (
        task_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        day TEXT NOT NULL,
        minutes_completed INTEGER NOT NULL DEFAULT 0,
        target_minutes INTEGER NOT NULL,
        is_completed INTEGER NOT NULL DEFAULT 0,
        is_rewarded INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (task_id, day)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_check_ins (
        user_id TEXT NOT NULL,
        day TEXT NOT NULL,
        is_makeup INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        PRIMARY KEY (user_id, day)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_shop_items (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        gold_cost INTEGER NOT NULL DEFAULT 0,
        is_purchased INTEGER NOT NULL DEFAULT 0,
        purchased_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS revelations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        revelation_text TEXT NOT NULL,
        suggestion_type TEXT NOT NULL DEFAULT 'revelation',
        context_snapshot TEXT,
        created_at TEXT NOT NULL
    )
    """,
]


def init_db(cfg: DbConfig) -> None:
    with get_conn(cfg) as conn:
        for ddl in SCHEMA:
            conn.execute(ddl)
        conn.commit()
    log.debug("Schema ready (%d tables)", len(SCHEMA))
