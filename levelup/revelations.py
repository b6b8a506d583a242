from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Dict, List, Optional

from levelup import llm
from levelup.context import collect_context
from levelup.dates import to_iso, utc_now
from levelup.db import DbConfig, fetch_all, fetch_one, get_conn, new_id
from levelup.log import get_logger
from levelup.models import Revelation
from levelup.prompts import SUGGESTION_FIELDS, build_revelation_prompt, build_suggestion_prompt

log = get_logger("revelations")

REVELATION = "revelation"
NEXT_TASK = "next_task"

_SUGGESTION_LINE = re.compile(r"^\s*\**\s*(Duration|Task|Meaning)\s*\**\s*:\s*\**\s*(.*)$", re.IGNORECASE)


def parse_sections(text: str) -> Dict[str, str]:
    """Split Markdown on "## " headers. Text before the first header goes under ""."""
    sections: Dict[str, List[str]] = {}
    current = ""
    for line in (text or "").splitlines():
        if line.startswith("## "):
            current = line[3:].strip()
            sections.setdefault(current, [])
            continue
        sections.setdefault(current, []).append(line)
    out = {k: "\n".join(v).strip() for k, v in sections.items()}
    if not out.get(""):
        out.pop("", None)
    return out


def parse_suggestion(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    key: Optional[str] = None
    for line in (text or "").splitlines():
        m = _SUGGESTION_LINE.match(line)
        if m:
            key = m.group(1).capitalize()
            out[key] = m.group(2).strip()
        elif key and line.strip():
            out[key] = f"{out[key]} {line.strip()}".strip()
    return {k: out[k] for k in SUGGESTION_FIELDS if k in out}


def _save(cfg: DbConfig, user: str, text: str, kind: str, snapshot: Dict, now: datetime) -> Revelation:
    rev = Revelation(
        id=new_id(),
        user_id=user,
        revelation_text=text,
        suggestion_type=kind,
        context_snapshot=snapshot,
        created_at=to_iso(now),
    )
    with get_conn(cfg) as conn:
        conn.execute(
            """
            INSERT INTO revelations (id, user_id, revelation_text, suggestion_type, context_snapshot, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (rev.id, user, text, kind, json.dumps(snapshot, default=str), rev.created_at),
        )
    return rev


def generate_revelation(
    cfg: DbConfig,
    user: str,
    *,
    provider: str,
    api_key: Optional[str],
    message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Revelation:
    now = now or utc_now()
    ctx = collect_context(cfg, user, message=message, now=now)
    system_prompt, user_prompt = build_revelation_prompt(ctx)
    text = llm.chat(
        [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
        provider=provider,
        api_key=api_key,
    )
    rev = _save(cfg, user, text, REVELATION, ctx, now)
    log.info("Saved revelation %s (%s)", rev.id, ctx["temporal"]["time_of_day"])
    return rev


def suggest_next_task(
    cfg: DbConfig,
    user: str,
    *,
    provider: str,
    api_key: Optional[str],
    now: Optional[datetime] = None,
) -> Revelation:
    now = now or utc_now()
    ctx = collect_context(cfg, user, now=now)
    system_prompt, user_prompt = build_suggestion_prompt(ctx)
    text = llm.chat(
        [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
        provider=provider,
        api_key=api_key,
    )
    rev = _save(cfg, user, text, NEXT_TASK, ctx, now)
    log.info("Saved next-task suggestion %s", rev.id)
    return rev


def latest_revelation(cfg: DbConfig, user: str, kind: str = REVELATION) -> Optional[Revelation]:
    with get_conn(cfg) as conn:
        row = fetch_one(
            conn,
            """
            SELECT * FROM revelations
            WHERE user_id=? AND suggestion_type=?
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (user, kind),
        )
    return Revelation.from_row(row) if row else None


def revelation_history(cfg: DbConfig, user: str, kind: str = REVELATION, limit: int = 20) -> List[Revelation]:
    with get_conn(cfg) as conn:
        rows = fetch_all(
            conn,
            """
            SELECT * FROM revelations
            WHERE user_id=? AND suggestion_type=?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (user, kind, int(limit)),
        )
    return [Revelation.from_row(r) for r in rows]
