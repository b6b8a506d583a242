"""
Prompt templates for the two LLM features.

Revelation: a concrete plan for the rest of the day, in three fixed
Markdown sections (Path Forward / Schedule / Seed Action).
Next task: one suggested action, as three "Key: value" lines
(Duration / Task / Meaning).
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, List, Tuple

from levelup.dates import parse_day

REVELATION_SECTIONS = ["Path Forward", "Schedule", "Seed Action"]
SUGGESTION_FIELDS = ["Duration", "Task", "Meaning"]

REVELATION_SYSTEM_PROMPT = """You are Revelation, a calm and decisive productivity guide.
You remove uncertainty, protect momentum and tie today's work to the user's long-term goals.
Speak plainly and with confidence.

RULES
1. Choose ONE path forward. Decide what the user does and when. Offer options only when something is impossible.
2. Decide priorities for the user and state explicitly what to defer when the load is too heavy.
3. Protect the streak: daily tasks must be finished before the day cut. Never silently drop a required task.
4. Connect today's work to the 1-year or 3-year goal with one concrete, future-facing sentence.

CONFLICT ORDER
1. Constraints stated by the user
2. Deadlines within 3 days
3. Daily tasks (streak protection)
4. Sleep
5. Load realism: never schedule more than the remaining usable hours

LOAD
- Use the remaining daily minutes and the one-time per-day averages given below.
- If the total exceeds the time left, say so and defer lower-priority work.

LATE NIGHT
- Between 23:00 and 06:00 schedule at most 1-2 hours and end with a clear stop for sleep.

RESPONSE FORMAT (MANDATORY)
Respond with exactly these three sections and nothing else:

## Path Forward

- [assessment: load, deadline pressure or streak risk]
- [what to prioritize and what to defer]
- [one grounded sentence linking today to a long-term goal]

## Schedule

- HH:MM - HH:MM: Task name
- HH:MM - HH:MM: Meal / Break / Sleep

## Seed Action

- [one small, slightly unusual action that could matter later]

One item per schedule line. No commentary before or after the sections."""

SUGGESTION_SYSTEM_PROMPT = """You reveal the next meaningful action for the user.
Suggest ONE specific task that turns a distant goal into something they can do now.

Respond in EXACTLY this format and nothing else:

Duration: [estimate in minutes, e.g. "25 min"]
Task: [one vivid, specific action]
Meaning: [one or two sentences on how this action carries their 1-year or 3-year goal into the present]

Guidelines:
- Keep the duration between 15 and 60 minutes; lighter work late at night, deeper work at peak hours.
- Do not just repeat an existing task. Find the door they have not noticed yet.
- Make the action feel alive, not administrative.
- Write the meaning in the present tense, without generic encouragement."""


def _first_goal(ctx: Dict[str, Any], goal_type: str) -> str:
    items = ctx.get("goals", {}).get(goal_type) or []
    return items[0]["description"] if items else ""


def _today(ctx: Dict[str, Any]) -> date:
    return date.fromisoformat(ctx["today"])


def days_until(deadline: str, today: date) -> int:
    return (parse_day(deadline) - today).days


def onetime_loads(ctx: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Per-day minutes each active one-time task needs to finish by its deadline."""
    today = _today(ctx)
    loads = []
    for t in ctx["tasks"]["onetime"]["active"]:
        target = int(t.get("target_minutes") or 0)
        if not t.get("deadline") or target <= 0:
            continue
        remaining = max(0, target - int(t.get("completed_minutes") or 0))
        days = max(1, days_until(t["deadline"], today))
        loads.append(
            {
                "title": t["title"],
                "avg_per_day": math.ceil(remaining / days),
                "linked_daily_titles": t.get("linked_daily_titles") or [],
            }
        )
    return loads


def daily_remaining(ctx: Dict[str, Any]) -> int:
    return sum(
        0 if p["is_done"] else max(0, p["target_minutes"] - p["completed_minutes"])
        for p in ctx["tasks"]["daily"]["today_progress"]
    )


def build_revelation_prompt(ctx: Dict[str, Any]) -> Tuple[str, str]:
    temporal = ctx["temporal"]
    perf = ctx["performance"]
    week = perf["last_7_days"]
    lines: List[str] = ["# Current Status", ""]

    lines += [
        "## Time",
        f"- Current local time: {temporal['current_local_time']} ({temporal['day_of_week']}, {temporal['utc_offset']})",
        f"- Day cut (local time): {temporal['day_cut']}",
        f"- Time until day cut: {temporal['time_until_day_end']}",
        "",
        "## Performance",
        f"- Current streak: {perf['streak']['current']} days",
        f"- Longest streak: {perf['streak']['longest']} days",
        f"- Pomodoros completed today: {ctx['profile']['today_pomodoros']}",
        "",
        "## Last 7 Days",
        f"- Total pomodoros: {week['total_count']}",
        f"- Average per day: {week['avg_per_day']:.1f}",
    ]
    if week["avg_focus_rating"] > 0:
        lines.append(f"- Average focus rating: {week['avg_focus_rating']:.1f}/5")
    if week["pomodoros_by_task"]:
        lines += ["", "Most worked on tasks:"]
        lines += [f"- {t['task_title']}: {t['count']} sessions" for t in week["pomodoros_by_task"][:3]]
    lines.append("")

    goal_lines = []
    for goal_type, label in (("3year", "3-Year Goal"), ("1year", "1-Year Goal"), ("1month", "1-Month Goal")):
        text = _first_goal(ctx, goal_type)
        if text:
            goal_lines += [f"### {label}", text, ""]
    if goal_lines:
        lines += ["## Goals", ""] + goal_lines

    progress = ctx["tasks"]["daily"]["today_progress"]
    if progress:
        lines += ["## Daily Tasks", ""]
        for p in progress:
            target, done = p["target_minutes"], p["completed_minutes"]
            remaining = 0 if p["is_done"] else max(0, target - done)
            pct = round(done / target * 100) if target > 0 else 0
            lines += [
                f"### {p['task_title']}",
                f"- Target: {target} minutes",
                f"- Completed: {done} minutes",
                f"- Remaining: {remaining} minutes",
                f"- Progress: {pct}%",
                f"- Status: {'Done' if p['is_done'] else 'Not done'}",
                "",
            ]
        lines += [f"**Total remaining time for daily tasks: {daily_remaining(ctx)} minutes**", ""]

    total_daily = daily_remaining(ctx)
    loads = onetime_loads(ctx)
    if total_daily > 0 or loads:
        # One-time work that already counts toward a daily task is not added twice.
        combined = total_daily + sum(l["avg_per_day"] for l in loads if not l["linked_daily_titles"])
        lines.append("## Load (calculated, no double counting)")
        if total_daily > 0:
            lines.append(f"- Daily remaining: {total_daily} minutes")
        for l in loads:
            line = f"- One-time avg per day: {l['title']} = {l['avg_per_day']} minutes/day"
            if l["linked_daily_titles"]:
                line += f" (counts toward daily: {', '.join(l['linked_daily_titles'])})"
            lines.append(line)
        lines += [f"- Combined required today (non-overlap): {combined} minutes", ""]

    active = ctx["tasks"]["onetime"]["active"]
    if active:
        lines += ["## Project Tasks", ""]
        today = _today(ctx)
        for t in active:
            lines += [f"### {t['title']}", f"- Priority: {t.get('priority') or 'medium'}"]
            if t.get("deadline"):
                lines += [
                    f"- Deadline: {t['deadline'][:10]}",
                    f"- Days until deadline: {days_until(t['deadline'], today)}",
                ]
            else:
                lines.append("- Deadline: none")
            target = int(t.get("target_minutes") or 0)
            if target:
                done = int(t.get("completed_minutes") or 0)
                lines += [
                    f"- Estimated time: {target} minutes",
                    f"- Completed time: {done} minutes",
                    f"- Remaining time: {target - done} minutes",
                    f"- Progress: {round(done / target * 100)}%",
                ]
            if t.get("linked_daily_titles"):
                lines.append(f"- Counts toward daily: {', '.join(t['linked_daily_titles'])}")
            if t.get("description"):
                lines += ["- Description:", t["description"]]
            lines.append("")

    if ctx.get("user_message"):
        lines += ["## User Message", ctx["user_message"], ""]

    return REVELATION_SYSTEM_PROMPT, "\n".join(lines)


def build_suggestion_prompt(ctx: Dict[str, Any]) -> Tuple[str, str]:
    temporal = ctx["temporal"]
    lines: List[str] = [
        "# User Context",
        "",
        "## Time",
        f"- Current time: {temporal['current_local_time']} ({temporal['day_of_week']})",
        f"- Time of day: {temporal['time_of_day']}",
        "",
    ]

    goal_lines = []
    for goal_type, label in (("3year", "3-Year Goal"), ("1year", "1-Year Goal"), ("1month", "1-Month Goal")):
        text = _first_goal(ctx, goal_type)
        if text:
            goal_lines += [f"**{label}**: {text}", ""]
    if goal_lines:
        lines += ["## Goals", ""] + goal_lines

    progress = ctx["tasks"]["daily"]["today_progress"]
    active = ctx["tasks"]["onetime"]["active"]
    if progress or active:
        lines += ["## Existing Tasks (for context)", ""]
        if progress:
            lines.append("Daily Tasks:")
            lines += [f"- {p['task_title']} ({'Done' if p['is_done'] else 'Not done'})" for p in progress]
            lines.append("")
        if active:
            lines.append("One-Time Tasks:")
            lines += [f"- {t['title']}" for t in active[:5]]
            lines.append("")

    perf = ctx["performance"]
    lines += [
        "## Recent Activity",
        f"- Current streak: {perf['streak']['current']} days",
        f"- Pomodoros completed today: {ctx['profile']['today_pomodoros']}",
    ]
    by_task = perf["last_7_days"]["pomodoros_by_task"]
    if by_task:
        lines.append(f"- Most worked on this week: {by_task[0]['task_title']}")
    lines += ["", "Suggest ONE specific next task that moves toward the goals."]

    return SUGGESTION_SYSTEM_PROMPT, "\n".join(lines)
