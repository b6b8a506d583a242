from datetime import date, datetime, timedelta, timezone

from conftest import NOW, USER
from levelup import context, goals, pomodoro, prompts, tasks
from levelup.models import Pomodoro


def test_temporal_context_utc():
    t = context.temporal_context(NOW, "UTC", "00:00:00")
    assert t["current_local_time"] == "2026-10-19 10:00"
    assert t["day_of_week"] == "Monday"
    assert t["utc_offset"] == "UTC+00:00"
    assert t["time_of_day"] == "morning"
    assert t["day_cut"] == "00:00"
    assert t["time_until_day_end"] == "14 hours 0 min"


def test_temporal_context_late_day_cut():
    # 02:00 in Shanghai with a 04:00 cut still belongs to the previous day
    now = datetime(2026, 10, 18, 18, 0, tzinfo=timezone.utc)
    t = context.temporal_context(now, "Asia/Shanghai", "04:00")
    assert t["current_local_time"] == "2026-10-19 02:00"
    assert t["utc_offset"] == "UTC+08:00"
    assert t["time_of_day"] == "night"
    assert t["time_until_day_end"] == "2 hours 0 min"


def test_performance_summary():
    def pomo(task_id, minutes, rating, when):
        return Pomodoro(
            id=f"{task_id}-{when.isoformat()}",
            user_id=USER,
            task_id=task_id,
            duration_minutes=25,
            actual_duration_minutes=minutes,
            completion_type="natural",
            started_at=when.isoformat(),
            completed_at=when.isoformat(),
            focus_rating=rating,
        )

    pomos = [
        pomo("a", 25, 4, NOW),
        pomo("a", 25, None, NOW - timedelta(days=1)),
        pomo("b", 50, 2, NOW),
    ]
    out = context.performance_summary(pomos, {"a": "Read", "b": "Gym"}, "UTC", "00:00")
    assert out["total_count"] == 3
    assert out["avg_per_day"] == 3 / 7
    assert out["avg_focus_rating"] == 3.0
    assert out["pomodoros_by_task"][0] == {"task_id": "a", "task_title": "Read", "count": 2, "minutes": 50}
    assert out["pomodoros_by_day"] == [
        {"date": "2026-10-18", "count": 1, "minutes": 25},
        {"date": "2026-10-19", "count": 2, "minutes": 75},
    ]


def _setup(cfg, link):
    goals.create_goal(cfg, USER, "1year", "Publish a book", now=NOW)
    code = tasks.create_task(cfg, USER, title="Write", task_type="daily", target_duration_minutes=30, now=NOW)
    draft = tasks.create_task(
        cfg,
        USER,
        title="Draft chapter",
        task_type="onetime",
        deadline=date(2026, 10, 23),
        estimated_minutes=100,
        now=NOW,
    )
    if link:
        tasks.link_tasks(cfg, USER, draft.id, code.id)
    return code, draft


def test_collect_context(cfg, profile):
    code, draft = _setup(cfg, link=True)
    pomodoro.log_manual_pomodoro(cfg, USER, code.id, 10, NOW - timedelta(hours=1), focus_rating=4, now=NOW)

    ctx = context.collect_context(cfg, USER, message="  tired today ", now=NOW)
    assert ctx["today"] == "2026-10-19"
    assert ctx["goals"]["1year"][0]["description"] == "Publish a book"
    assert ctx["goals"]["3year"] == []
    (progress,) = ctx["tasks"]["daily"]["today_progress"]
    assert (progress["task_title"], progress["completed_minutes"], progress["is_done"]) == ("Write", 10, False)
    (active,) = ctx["tasks"]["onetime"]["active"]
    assert active["linked_daily_titles"] == ["Write"]
    assert active["target_minutes"] == 100
    assert [t["title"] for t in ctx["tasks"]["onetime"]["with_deadlines"]] == ["Draft chapter"]
    assert ctx["profile"]["today_pomodoros"] == 1
    assert ctx["performance"]["last_7_days"]["avg_focus_rating"] == 4.0
    assert ctx["user_message"] == "tired today"


def test_onetime_load_is_spread_over_days_left(cfg, profile):
    _setup(cfg, link=False)
    ctx = context.collect_context(cfg, USER, now=NOW)
    (load,) = prompts.onetime_loads(ctx)
    assert load["avg_per_day"] == 25
    assert prompts.daily_remaining(ctx) == 30


def test_revelation_prompt_counts_unlinked_load(cfg, profile):
    _setup(cfg, link=False)
    system, user = prompts.build_revelation_prompt(context.collect_context(cfg, USER, now=NOW))
    assert system == prompts.REVELATION_SYSTEM_PROMPT
    assert "- Daily remaining: 30 minutes" in user
    assert "- Combined required today (non-overlap): 55 minutes" in user
    assert "### 1-Year Goal" in user
    assert "- Days until deadline: 4" in user


def test_revelation_prompt_skips_linked_load(cfg, profile):
    _setup(cfg, link=True)
    _, user = prompts.build_revelation_prompt(context.collect_context(cfg, USER, message="gym at 6pm", now=NOW))
    assert "(counts toward daily: Write)" in user
    assert "- Combined required today (non-overlap): 30 minutes" in user
    assert user.rstrip().endswith("gym at 6pm")


def test_suggestion_prompt(cfg, profile):
    _setup(cfg, link=False)
    system, user = prompts.build_suggestion_prompt(context.collect_context(cfg, USER, now=NOW))
    assert "Duration:" in system
    assert "**1-Year Goal**: Publish a book" in user
    assert "- Write (Not done)" in user
    assert "- Time of day: morning" in user
