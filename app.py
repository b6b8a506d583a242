"""
LevelUp (Streamlit + Postgres)

Features
- Layered goals: 3-year / 1-year / 1-month, with evaluation notes
- Tasks:
    - daily tasks with a target duration (the daily checklist)
    - one-time tasks with a deadline and an estimate
    - links between one-time and daily tasks (minutes count toward both)
    - pause / archive / burn-down chart
- Pomodoro timer (persisted, survives reloads):
    - 15 / 25 / 45 / 60 min, pause + resume, overtime tracking
    - focus rating + accomplishment note on completion
    - manual logging and editing of past sessions
- Rewards: gold + XP when a daily target is reached or a one-time task is done, levels, shop
- Check-in streak: a day counts when every daily task is done;
  rest credits make up missed days
- Revelation: LLM plan for the rest of the day + next-task suggestion
- Stats: today / this week minutes, weekly histogram

Run locally: streamlit run app.py
Config: DATABASE_URL (postgres://... or sqlite:///levelup.db), DEEPSEEK_API_KEY / OPENAI_API_KEY
"""

from __future__ import annotations

import time
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

from levelup import goals, pomodoro, profiles, revelations, shop, stats, streak, tasks
from levelup.config import AppConfig, load_config
from levelup.dates import day_bounds_utc, format_minutes, local_now, parse_iso, utc_now
from levelup.db import DbConfig, init_db
from levelup.errors import LevelUpError
from levelup.log import configure_logging, get_logger
from levelup.models import Profile, Task

log = get_logger("app")

PRIORITY_ICONS = {"low": "🟢", "medium": "🟡", "high": "🔴"}
CATEGORY_ICONS = {"study": "📚", "exercise": "🏃", "work": "💼", "creative": "🎨", "admin": "🗂️"}
STATUS_ICONS = {streak.COMPLETED: "✅", streak.MISSED: "❌", streak.FUTURE: "▫️"}


# -------------------------
# Helpers
# -------------------------

def _streamlit_secrets() -> Dict[str, Any]:
    # Streamlit raises when no secrets.toml exists; env vars still apply then.
    try:
        return dict(st.secrets)
    except (FileNotFoundError, StreamlitAPIException):
        return {}


def run_action(fn, *args, success: Optional[str] = None, **kwargs) -> Any:
    """Run a service call, surfacing domain errors in the page."""
    try:
        result = fn(*args, **kwargs)
    except LevelUpError as exc:
        log.warning("%s rejected: %s", getattr(fn, "__name__", fn), exc)
        st.error(str(exc))
        return None
    if success:
        st.toast(success)
    return result


def task_label(t: Task) -> str:
    return f"{CATEGORY_ICONS.get(t.category, '')} {t.title}"


def announce_rewards(result: pomodoro.CompletionResult) -> None:
    r = result.rewards
    if r.gold or r.xp:
        st.toast(f"+{r.gold} gold, +{r.xp} XP", icon="🍅")
    else:
        st.toast("Pomodoro logged.", icon="🍅")
    if result.task_completed:
        st.toast("Task completed!", icon="🏁")
    for title in result.daily_targets_reached:
        st.toast(f"Daily target reached: {title}", icon="🎯")
    if result.checked_in:
        st.toast("All daily tasks done. Checked in for today!", icon="🔥")
    if r.leveled_up:
        st.balloons()
        st.success(f"Level up! You are now level {r.new_level}.")


# -------------------------
# Sidebar
# -------------------------

def sidebar_profile(profile: Profile) -> None:
    st.sidebar.header(f"⭐ Level {profile.level}")
    needed = profiles.xp_needed_for_level(profile.level)
    st.sidebar.progress(min(1.0, profile.xp / needed), text=f"XP {profile.xp}/{needed}")
    c1, c2 = st.sidebar.columns(2)
    c1.metric("Gold", profile.gold)
    c2.metric("Rest credits", profile.rest_credits)
    c3, c4 = st.sidebar.columns(2)
    c3.metric("Streak", f"{profile.current_streak}d")
    c4.metric("Longest", f"{profile.longest_streak}d")
    st.sidebar.caption(f"Total pomodoros: {profile.total_pomodoros}")


def sidebar_admin(cfg: DbConfig, user: str, profile: Profile) -> None:
    st.sidebar.header("⚙️ Settings")

    with st.sidebar.expander("Day cut / timezone", expanded=False):
        cut = st.text_input("Day cut (HH:MM)", value=profile.daily_reset_time[:5], key="set_cut")
        tz = st.text_input("Timezone", value=profile.timezone_name, key="set_tz")
        if st.button("Save settings", use_container_width=True, key="set_save"):
            if run_action(profiles.update_settings, cfg, user, daily_reset_time=cut, timezone_name=tz, success="Settings saved."):
                st.rerun()

    with st.sidebar.expander("Grant rest credits", expanded=False):
        n = st.number_input("Credits", min_value=1, max_value=10, value=1, step=1, key="grant_n")
        if st.button("Grant", use_container_width=True, key="grant_btn"):
            run_action(profiles.grant_rest_credits, cfg, user, int(n), success=f"Granted {int(n)} rest credit(s).")
            st.rerun()

    with st.sidebar.expander("Log a past pomodoro", expanded=False):
        all_tasks = tasks.list_tasks(cfg, user)
        if not all_tasks:
            st.caption("No tasks yet.")
        else:
            by_id = {t.id: t for t in all_tasks}
            tid = st.selectbox("Task", list(by_id), format_func=lambda i: task_label(by_id[i]), key="manual_task")
            minutes = st.number_input("Minutes", min_value=1, max_value=240, value=25, step=5, key="manual_min")
            local = local_now(utc_now(), profile.timezone_name)
            d = st.date_input("Finished on", local.date(), key="manual_date")
            t = st.time_input("Finished at", local.time().replace(second=0, microsecond=0), key="manual_time")
            note = st.text_input("Note", key="manual_note")
            if st.button("Log pomodoro", use_container_width=True, key="manual_btn"):
                finished = datetime.combine(d, t, tzinfo=local.tzinfo)
                result = run_action(pomodoro.log_manual_pomodoro, cfg, user, tid, int(minutes), finished, note=note)
                if result:
                    announce_rewards(result)
                    st.rerun()


# -------------------------
# Pomodoro (UI)
# -------------------------

def render_active_pomodoro(cfg: DbConfig, user: str, profile: Profile) -> bool:
    """Returns True while a running (unpaused) session needs a live refresh."""
    st.markdown("### 🍅 Pomodoro")
    active = pomodoro.get_active(cfg, user)

    if active is None:
        startable = [t for t in tasks.list_tasks(cfg, user) if t.is_active and not t.is_completed]
        if not startable:
            st.info("Create a task to start a pomodoro.")
            return False
        by_id = {t.id: t for t in startable}
        c1, c2, c3 = st.columns([0.6, 0.2, 0.2])
        with c1:
            tid = st.selectbox("Task", list(by_id), format_func=lambda i: task_label(by_id[i]), key="pomo_task")
        with c2:
            minutes = st.selectbox("Minutes", pomodoro.DURATION_OPTIONS, index=1, key="pomo_minutes")
        with c3:
            st.write("")
            if st.button("Start", type="primary", use_container_width=True, key="pomo_start"):
                run_action(pomodoro.start_pomodoro, cfg, user, tid, int(minutes))
                st.rerun()
        return False

    try:
        task = tasks.get_task(cfg, user, active.task_id)
        st.write(f"**{task_label(task)}** · {active.duration_minutes} min")
    except LevelUpError:
        st.write(f"{active.duration_minutes} min session")

    now = utc_now()
    seconds_left = pomodoro.seconds_remaining(active, now)
    if seconds_left >= 0:
        mm, ss = divmod(seconds_left, 60)
        st.metric("Paused" if active.is_paused else "Remaining", f"{mm:02d}:{ss:02d}")
        st.progress(1.0 - seconds_left / max(1, active.duration_minutes * 60))
    else:
        mm, ss = divmod(-seconds_left, 60)
        st.metric("Overtime", f"+{mm:02d}:{ss:02d}")
        st.progress(1.0)

    with st.form("pomo_complete"):
        rating = st.slider("Focus rating", 1, 5, 3, key="pomo_rating")
        note = st.text_area("What did you accomplish?", height=80, key="pomo_note")
        done = st.form_submit_button("Complete", type="primary", use_container_width=True)
    if done:
        result = run_action(pomodoro.complete_pomodoro, cfg, user, focus_rating=int(rating), note=note)
        if result:
            announce_rewards(result)
            st.rerun()

    b1, b2 = st.columns(2)
    with b1:
        if active.is_paused:
            if st.button("Resume", use_container_width=True, key="pomo_resume"):
                run_action(pomodoro.resume_pomodoro, cfg, user)
                st.rerun()
        elif st.button("Pause", use_container_width=True, key="pomo_pause"):
            run_action(pomodoro.pause_pomodoro, cfg, user)
            st.rerun()
    with b2:
        if st.button("Cancel", use_container_width=True, key="pomo_cancel"):
            pomodoro.cancel_pomodoro(cfg, user)
            st.rerun()

    return not active.is_paused and st.toggle("Live timer", value=True, key="pomo_live")


def render_today_pomodoros(cfg: DbConfig, user: str, profile: Profile, today: date) -> None:
    start, end = day_bounds_utc(today, profile.timezone_name, profile.daily_reset_time)
    pomos = pomodoro.list_pomodoros(cfg, user, start, end)
    st.markdown(f"### Today's pomodoros ({len(pomos)})")
    if not pomos:
        st.caption("Nothing logged yet today.")
        return

    all_tasks = {t.id: t for t in tasks.list_tasks(cfg, user, include_archived=True)}
    for p in pomos:
        title = all_tasks[p.task_id].title if p.task_id in all_tasks else "(deleted task)"
        finished = local_now(parse_iso(p.completed_at), profile.timezone_name).strftime("%H:%M")
        header = f"{finished} · {title} · {p.actual_duration_minutes} min · {p.completion_type}"
        with st.expander(header, expanded=False):
            periods = pomodoro.work_periods(p.started_at, p.completed_at, p.pause_periods)
            st.caption(
                " | ".join(
                    f"{local_now(a, profile.timezone_name):%H:%M}-{local_now(b, profile.timezone_name):%H:%M}"
                    for a, b in periods
                )
            )
            if p.accomplishment_note:
                st.markdown(p.accomplishment_note)

            ids = list(all_tasks)
            new_task = st.selectbox(
                "Task",
                ids,
                index=ids.index(p.task_id) if p.task_id in ids else 0,
                format_func=lambda i: all_tasks[i].title,
                key=f"edit_task::{p.id}",
            )
            new_min = st.number_input("Minutes", min_value=1, max_value=600, value=int(p.actual_duration_minutes), key=f"edit_min::{p.id}")
            new_rating = st.slider("Focus rating", 1, 5, int(p.focus_rating or 3), key=f"edit_rating::{p.id}")
            new_note = st.text_input("Note", value=p.accomplishment_note or "", key=f"edit_note::{p.id}")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Save", use_container_width=True, key=f"edit_save::{p.id}"):
                    run_action(
                        pomodoro.edit_pomodoro, cfg, user, p.id,
                        actual_minutes=int(new_min), task_id=new_task, focus_rating=int(new_rating), note=new_note,
                        success="Pomodoro updated.",
                    )
                    st.rerun()
            with c2:
                if st.button("Delete", use_container_width=True, key=f"edit_del::{p.id}"):
                    run_action(pomodoro.delete_pomodoro, cfg, user, p.id, success="Pomodoro deleted.")
                    st.rerun()


# -------------------------
# Dashboard
# -------------------------

def render_daily_checklist(cfg: DbConfig, user: str, profile: Profile, today: date) -> None:
    st.markdown("### ✅ Daily tasks")
    progress = tasks.daily_progress(cfg, user, today, profile.timezone_name, profile.daily_reset_time)
    if not progress:
        st.caption("No active daily tasks. Add some in the Tasks tab.")
        return
    for p in progress:
        icon = "✅" if p.is_done else "⏳"
        extra = f" (incl. {p.linked_minutes}m linked)" if p.linked_minutes else ""
        st.write(f"{icon} **{p.task.title}**: {p.completed_minutes}/{p.target_minutes} min{extra}")
        st.progress(min(1.0, p.completed_minutes / max(1, p.target_minutes)))
    if tasks.all_daily_done(progress):
        st.success("All daily tasks done today.")


def render_dashboard(cfg: DbConfig, user: str, profile: Profile) -> bool:
    now = utc_now()
    today = profiles.profile_today(profile, now)

    summary = stats.time_summary(cfg, user, profile, now)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Today", format_minutes(summary.today_minutes))
    c2.metric("Pomodoros today", summary.today_pomodoros)
    c3.metric("This week", format_minutes(summary.week_minutes))
    c4.metric("Pomodoros this week", summary.week_pomodoros)

    left, right = st.columns(2)
    with left:
        ticking = render_active_pomodoro(cfg, user, profile)
    with right:
        render_daily_checklist(cfg, user, profile, today)

    st.divider()
    render_today_pomodoros(cfg, user, profile, today)

    st.divider()
    hist = stats.weekly_histogram(cfg, user, profile, now)
    st.pyplot(stats.histogram_figure(hist))
    return ticking


# -------------------------
# Tasks
# -------------------------

def render_task_form(cfg: DbConfig, user: str) -> None:
    with st.expander("➕ New task", expanded=False):
        task_type = st.radio("Type", tasks.TASK_TYPES, horizontal=True, key="new_type")
        with st.form("new_task", clear_on_submit=True):
            title = st.text_input("Title")
            description = st.text_area("Description", height=80)
            c1, c2 = st.columns(2)
            category = c1.selectbox("Category", tasks.CATEGORIES)
            priority = c2.selectbox("Priority", tasks.PRIORITIES, index=1)
            kwargs: Dict[str, Any] = {}
            if task_type == "daily":
                kwargs["target_duration_minutes"] = st.number_input("Daily target (min)", min_value=5, max_value=600, value=25, step=5)
            else:
                kwargs["deadline"] = st.date_input("Deadline", date.today() + timedelta(days=7))
                c3, c4 = st.columns(2)
                kwargs["estimated_pomodoros"] = c3.number_input("Estimated pomodoros", min_value=0, max_value=200, value=4)
                kwargs["estimated_minutes"] = c4.number_input("Estimated minutes (overrides)", min_value=0, max_value=12000, value=0) or None
            if st.form_submit_button("Create", type="primary"):
                if run_action(
                    tasks.create_task, cfg, user,
                    title=title, task_type=task_type, category=category, priority=priority,
                    description=description, success="Task created.", **kwargs,
                ):
                    st.rerun()


def render_task_links(cfg: DbConfig, user: str, t: Task) -> None:
    linked = tasks.linked_tasks(cfg, user, t.id)
    current = [x.id for x in linked]
    options = {c.id: c.title for c in tasks.relationship_candidates(cfg, user, t.id)}
    for x in linked:
        options.setdefault(x.id, x.title)
    if not options:
        st.caption("No tasks of the other type to link.")
        return
    label = "Counts toward daily tasks" if t.task_type == "onetime" else "Linked one-time tasks"
    selected = st.multiselect(label, list(options), default=current, format_func=lambda i: options[i], key=f"links::{t.id}")
    if st.button("Save links", key=f"links_save::{t.id}"):
        added_removed = run_action(tasks.save_relationships, cfg, user, t.id, selected)
        if added_removed:
            added, removed = added_removed
            st.toast(f"Links saved (+{len(added)} / -{len(removed)})")
            st.rerun()


def render_task_card(cfg: DbConfig, user: str, t: Task, profile: Profile) -> None:
    target = tasks.target_minutes(t)
    status = "🏁 done" if t.is_completed else ("⏸️ paused" if not t.is_active else "")
    header = f"{PRIORITY_ICONS.get(t.priority, '')} {task_label(t)} {status}"
    with st.expander(header, expanded=False):
        if t.description:
            st.markdown(t.description)
        if t.task_type == "daily":
            st.caption(f"Daily target {t.target_duration_minutes} min · total logged {format_minutes(t.completed_minutes)}")
        else:
            st.caption(f"Deadline {t.deadline} · {t.completed_minutes}/{target} min · {t.completed_pomodoros} pomodoros")
            st.progress(min(1.0, t.completed_minutes / max(1, target)))
        st.caption(f"Reward: {t.gold_reward} gold / {t.xp_reward} XP")

        c1, c2, c3, c4 = st.columns(4)
        with c1:
            if st.button("Resume" if not t.is_active else "Pause", key=f"act::{t.id}", disabled=t.is_completed):
                run_action(tasks.set_active, cfg, user, t.id, not t.is_active)
                st.rerun()
        with c2:
            if t.task_type == "onetime" and not t.is_completed and st.button("Complete", key=f"done::{t.id}"):
                reward = run_action(tasks.complete_onetime_task, cfg, user, t.id)
                if reward:
                    st.toast(f"+{reward.gold} gold, +{reward.xp} XP", icon="🏁")
                    st.rerun()
        with c3:
            if t.is_archived:
                if st.button("Unarchive", key=f"unarch::{t.id}"):
                    run_action(tasks.unarchive_task, cfg, user, t.id)
                    st.rerun()
            elif st.button("Archive", key=f"arch::{t.id}"):
                run_action(tasks.archive_task, cfg, user, t.id)
                st.rerun()
        with c4:
            if st.button("Delete", key=f"del::{t.id}"):
                run_action(tasks.delete_task, cfg, user, t.id, success="Task deleted.")
                st.rerun()

        if st.toggle("Edit", key=f"edit::{t.id}"):
            with st.form(f"edit_form::{t.id}"):
                title = st.text_input("Title", value=t.title)
                description = st.text_area("Description", value=t.description, height=80)
                priority = st.selectbox("Priority", tasks.PRIORITIES, index=tasks.PRIORITIES.index(t.priority))
                changes: Dict[str, Any] = {"title": title, "description": description, "priority": priority}
                if t.task_type == "daily":
                    changes["target_duration_minutes"] = st.number_input(
                        "Daily target (min)", min_value=5, max_value=600, value=int(t.target_duration_minutes or 25), step=5
                    )
                else:
                    changes["deadline"] = st.date_input("Deadline", date.fromisoformat(t.deadline[:10]) if t.deadline else date.today())
                    changes["estimated_minutes"] = st.number_input("Estimated minutes", min_value=0, max_value=12000, value=int(target)) or None
                if st.form_submit_button("Save"):
                    if run_action(tasks.update_task, cfg, user, t.id, success="Task saved.", **changes):
                        st.rerun()

        if not t.is_archived:
            render_task_links(cfg, user, t)

        if t.task_type == "onetime" and st.toggle("Burn-down", key=f"bd::{t.id}"):
            bd = stats.burn_down(cfg, user, t, profile, utc_now())
            st.pyplot(stats.burn_down_figure(bd, t.title))


def render_tasks(cfg: DbConfig, user: str, profile: Profile) -> None:
    render_task_form(cfg, user)
    show_archived = st.toggle("Show archived", value=False, key="tasks_archived")
    all_tasks = tasks.list_tasks(cfg, user, include_archived=show_archived)

    for task_type, label in (("daily", "📅 Daily tasks"), ("onetime", "🎯 One-time tasks")):
        st.subheader(label)
        group = [t for t in all_tasks if t.task_type == task_type]
        if not group:
            st.caption("None yet.")
        for t in group:
            render_task_card(cfg, user, t, profile)


# -------------------------
# Goals
# -------------------------

def render_goals(cfg: DbConfig, user: str) -> None:
    active = goals.get_active_goals(cfg, user)
    missing = goals.missing_goal_types(active)
    if missing:
        st.info("Set your " + ", ".join(goals.GOAL_LABELS[m] for m in missing) + ".")

    for goal_type in goals.GOAL_TYPES:
        label = goals.GOAL_LABELS[goal_type]
        g = active.get(goal_type)
        st.subheader(label)
        if g is None:
            text = st.text_area(f"Describe your {label.lower()}", key=f"goal_new::{goal_type}")
            if st.button("Save goal", key=f"goal_create::{goal_type}"):
                if run_action(goals.create_goal, cfg, user, goal_type, text, success="Goal saved."):
                    st.rerun()
            continue

        st.caption(f"Target date: {g.target_date}" + (" · ✅ achieved" if g.is_completed else ""))
        text = st.text_area("Description", value=g.description, key=f"goal_edit::{g.id}")
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Update", key=f"goal_update::{g.id}"):
                if run_action(goals.update_goal_description, cfg, user, g.id, text, success="Goal updated."):
                    st.rerun()
        with c2:
            if st.button("Replace with new goal", key=f"goal_replace::{g.id}"):
                if run_action(goals.create_goal, cfg, user, goal_type, text, success="New goal started."):
                    st.rerun()
        with st.expander("Evaluate", expanded=False):
            note = st.text_area("Evaluation note", value=g.evaluation_note or "", key=f"goal_note::{g.id}")
            achieved = st.checkbox("Achieved", value=g.is_completed, key=f"goal_done::{g.id}")
            if st.button("Save evaluation", key=f"goal_eval::{g.id}"):
                run_action(goals.evaluate_goal, cfg, user, g.id, note, achieved, success="Evaluation saved.")
                st.rerun()

    history = goals.goal_history(cfg, user)
    if history:
        with st.expander("Past goals", expanded=False):
            st.dataframe(
                [
                    {"type": h.goal_type, "goal": h.description, "target": h.target_date, "achieved": h.is_completed, "note": h.evaluation_note or ""}
                    for h in history
                ],
                use_container_width=True,
            )


# -------------------------
# Calendar
# -------------------------

def render_calendar(cfg: DbConfig, user: str, profile: Profile) -> None:
    today = profiles.profile_today(profile)
    c1, c2 = st.columns(2)
    year = int(c1.number_input("Year", min_value=2000, max_value=2100, value=today.year, key="cal_year"))
    month = int(c2.selectbox("Month", list(range(1, 13)), index=today.month - 1, key="cal_month"))

    days = streak.month_calendar(cfg, user, year, month, today)
    st.caption("✅ checked in · ❌ missed · ▫️ upcoming")
    cols = st.columns(7)
    for i, name in enumerate(stats.WEEKDAY_LABELS):
        cols[i].markdown(f"**{name}**")
    cols = st.columns(7)
    for d, status in days:
        cols[d.weekday()].write(f"{STATUS_ICONS[status]} {d.day}")
        if d.weekday() == 6:
            cols = st.columns(7)

    missed = [d for d, s in days if s == streak.MISSED]
    st.divider()
    st.markdown(f"### 🛌 Make up a day ({profile.rest_credits} rest credits)")
    if not missed:
        st.caption("No missed days this month.")
        return
    pick = st.selectbox("Missed day", missed, format_func=lambda d: d.isoformat(), key="makeup_day")
    if st.button("Use a rest credit", disabled=profile.rest_credits <= 0, key="makeup_btn"):
        left = run_action(streak.make_up_day, cfg, user, pick, today)
        if left is not None:
            st.toast(f"{pick.isoformat()} checked in. {left} credit(s) left.")
            st.rerun()


# -------------------------
# Shop
# -------------------------

def render_shop(cfg: DbConfig, user: str, profile: Profile) -> None:
    st.metric("Gold", profile.gold)
    with st.form("shop_add", clear_on_submit=True):
        c1, c2 = st.columns([0.7, 0.3])
        name = c1.text_input("Reward")
        cost = c2.number_input("Gold cost", min_value=0, max_value=100000, value=50, step=10)
        description = st.text_input("Description")
        if st.form_submit_button("Add to shop"):
            if run_action(shop.add_item, cfg, user, name, description, int(cost), success="Added."):
                st.rerun()

    st.subheader("🛒 Available")
    for item in shop.list_items(cfg, user, purchased=False):
        c1, c2, c3 = st.columns([0.6, 0.2, 0.2])
        c1.write(f"**{item.name}** · {item.gold_cost} gold")
        if item.description:
            c1.caption(item.description)
        if c2.button("Buy", key=f"buy::{item.id}", disabled=profile.gold < item.gold_cost):
            if run_action(shop.purchase_item, cfg, user, item.id, success=f"Enjoy: {item.name}") is not None:
                st.rerun()
        if c3.button("Remove", key=f"rm::{item.id}"):
            run_action(shop.delete_item, cfg, user, item.id)
            st.rerun()

    bought = shop.list_items(cfg, user, purchased=True)
    if bought:
        st.subheader("🎒 Inventory")
        st.dataframe(
            [{"item": i.name, "cost": i.gold_cost, "purchased": i.purchased_at} for i in bought],
            use_container_width=True,
        )


# -------------------------
# Revelation
# -------------------------

def render_revelation(cfg: DbConfig, app_cfg: AppConfig, user: str) -> None:
    provider = st.selectbox("Model provider", ["deepseek", "openai"], index=0 if app_cfg.llm_provider == "deepseek" else 1, key="llm_provider")
    api_key = app_cfg.api_key_for(provider)

    st.subheader("🔮 Revelation")
    message = st.text_area("Anything the guide should know? (constraints, energy, plans)", key="rev_msg")
    if st.button("Reveal my path", type="primary", key="rev_btn"):
        with st.spinner("Consulting..."):
            run_action(revelations.generate_revelation, cfg, user, provider=provider, api_key=api_key, message=message)

    latest = revelations.latest_revelation(cfg, user)
    if latest:
        st.caption(f"Generated {latest.created_at}")
        sections = revelations.parse_sections(latest.revelation_text)
        if sections:
            for name, body in sections.items():
                st.markdown(f"#### {name}" if name else "")
                st.markdown(body)
        else:
            st.markdown(latest.revelation_text)

    st.divider()
    st.subheader("🧭 Next task")
    if st.button("Suggest a next task", key="sugg_btn"):
        with st.spinner("Thinking..."):
            run_action(revelations.suggest_next_task, cfg, user, provider=provider, api_key=api_key)
    suggestion = revelations.latest_revelation(cfg, user, revelations.NEXT_TASK)
    if suggestion:
        parsed = revelations.parse_suggestion(suggestion.revelation_text)
        if parsed:
            for k, v in parsed.items():
                st.markdown(f"**{k}:** {v}")
        else:
            st.markdown(suggestion.revelation_text)

    with st.expander("History", expanded=False):
        kind = st.radio("Type", [revelations.REVELATION, revelations.NEXT_TASK], horizontal=True, key="rev_hist_kind")
        for r in revelations.revelation_history(cfg, user, kind):
            st.markdown(f"**{r.created_at}**")
            st.markdown(r.revelation_text)
            st.divider()


# -------------------------
# Main UI
# -------------------------

def main() -> None:
    st.set_page_config(page_title="LevelUp", layout="wide")
    st.title("⚔️ LevelUp")

    try:
        app_cfg = load_config(_streamlit_secrets())
    except LevelUpError as exc:
        st.error(str(exc))
        st.stop()

    configure_logging(app_cfg.log_level)
    cfg = app_cfg.db
    init_db(cfg)
    user = app_cfg.user_id

    profile = profiles.get_profile(cfg, user, default_timezone=app_cfg.default_timezone)
    sidebar_profile(profile)
    sidebar_admin(cfg, user, profile)

    tab_dash, tab_tasks, tab_goals, tab_cal, tab_shop, tab_rev = st.tabs(
        ["🍅 Dashboard", "📋 Tasks", "🏔️ Goals", "📆 Calendar", "🛒 Shop", "🔮 Revelation"]
    )
    with tab_dash:
        ticking = render_dashboard(cfg, user, profile)
    with tab_tasks:
        render_tasks(cfg, user, profile)
    with tab_goals:
        render_goals(cfg, user)
    with tab_cal:
        render_calendar(cfg, user, profile)
    with tab_shop:
        render_shop(cfg, user, profile)
    with tab_rev:
        render_revelation(cfg, app_cfg, user)

    if ticking:
        time.sleep(1)
        st.rerun()


if __name__ == "__main__":
    main()
