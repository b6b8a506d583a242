from datetime import date, timedelta

import pytest

from conftest import NOW, USER
from levelup import pomodoro, tasks
from levelup.errors import NotFoundError, ValidationError
from levelup.models import Task


def make_daily(cfg, title="Read", minutes=25, **kw):
    return tasks.create_task(cfg, USER, title=title, task_type="daily", target_duration_minutes=minutes, now=NOW, **kw)


def make_onetime(cfg, title="Ship v1", **kw):
    kw.setdefault("deadline", date(2026, 10, 25))
    kw.setdefault("estimated_minutes", 100)
    return tasks.create_task(cfg, USER, title=title, task_type="onetime", now=NOW, **kw)


def test_create_requires_title_and_deadline(cfg):
    with pytest.raises(ValidationError):
        tasks.create_task(cfg, USER, title="  ", task_type="daily", target_duration_minutes=25)
    with pytest.raises(ValidationError):
        tasks.create_task(cfg, USER, title="Report", task_type="onetime")
    with pytest.raises(ValidationError):
        tasks.create_task(cfg, USER, title="Gym", task_type="daily")
    with pytest.raises(ValidationError):
        tasks.create_task(cfg, USER, title="Gym", task_type="daily", target_duration_minutes=30, category="sleep")


def test_rewards_default_to_priority_table(cfg):
    t = make_onetime(cfg, priority="high")
    assert (t.gold_reward, t.xp_reward) == (50, 100)
    custom = make_daily(cfg, gold_reward=5, xp_reward=7)
    assert (custom.gold_reward, custom.xp_reward) == (5, 7)


def test_daily_task_drops_onetime_fields(cfg):
    t = make_daily(cfg, deadline=date(2026, 11, 1))
    assert t.deadline is None
    assert tasks.get_task(cfg, USER, t.id).target_duration_minutes == 25


def test_target_minutes():
    base = dict(id="x", user_id=USER, title="t")
    assert tasks.target_minutes(Task(task_type="daily", target_duration_minutes=45, **base)) == 45
    assert tasks.target_minutes(Task(task_type="onetime", estimated_minutes=90, estimated_pomodoros=2, **base)) == 90
    assert tasks.target_minutes(Task(task_type="onetime", estimated_pomodoros=3, **base)) == 75
    assert tasks.target_minutes(Task(task_type="onetime", **base)) == 0


def test_update_task_validates(cfg):
    t = make_onetime(cfg)
    updated = tasks.update_task(cfg, USER, t.id, title="Ship v2", deadline=date(2026, 11, 2))
    assert updated.title == "Ship v2"
    assert tasks.get_task(cfg, USER, t.id).deadline == "2026-11-02"
    with pytest.raises(ValidationError):
        tasks.update_task(cfg, USER, t.id, deadline=None)
    with pytest.raises(ValidationError):
        tasks.update_task(cfg, USER, t.id, is_completed=True)


def test_pause_archive_and_list(cfg):
    d = make_daily(cfg)
    o = make_onetime(cfg)
    tasks.set_active(cfg, USER, d.id, False)
    assert tasks.get_task(cfg, USER, d.id).is_active is False
    tasks.archive_task(cfg, USER, o.id, now=NOW)
    assert [t.id for t in tasks.list_tasks(cfg, USER)] == [d.id]
    assert len(tasks.list_tasks(cfg, USER, include_archived=True)) == 2
    tasks.unarchive_task(cfg, USER, o.id)
    assert len(tasks.list_tasks(cfg, USER, task_type="onetime")) == 1


def test_complete_onetime_task_once(cfg, profile):
    o = make_onetime(cfg, priority="low")
    reward = tasks.complete_onetime_task(cfg, USER, o.id, now=NOW)
    assert (reward.gold, reward.xp) == (10, 20)
    done = tasks.get_task(cfg, USER, o.id)
    assert done.is_completed and not done.is_active
    with pytest.raises(ValidationError):
        tasks.complete_onetime_task(cfg, USER, o.id, now=NOW)
    with pytest.raises(ValidationError):
        tasks.complete_onetime_task(cfg, USER, make_daily(cfg).id, now=NOW)


def test_link_requires_opposite_types(cfg):
    a, b = make_daily(cfg, "A"), make_daily(cfg, "B")
    with pytest.raises(ValidationError):
        tasks.link_tasks(cfg, USER, a.id, b.id)


def test_link_unlink_from_either_side(cfg):
    d = make_daily(cfg)
    o = make_onetime(cfg)
    tasks.link_tasks(cfg, USER, d.id, o.id)
    tasks.link_tasks(cfg, USER, o.id, d.id)  # duplicate is ignored
    assert [t.id for t in tasks.linked_tasks(cfg, USER, o.id)] == [d.id]
    assert [t.id for t in tasks.linked_tasks(cfg, USER, d.id)] == [o.id]
    tasks.unlink_tasks(cfg, USER, o.id, d.id)
    assert tasks.linked_tasks(cfg, USER, d.id) == []


def test_relationship_candidates_are_other_type(cfg):
    d = make_daily(cfg)
    o1 = make_onetime(cfg, "One")
    o2 = make_onetime(cfg, "Two")
    tasks.set_active(cfg, USER, o2.id, False)
    assert [t.id for t in tasks.relationship_candidates(cfg, USER, d.id)] == [o1.id]


def test_save_relationships_applies_diff(cfg):
    o = make_onetime(cfg)
    d1, d2, d3 = make_daily(cfg, "D1"), make_daily(cfg, "D2"), make_daily(cfg, "D3")
    tasks.link_tasks(cfg, USER, o.id, d1.id)
    tasks.link_tasks(cfg, USER, o.id, d2.id)

    added, removed = tasks.save_relationships(cfg, USER, o.id, [d2.id, d3.id])
    assert added == [d3.id]
    assert removed == [d1.id]
    assert {t.id for t in tasks.linked_tasks(cfg, USER, o.id)} == {d2.id, d3.id}


def test_diff_relationships():
    assert tasks.diff_relationships({"a", "b"}, {"b", "c"}) == (["c"], ["a"])
    assert tasks.diff_relationships(set(), set()) == ([], [])


def test_daily_progress_counts_linked_minutes(cfg, profile):
    d = make_daily(cfg, "Code", minutes=30)
    o = make_onetime(cfg)
    tasks.link_tasks(cfg, USER, o.id, d.id)
    pomodoro.log_manual_pomodoro(cfg, USER, o.id, 20, NOW, now=NOW)
    pomodoro.log_manual_pomodoro(cfg, USER, d.id, 15, NOW - timedelta(days=1), now=NOW)

    (p,) = tasks.daily_progress(cfg, USER, NOW.date(), "UTC", "00:00:00")
    assert (p.own_minutes, p.linked_minutes) == (0, 20)
    assert p.remaining_minutes == 10
    assert p.percent == 67
    assert not p.is_done
    assert not tasks.all_daily_done([p])
    assert tasks.all_daily_done([]) is False


def test_delete_task_detaches_pomodoros(cfg, profile):
    d = make_daily(cfg)
    o = make_onetime(cfg)
    tasks.link_tasks(cfg, USER, o.id, d.id)
    result = pomodoro.log_manual_pomodoro(cfg, USER, o.id, 25, NOW, now=NOW)

    tasks.delete_task(cfg, USER, o.id)
    with pytest.raises(NotFoundError):
        tasks.get_task(cfg, USER, o.id)
    assert tasks.linked_tasks(cfg, USER, d.id) == []
    start, end = NOW - timedelta(hours=1), NOW + timedelta(hours=1)
    (kept,) = pomodoro.list_pomodoros(cfg, USER, start, end)
    assert kept.id == result.pomodoro.id
    assert kept.task_id is None


def test_recalculate_task_progress_repairs_counters(cfg, profile):
    d = make_daily(cfg, minutes=60)
    pomodoro.log_manual_pomodoro(cfg, USER, d.id, 25, NOW, now=NOW)
    pomodoro.log_manual_pomodoro(cfg, USER, d.id, 15, NOW, now=NOW)
    tasks.update_task(cfg, USER, d.id, title="Read more")

    assert tasks.recalculate_task_progress(cfg, USER, d.id) == (40, 2)
    t = tasks.get_task(cfg, USER, d.id)
    assert (t.completed_minutes, t.completed_pomodoros) == (40, 2)


def test_save_relationships_is_all_or_nothing(cfg):
    o = make_onetime(cfg)
    other_onetime = make_onetime(cfg, "Other")
    d1, d2 = make_daily(cfg, "D1"), make_daily(cfg, "D2")
    tasks.link_tasks(cfg, USER, o.id, d1.id)

    with pytest.raises(ValidationError):
        tasks.save_relationships(cfg, USER, o.id, [d2.id, other_onetime.id])
    assert [t.id for t in tasks.linked_tasks(cfg, USER, o.id)] == [d1.id]
