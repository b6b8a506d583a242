from datetime import date

import pytest

from conftest import NOW, USER
from levelup import goals
from levelup.errors import NotFoundError, ValidationError


def test_target_dates():
    start = date(2026, 1, 31)
    assert goals.target_date_for("3year", start) == date(2029, 1, 31)
    assert goals.target_date_for("1year", start) == date(2027, 1, 31)
    assert goals.target_date_for("1month", start) == date(2026, 2, 28)
    with pytest.raises(ValidationError):
        goals.target_date_for("decade", start)


def test_create_and_missing_types(cfg):
    assert goals.missing_goal_types(goals.get_active_goals(cfg, USER)) == ["3year", "1year", "1month"]
    g = goals.create_goal(cfg, USER, "1year", "  Ship the app  ", now=NOW)
    assert g.description == "Ship the app"
    assert g.target_date == "2027-10-19"
    active = goals.get_active_goals(cfg, USER)
    assert goals.missing_goal_types(active) == ["3year", "1month"]


def test_new_goal_replaces_active_one(cfg):
    old = goals.create_goal(cfg, USER, "1month", "Run 50 km", now=NOW)
    new = goals.create_goal(cfg, USER, "1month", "Run 80 km", now=NOW)
    assert goals.get_active_goals(cfg, USER)["1month"].id == new.id
    assert [g.id for g in goals.goal_history(cfg, USER)] == [old.id]


def test_update_description_rejects_empty(cfg):
    g = goals.create_goal(cfg, USER, "3year", "Write a book", now=NOW)
    with pytest.raises(ValidationError):
        goals.update_goal_description(cfg, USER, g.id, "   ")
    assert goals.update_goal_description(cfg, USER, g.id, "Write two books").description == "Write two books"
    with pytest.raises(NotFoundError):
        goals.update_goal_description(cfg, USER, "missing", "x")


def test_evaluate_goal(cfg):
    g = goals.create_goal(cfg, USER, "1month", "Daily journaling", now=NOW)
    done = goals.evaluate_goal(cfg, USER, g.id, "Missed 2 days, good enough", True, now=NOW)
    assert done.is_completed is True
    assert done.evaluation_note == "Missed 2 days, good enough"
    assert done.evaluated_at == "2026-10-19T10:00:00+00:00"
