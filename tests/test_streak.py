from datetime import date, timedelta

import pytest

from conftest import NOW, USER
from levelup import profiles, streak
from levelup.errors import NoRestCreditsError, ValidationError

TODAY = NOW.date()


def days_back(*offsets):
    return [TODAY - timedelta(days=o) for o in offsets]


def test_compute_streak_counts_through_yesterday_while_today_open():
    assert streak.compute_streak(days_back(0, 1, 2), TODAY) == 3
    assert streak.compute_streak(days_back(1, 2), TODAY) == 2
    assert streak.compute_streak(days_back(2, 3), TODAY) == 0
    assert streak.compute_streak([], TODAY) == 0


def test_longest_run():
    assert streak.longest_run(days_back(0, 1, 5, 6, 7, 8)) == 4
    assert streak.longest_run([]) == 0


def test_streak_recalculated_on_profile_fetch(cfg, profile):
    for d in days_back(1, 2, 3):
        streak.record_check_in(cfg, USER, d)
    p = profiles.get_profile(cfg, USER, now=NOW)
    assert p.current_streak == 3
    assert p.longest_streak == 3
    assert p.last_streak_date == (TODAY - timedelta(days=1)).isoformat()


def test_record_check_in_is_idempotent(cfg, profile):
    assert streak.record_check_in(cfg, USER, TODAY) is True
    assert streak.record_check_in(cfg, USER, TODAY) is False
    assert streak.is_checked_in(cfg, USER, TODAY)


def test_longest_streak_never_shrinks(cfg, profile):
    for d in days_back(10, 11, 12, 13):
        streak.record_check_in(cfg, USER, d, today=TODAY)
    current, longest = streak.recalculate_streak(cfg, USER, TODAY)
    assert current == 0
    assert longest == 4


def test_month_calendar_statuses(cfg, profile):
    streak.record_check_in(cfg, USER, date(2026, 10, 1))
    cal = dict(streak.month_calendar(cfg, USER, 2026, 10, TODAY))
    assert len(cal) == 31
    assert cal[date(2026, 10, 1)] == streak.COMPLETED
    assert cal[date(2026, 10, 2)] == streak.MISSED
    assert cal[TODAY] == streak.MISSED
    assert cal[date(2026, 10, 20)] == streak.FUTURE


def test_make_up_day_requires_credit(cfg, profile):
    with pytest.raises(NoRestCreditsError):
        streak.make_up_day(cfg, USER, TODAY - timedelta(days=1), TODAY)


def test_make_up_day_spends_credit_and_restores_streak(cfg, profile):
    streak.record_check_in(cfg, USER, TODAY - timedelta(days=1))
    streak.record_check_in(cfg, USER, TODAY - timedelta(days=3))
    profiles.grant_rest_credits(cfg, USER, 1)

    left = streak.make_up_day(cfg, USER, TODAY - timedelta(days=2), TODAY)
    assert left == 0
    p = profiles.get_profile(cfg, USER, now=NOW)
    assert p.rest_credits == 0
    assert p.current_streak == 3


def test_make_up_day_rejects_future_and_duplicates(cfg, profile):
    profiles.grant_rest_credits(cfg, USER, 2)
    with pytest.raises(ValidationError):
        streak.make_up_day(cfg, USER, TODAY + timedelta(days=1), TODAY)
    streak.record_check_in(cfg, USER, TODAY - timedelta(days=1))
    with pytest.raises(ValidationError):
        streak.make_up_day(cfg, USER, TODAY - timedelta(days=1), TODAY)
    assert profiles.get_profile(cfg, USER, now=NOW).rest_credits == 2
