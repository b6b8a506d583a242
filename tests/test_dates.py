from datetime import date, datetime, timezone

import pytest

from levelup import dates
from levelup.errors import ValidationError


def test_local_day_respects_day_cut():
    # 01:30 in Shanghai is before a 04:00 cut, so it still counts as the previous day
    now = datetime(2026, 10, 19, 17, 30, tzinfo=timezone.utc)  # 01:30 on Oct 20 in UTC+8
    assert dates.local_day(now, "Asia/Shanghai", "04:00:00") == date(2026, 10, 19)
    assert dates.local_day(now, "Asia/Shanghai", "00:00") == date(2026, 10, 20)


def test_day_bounds_utc():
    start, end = dates.day_bounds_utc(date(2026, 10, 19), "Asia/Shanghai", "04:00")
    assert start == datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)


def test_parse_day_cut_rejects_garbage():
    assert dates.parse_day_cut("7:05").hour == 7
    assert dates.parse_day_cut(None).hour == 0
    with pytest.raises(ValidationError):
        dates.parse_day_cut("25:00")
    with pytest.raises(ValidationError):
        dates.parse_day_cut("noon")


def test_unknown_timezone():
    with pytest.raises(ValidationError):
        dates.get_zone("Mars/Olympus_Mons")


@pytest.mark.parametrize(
    "minutes,expected",
    [(0, "0"), (-3, "0"), (5, "5m"), (120, "2h"), (125, "2h 5m")],
)
def test_format_minutes(minutes, expected):
    assert dates.format_minutes(minutes) == expected


@pytest.mark.parametrize(
    "hour,expected",
    [(4, "night"), (5, "morning"), (11, "morning"), (12, "afternoon"), (17, "evening"), (21, "night")],
)
def test_time_of_day(hour, expected):
    assert dates.time_of_day(hour) == expected


def test_add_months_clamps_day():
    assert dates.add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert dates.add_months(date(2026, 12, 15), 1) == date(2027, 1, 15)
    assert dates.add_years(date(2028, 2, 29), 1) == date(2029, 2, 28)


def test_week_helpers():
    monday = dates.monday_of_week(date(2026, 10, 22))
    assert monday == date(2026, 10, 19)
    assert dates.week_days(monday)[-1] == date(2026, 10, 25)


def test_duration_and_offset_labels():
    assert dates.format_duration_until(3 * 3600 + 25 * 60 + 10) == "3 hours 25 min"
    local = dates.local_now(datetime(2026, 10, 19, tzinfo=timezone.utc), "Asia/Shanghai")
    assert dates.utc_offset_label(local) == "UTC+08:00"


def test_iso_roundtrip_is_utc():
    dt = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)
    assert dates.to_iso(dt) == "2026-10-19T18:00:00+00:00"
    assert dates.parse_iso("2026-10-19T18:00:00+00:00") == dt
    assert dates.parse_iso(None) is None
