import pytest

from conftest import NOW, USER
from levelup import profiles
from levelup.errors import ValidationError


def test_apply_xp_carries_over_levels():
    assert profiles.apply_xp(1, 90, 30) == (2, 20)
    assert profiles.apply_xp(1, 0, 500) == (3, 200)
    assert profiles.apply_xp(4, 10, 5) == (4, 15)


def test_get_profile_creates_defaults(profile):
    assert profile.id == USER
    assert profile.level == 1
    assert profile.gold == 0
    assert profile.timezone_name == "UTC"
    assert profile.daily_reset_time == "00:00:00"


def test_add_rewards_levels_up(cfg, profile):
    result = profiles.add_rewards(cfg, USER, 30, 120)
    assert result.leveled_up is True
    assert result.new_level == 2
    p = profiles.get_profile(cfg, USER, now=NOW)
    assert (p.gold, p.xp, p.level) == (30, 20, 2)

    again = profiles.add_rewards(cfg, USER, 5, 10)
    assert again.leveled_up is False


def test_update_settings(cfg, profile):
    p = profiles.update_settings(cfg, USER, daily_reset_time="4:30", timezone_name="Europe/Berlin")
    assert p.daily_reset_time == "04:30:00"
    assert p.timezone_name == "Europe/Berlin"
    with pytest.raises(ValidationError):
        profiles.update_settings(cfg, USER, daily_reset_time="04:00", timezone_name="Nowhere/City")


def test_grant_rest_credits(cfg, profile):
    assert profiles.grant_rest_credits(cfg, USER, 2) == 2
    with pytest.raises(ValidationError):
        profiles.grant_rest_credits(cfg, USER, 0)
