"""
Shared fixtures.

Every test gets its own SQLite database file under tmp_path and a profile
pinned to UTC with a midnight day cut, so dates in assertions are plain
calendar dates. NOW is a Monday.
"""
from datetime import datetime, timezone

import pytest

from levelup import profiles
from levelup.db import DbConfig, init_db

USER = "me"
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def cfg(tmp_path):
    c = DbConfig(database_url=f"sqlite:///{tmp_path / 'levelup_test.db'}")
    init_db(c)
    return c


@pytest.fixture
def profile(cfg):
    return profiles.get_profile(cfg, USER, now=NOW, default_timezone="UTC")
