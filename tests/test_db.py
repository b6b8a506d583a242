from levelup.db import fetch_all, fetch_one, get_conn, init_db


def test_init_db_is_idempotent(cfg):
    init_db(cfg)
    with get_conn(cfg) as conn:
        names = {r["name"] for r in fetch_all(conn, "SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"user_profiles", "tasks", "pomodoros", "active_pomodoros", "revelations"} <= names


def test_rollback_on_error(cfg):
    try:
        with get_conn(cfg) as conn:
            conn.execute("INSERT INTO daily_check_ins (user_id, day, created_at) VALUES (?, ?, ?)", ("me", "2026-10-19", "x"))
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    with get_conn(cfg) as conn:
        assert fetch_one(conn, "SELECT * FROM daily_check_ins") is None
