import logging
from datetime import date

from conftest import NOW, USER
from levelup import goals, shop, tasks
from levelup.log import LOGGER_NAME, configure_logging, get_logger


def test_get_logger_is_a_package_child():
    assert get_logger("tasks").name == "levelup.tasks"


def test_configure_logging_installs_one_handler():
    configure_logging("DEBUG")
    configure_logging("INFO")
    root = logging.getLogger(LOGGER_NAME)
    assert sum(1 for h in root.handlers if getattr(h, "_levelup_handler", False)) == 1
    assert root.level == logging.INFO


def test_state_changes_are_logged(cfg, caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    t = tasks.create_task(
        cfg, USER, title="Ship", task_type="onetime", deadline=date(2026, 10, 25), now=NOW
    )
    tasks.archive_task(cfg, USER, t.id, now=NOW)
    tasks.unarchive_task(cfg, USER, t.id)
    item = shop.add_item(cfg, USER, "Coffee", gold_cost=5, now=NOW)
    shop.delete_item(cfg, USER, item.id)
    g = goals.create_goal(cfg, USER, "1month", "Run 5k", now=NOW)
    goals.update_goal_description(cfg, USER, g.id, "Run 10k")

    messages = [r.getMessage() for r in caplog.records]
    assert f"Unarchived task {t.id}" in messages
    assert f"Deleted shop item {item.id}" in messages
    assert f"Updated goal {g.id} description" in messages
