from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from levelup.dates import to_iso, utc_now
from levelup.db import DbConfig, PgConn, fetch_all, fetch_one, get_conn, new_id
from levelup.errors import InsufficientGoldError, NotFoundError, ValidationError
from levelup.log import get_logger
from levelup.models import ShopItem

log = get_logger("shop")


def _get_item(conn: PgConn, user: str, item_id: str) -> ShopItem:
    row = fetch_one(conn, "SELECT * FROM user_shop_items WHERE id=? AND user_id=?", (item_id, user))
    if row is None:
        raise NotFoundError("Shop item not found.")
    return ShopItem.from_row(row)


def add_item(
    cfg: DbConfig,
    user: str,
    name: str,
    description: str = "",
    gold_cost: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ShopItem:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Item name is required.")
    cost = int(gold_cost or 0)
    if cost < 0:
        raise ValidationError("Gold cost cannot be negative.")

    item = ShopItem(
        id=new_id(),
        user_id=user,
        name=name,
        description=(description or "").strip(),
        gold_cost=cost,
        created_at=to_iso(now or utc_now()),
    )
    with get_conn(cfg) as conn:
        conn.execute(
            """
            INSERT INTO user_shop_items (id, user_id, name, description, gold_cost, is_purchased, created_at)
            VALUES (?, ?, ?, ?, ?, 0, ?)
            """,
            (item.id, user, item.name, item.description, item.gold_cost, item.created_at),
        )
    log.info("Added shop item %r (%d gold)", item.name, item.gold_cost)
    return item


def list_items(cfg: DbConfig, user: str, purchased: Optional[bool] = None) -> List[ShopItem]:
    sql = "SELECT * FROM user_shop_items WHERE user_id=?"
    params: list = [user]
    if purchased is not None:
        sql += " AND is_purchased=?"
        params.append(int(purchased))
    sql += " ORDER BY created_at DESC"
    with get_conn(cfg) as conn:
        rows = fetch_all(conn, sql, params)
    return [ShopItem.from_row(r) for r in rows]


def delete_item(cfg: DbConfig, user: str, item_id: str) -> None:
    with get_conn(cfg) as conn:
        _get_item(conn, user, item_id)
        conn.execute("DELETE FROM user_shop_items WHERE id=? AND user_id=?", (item_id, user))
    log.info("Deleted shop item %s", item_id)


def purchase_item(cfg: DbConfig, user: str, item_id: str, now: Optional[datetime] = None) -> int:
    """Buy an item with gold. Returns the gold left."""
    with get_conn(cfg) as conn:
        item = _get_item(conn, user, item_id)
        if item.is_purchased:
            raise ValidationError(f"{item.name!r} was already purchased.")
        row = fetch_one(conn, "SELECT gold FROM user_profiles WHERE id=?", (user,))
        if row is None:
            raise NotFoundError("Profile not found.")
        gold = int(row["gold"] or 0)
        if gold < item.gold_cost:
            raise InsufficientGoldError("Not enough gold.")

        conn.execute(
            "UPDATE user_shop_items SET is_purchased=1, purchased_at=? WHERE id=? AND user_id=?",
            (to_iso(now or utc_now()), item_id, user),
        )
        conn.execute(
            "UPDATE user_profiles SET gold = gold - ? WHERE id=?",
            (item.gold_cost, user),
        )
    log.info("Purchased %r for %d gold", item.name, item.gold_cost)
    return gold - item.gold_cost
