import pytest

from conftest import NOW, USER
from levelup import profiles, shop
from levelup.errors import InsufficientGoldError, ValidationError


def test_add_item_validates(cfg):
    with pytest.raises(ValidationError):
        shop.add_item(cfg, USER, "  ")
    with pytest.raises(ValidationError):
        shop.add_item(cfg, USER, "Movie", gold_cost=-1)
    assert shop.add_item(cfg, USER, "Walk", now=NOW).gold_cost == 0


def test_purchase_spends_gold(cfg, profile):
    profiles.add_rewards(cfg, USER, 120, 0)
    item = shop.add_item(cfg, USER, "Movie night", "popcorn", gold_cost=100, now=NOW)

    assert shop.purchase_item(cfg, USER, item.id, now=NOW) == 20
    assert profiles.get_profile(cfg, USER, now=NOW).gold == 20
    (bought,) = shop.list_items(cfg, USER, purchased=True)
    assert bought.id == item.id
    assert bought.purchased_at == NOW.isoformat()
    assert shop.list_items(cfg, USER, purchased=False) == []

    with pytest.raises(ValidationError):
        shop.purchase_item(cfg, USER, item.id, now=NOW)


def test_purchase_needs_enough_gold(cfg, profile):
    item = shop.add_item(cfg, USER, "Concert", gold_cost=500, now=NOW)
    with pytest.raises(InsufficientGoldError, match="Not enough gold"):
        shop.purchase_item(cfg, USER, item.id, now=NOW)
    assert shop.list_items(cfg, USER, purchased=False)[0].id == item.id


def test_delete_item(cfg):
    item = shop.add_item(cfg, USER, "Coffee", gold_cost=5, now=NOW)
    shop.delete_item(cfg, USER, item.id)
    assert shop.list_items(cfg, USER) == []
