from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from errors import NotFound
from models import Food
from pipeline import OrderViewPipeline, group_rows
from schemas import ItemView


@pytest.fixture
def three_item_order(seed):
    table = seed.table(number=5)
    soup = seed.food(name="Soup", price="5.00")
    tea = seed.food(name="Tea", price="3.50")
    order = seed.order(table_id=table.table_id)
    seed.item(order.order_id, soup.food_id, quantity=1)
    seed.item(order.order_id, tea.food_id, quantity=2)
    seed.item(order.order_id, tea.food_id, quantity=1)
    return order


def test_view_sums_food_prices_per_row(db, three_item_order):
    view = OrderViewPipeline(db).reconstruct_order_view(three_item_order.order_id)

    # the due amount is the sum of current food prices, one per row
    assert view.payment_due == Decimal("12.00")
    assert view.total_count == 3
    assert view.table_number == 5
    assert [item.food_name for item in view.order_items] == ["Soup", "Tea", "Tea"]
    assert [item.quantity for item in view.order_items] == [1, 2, 1]
    assert all(item.order_id == three_item_order.order_id for item in view.order_items)


def test_view_is_stable_across_calls(db, three_item_order):
    pipeline = OrderViewPipeline(db)
    first = pipeline.reconstruct_order_view(three_item_order.order_id)
    second = pipeline.reconstruct_order_view(three_item_order.order_id)

    assert first == second


def test_view_follows_live_food_price(db, seed, three_item_order):
    tea = db.query(Food).filter(Food.name == "Tea").one()
    tea.price = Decimal("4.00")
    db.commit()

    view = OrderViewPipeline(db).reconstruct_order_view(three_item_order.order_id)
    assert view.payment_due == Decimal("13.00")


def test_run_returns_no_groups_for_empty_order(db, seed):
    order = seed.order()
    assert OrderViewPipeline(db).run(order.order_id) == []


def test_empty_order_has_zero_view(db, seed):
    table = seed.table(number=9)
    order = seed.order(table_id=table.table_id)

    view = OrderViewPipeline(db).reconstruct_order_view(order.order_id)

    assert view.is_empty
    assert view.payment_due == Decimal("0.00")
    assert view.table_number == 9
    assert view.order_items == []


def test_unknown_order_is_not_found(db):
    with pytest.raises(NotFound):
        OrderViewPipeline(db).reconstruct_order_view("missing")


def test_missing_food_still_yields_a_row(db, seed):
    soup = seed.food(price="5.00")
    order = seed.order()
    seed.item(order.order_id, soup.food_id)
    seed.item(order.order_id, "deleted-food")

    view = OrderViewPipeline(db).reconstruct_order_view(order.order_id)

    assert view.total_count == 2
    assert view.payment_due == Decimal("5.00")
    ghost = view.order_items[1]
    assert ghost.food_name is None
    assert ghost.amount is None
    assert ghost.quantity == 1


def test_table_is_resolved_through_the_order(db, seed):
    table = seed.table(number=12)
    soup = seed.food()
    order = seed.order(table_id=table.table_id)
    seed.item(order.order_id, soup.food_id)

    view = OrderViewPipeline(db).reconstruct_order_view(order.order_id)

    assert view.table_number == 12
    assert view.order_items[0].table_id == table.table_id


def test_order_without_table(db, seed):
    soup = seed.food()
    order = seed.order()
    seed.item(order.order_id, soup.food_id)

    view = OrderViewPipeline(db).reconstruct_order_view(order.order_id)

    assert view.table_number is None
    assert view.total_count == 1


def test_items_of_other_orders_are_ignored(db, seed, three_item_order):
    soup = seed.food(price="100.00")
    other = seed.order()
    seed.item(other.order_id, soup.food_id)

    view = OrderViewPipeline(db).reconstruct_order_view(three_item_order.order_id)
    assert view.total_count == 3


def test_group_rows_splits_on_table():
    rows = [
        ItemView(order_id="o", table_id="t1", table_number=1, amount=Decimal("1.00")),
        ItemView(order_id="o", table_id="t2", table_number=2, amount=Decimal("2.00")),
        ItemView(order_id="o", table_id="t1", table_number=1, amount=Decimal("3.00")),
    ]

    groups = group_rows(rows)

    assert [(g.table_number, g.total_count, g.payment_due) for g in groups] == [
        (1, 2, Decimal("4.00")),
        (2, 1, Decimal("2.00")),
    ]


def test_cached_view_skips_the_store(db):
    cache = MagicMock()
    cache.get_cached_order_view.return_value = {
        "payment_due": "7.50",
        "total_count": 1,
        "table_number": 4,
        "order_items": [],
    }

    view = OrderViewPipeline(db, cache).reconstruct_order_view("cached-order")

    assert view.payment_due == Decimal("7.50")
    cache.cache_order_view.assert_not_called()


def test_fresh_view_is_written_to_cache(db, three_item_order):
    cache = MagicMock()
    cache.get_cached_order_view.return_value = None

    OrderViewPipeline(db, cache).reconstruct_order_view(three_item_order.order_id)

    order_id, payload = cache.cache_order_view.call_args[0]
    assert order_id == three_item_order.order_id
    assert payload["total_count"] == 3
    assert payload["payment_due"] == "12.00"
