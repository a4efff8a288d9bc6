"""
Rebuilds the invoice-ready view of an order from independent records.

Stages, in order:

1. filter    order items of one order
2. lookup    food of each item            (left outer join)
3. lookup    order of each item           (left outer join)
4. lookup    table of the *joined order*  (left outer join)
5. project   amount/price = food.price, names, table and order ids, quantity
6. group     by (order_id, table_id, table_number): sum(amount), count, rows
7. project   payment_due, total_count, table_number, order_items

Stages 1-5 are one SQL statement; grouping keeps every row of a group,
which SQL aggregates cannot, so 6-7 run over the fetched rows.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from database import store_errors
from errors import NotFound
from models import Food, Order, OrderItem, Table
from redis_client import RedisClient
from schemas import ItemView, OrderView

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

GroupKey = Tuple[Optional[str], Optional[str], Optional[int]]


def joined_items_query(order_id: str):
    return (
        select(
            Food.price.label("amount"),
            Food.name.label("food_name"),
            Food.food_image.label("food_image"),
            Table.table_number.label("table_number"),
            Table.table_id.label("table_id"),
            Order.order_id.label("order_id"),
            Food.price.label("price"),
            OrderItem.quantity.label("quantity"),
        )
        .select_from(OrderItem)
        .outerjoin(Food, Food.food_id == OrderItem.food_id)
        .outerjoin(Order, Order.order_id == OrderItem.order_id)
        # table is reached through the order, never from the item
        .outerjoin(Table, Table.table_id == Order.table_id)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    )


def group_rows(rows: List[ItemView]) -> List[OrderView]:
    groups: Dict[GroupKey, dict] = {}
    for row in rows:
        key = (row.order_id, row.table_id, row.table_number)
        group = groups.setdefault(key, {"payment_due": ZERO, "total_count": 0, "order_items": []})
        # a missing food has no amount and adds nothing to the sum
        if row.amount is not None:
            group["payment_due"] += row.amount
        group["total_count"] += 1
        group["order_items"].append(row)

    return [
        OrderView(
            payment_due=group["payment_due"],
            total_count=group["total_count"],
            table_number=key[2],
            order_items=group["order_items"],
        )
        for key, group in groups.items()
    ]


class OrderViewPipeline:
    def __init__(self, db: Session, cache: Optional[RedisClient] = None):
        self.db = db
        self.cache = cache

    def run(self, order_id: str) -> List[OrderView]:
        """All groups for the order; empty when it has no items."""
        with store_errors(f"order view {order_id}"):
            result = self.db.execute(joined_items_query(order_id)).mappings().all()
        rows = [ItemView(**row) for row in result]
        return group_rows(rows)

    def reconstruct_order_view(self, order_id: str) -> OrderView:
        if self.cache is not None:
            cached = self.cache.get_cached_order_view(order_id)
            if cached is not None:
                return OrderView(**cached)

        groups = self.run(order_id)
        if groups:
            if len(groups) > 1:
                logger.warning("Order %s produced %d groups, using the first", order_id, len(groups))
            view = groups[0]
        else:
            view = self._empty_view(order_id)

        if self.cache is not None:
            self.cache.cache_order_view(order_id, view.model_dump(mode="json"))
        return view

    def _empty_view(self, order_id: str) -> OrderView:
        with store_errors(f"order lookup {order_id}"):
            order = self.db.query(Order).filter(Order.order_id == order_id).first()
            if order is None:
                raise NotFound("Order was not found", order_id=order_id)
            table = None
            if order.table_id is not None:
                table = self.db.query(Table).filter(Table.table_id == order.table_id).first()

        return OrderView(
            payment_due=ZERO,
            total_count=0,
            table_number=table.table_number if table is not None else None,
            order_items=[],
            is_empty=True,
        )
