"""
Creates an order together with its batch of line items, and the partial
updates of orders and order items.

A batch is all-or-nothing: every item is validated before anything is
written, then the order and all of its items are committed in a single
transaction. A failed item therefore leaves neither an order nor a
partial batch behind.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from database import store_errors
from errors import DependencyNotFound, NotFound, ValidationFailed
from models import Food, Order, OrderItem, Table
from normalize import build_patch, new_id, round2, utcnow
from redis_client import RedisClient
from references import ReferenceValidator
from schemas import OrderItemCreate, OrderItemUpdate, OrderUpdate

logger = logging.getLogger(__name__)


class OrderComposer:
    def __init__(self, db: Session, cache: Optional[RedisClient] = None):
        self.db = db
        self.cache = cache
        self.references = ReferenceValidator(db)

    def compose_order(self, table_id: Optional[str], items: Sequence[OrderItemCreate]) -> str:
        order_id, _ = self.compose_order_with_items(table_id, items)
        return order_id

    def compose_order_with_items(self, table_id: Optional[str], items: Sequence[OrderItemCreate]):
        """Returns (order_id, [order_item_id, ...])"""
        if table_id is not None:
            self.references.require(Table, "table_id", table_id, "Table")

        now = utcnow()
        order = Order(
            order_id=new_id(),
            order_date=now,
            table_id=table_id,
            created_at=now,
            updated_at=now,
        )

        order_id = order.order_id
        order_items = [self._build_item(order_id, item, position, now)
                       for position, item in enumerate(items)]
        item_ids = [item.order_item_id for item in order_items]

        self._persist([order] + order_items, f"order batch {order_id}")
        logger.info("Created order %s with %d items", order_id, len(item_ids))

        if self.cache is not None:
            self.cache.invalidate_order_view(order_id)
        return order_id, item_ids

    def _build_item(self, order_id: str, item: OrderItemCreate, position: int, now: datetime) -> OrderItem:
        if item.quantity is None or item.quantity < 1:
            raise ValidationFailed(f"order item {position}: quantity must be at least 1", position=position)

        unit_price = item.unit_price
        if unit_price is None:
            food = self._get_food(item.food_id)
            unit_price = food.price
        else:
            self.references.require(Food, "food_id", item.food_id, "Food")

        return OrderItem(
            order_item_id=new_id(),
            order_id=order_id,
            food_id=item.food_id,
            quantity=item.quantity,
            unit_price=round2(unit_price),
            created_at=now,
            updated_at=now,
        )

    def _get_food(self, food_id: str) -> Food:
        with store_errors(f"food lookup {food_id}"):
            food = self.db.query(Food).filter(Food.food_id == food_id).first()
        if food is None:
            raise DependencyNotFound("Food was not found", key="food_id", value=food_id)
        return food

    def _persist(self, records: List, operation: str):
        try:
            with store_errors(operation):
                self.db.add_all(records)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def create_order(self, table_id: Optional[str] = None, order_date: Optional[datetime] = None) -> Order:
        if table_id is not None:
            self.references.require(Table, "table_id", table_id, "Table")

        now = utcnow()
        order = Order(
            order_id=new_id(),
            order_date=order_date or now,
            table_id=table_id,
            created_at=now,
            updated_at=now,
        )
        self._persist([order], f"create order {order.order_id}")
        return order

    def get_order(self, order_id: str) -> Order:
        with store_errors(f"order lookup {order_id}"):
            order = self.db.query(Order).filter(Order.order_id == order_id).first()
        if order is None:
            raise NotFound("Order was not found", order_id=order_id)
        return order

    def update_order(self, order_id: str, update: OrderUpdate) -> Order:
        order = self.get_order(order_id)
        patch = build_patch(update)
        if "table_id" in patch:
            self.references.require(Table, "table_id", patch["table_id"], "Table")

        self._apply(order, patch, f"update order {order_id}")
        if self.cache is not None:
            self.cache.invalidate_order_view(order_id)
        return order

    def get_order_item(self, order_item_id: str) -> OrderItem:
        with store_errors(f"order item lookup {order_item_id}"):
            item = self.db.query(OrderItem).filter(OrderItem.order_item_id == order_item_id).first()
        if item is None:
            raise NotFound("Order item was not found", order_item_id=order_item_id)
        return item

    def update_order_item(self, order_item_id: str, update: OrderItemUpdate) -> OrderItem:
        item = self.get_order_item(order_item_id)
        patch = build_patch(update)
        if "quantity" in patch and patch["quantity"] < 1:
            raise ValidationFailed("quantity must be at least 1")
        if "unit_price" in patch:
            patch["unit_price"] = round2(patch["unit_price"])
        if "food_id" in patch:
            self.references.require(Food, "food_id", patch["food_id"], "Food")

        self._apply(item, patch, f"update order item {order_item_id}")
        if self.cache is not None:
            self.cache.invalidate_order_view(item.order_id)
        return item

    def _apply(self, record, patch: dict, operation: str):
        for key, value in patch.items():
            setattr(record, key, value)
        self._persist([record], operation)
