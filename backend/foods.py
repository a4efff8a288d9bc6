import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import store_errors
from errors import NotFound
from models import Food, Menu
from normalize import build_patch, new_id, round2, utcnow
from redis_client import RedisClient
from references import ReferenceValidator
from schemas import FoodCreate, FoodUpdate

logger = logging.getLogger(__name__)


class FoodService:
    """Food writes; each one checks the owning menu first."""

    def __init__(self, db: Session, cache: Optional[RedisClient] = None):
        self.db = db
        self.cache = cache
        self.references = ReferenceValidator(db)

    def create_food(self, food: FoodCreate) -> Food:
        self.references.require(Menu, "menu_id", food.menu_id, "Menu")

        now = utcnow()
        db_food = Food(
            food_id=new_id(),
            name=food.name,
            price=round2(food.price),
            food_image=food.food_image,
            menu_id=food.menu_id,
            created_at=now,
            updated_at=now,
        )
        self._save(db_food, "create food")
        logger.info("Created food %s in menu %s", db_food.food_id, db_food.menu_id)
        return db_food

    def get_food(self, food_id: str) -> Food:
        with store_errors(f"food lookup {food_id}"):
            food = self.db.query(Food).filter(Food.food_id == food_id).first()
        if food is None:
            raise NotFound("Food was not found", food_id=food_id)
        return food

    def update_food(self, food_id: str, update: FoodUpdate) -> Food:
        food = self.get_food(food_id)
        patch = build_patch(update)
        if "menu_id" in patch:
            self.references.require(Menu, "menu_id", patch["menu_id"], "Menu")
        if "price" in patch:
            patch["price"] = round2(patch["price"])

        for key, value in patch.items():
            setattr(food, key, value)
        self._save(food, f"update food {food_id}")

        # views join the live food record, any of them may be stale now
        if self.cache is not None:
            self.cache.invalidate_all_order_views()
        return food

    def _save(self, food: Food, operation: str):
        try:
            with store_errors(operation):
                self.db.add(food)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
