"""
Existence checks that stand in for the foreign keys the store does not have.

Every dependent write (Food -> Menu, Order -> Table, Invoice -> Order,
OrderItem -> Food) calls ``require`` before persisting. The check and the
write are separate statements, so a referenced record removed in between
would go unnoticed; nothing in this service deletes records.
"""
import logging

from sqlalchemy.orm import Session

from database import store_errors
from errors import DependencyNotFound, StoreFailure, ValidationFailed

logger = logging.getLogger(__name__)


class ReferenceValidator:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, model, key: str, value) -> bool:
        """Point lookup of ``model`` by the business key column ``key``."""
        if key == "id":
            raise ValueError("references must use a business key, not the storage key")
        column = getattr(model, key)
        try:
            with store_errors(f"lookup {model.__tablename__}.{key}"):
                found = self.db.query(model.id).filter(column == value).first()
        except StoreFailure as e:
            raise ValidationFailed(
                f"could not verify {model.__tablename__}.{key}={value}",
                key=key,
                value=value,
            ) from e
        return found is not None

    def require(self, model, key: str, value, label: str):
        if not self.exists(model, key, value):
            logger.info("Missing %s %s=%s", label, key, value)
            raise DependencyNotFound(f"{label} was not found", key=key, value=value)
