import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from database import store_errors
from errors import NotFound, ValidationFailed
from models import Menu
from normalize import build_patch, new_id, utcnow
from schemas import MenuCreate, MenuUpdate

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # naive timestamps from clients are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_time_span(start_date: Optional[datetime], end_date: Optional[datetime]):
    """A menu window, when both ends are given, must start in the future and end after it starts."""
    if start_date is None or end_date is None:
        return
    start, end = _as_utc(start_date), _as_utc(end_date)
    if not (start > utcnow() and end > start):
        raise ValidationFailed("Kindly retype the time", start_date=start_date, end_date=end_date)


class MenuService:
    def __init__(self, db: Session):
        self.db = db

    def create_menu(self, menu: MenuCreate) -> Menu:
        check_time_span(menu.start_date, menu.end_date)

        now = utcnow()
        db_menu = Menu(
            menu_id=new_id(),
            name=menu.name,
            category=menu.category,
            start_date=menu.start_date,
            end_date=menu.end_date,
            created_at=now,
            updated_at=now,
        )
        self._save(db_menu, "create menu")
        logger.info("Created menu %s", db_menu.menu_id)
        return db_menu

    def get_menu(self, menu_id: str) -> Menu:
        with store_errors(f"menu lookup {menu_id}"):
            menu = self.db.query(Menu).filter(Menu.menu_id == menu_id).first()
        if menu is None:
            raise NotFound("Menu was not found", menu_id=menu_id)
        return menu

    def update_menu(self, menu_id: str, update: MenuUpdate) -> Menu:
        menu = self.get_menu(menu_id)
        check_time_span(update.start_date, update.end_date)

        for key, value in build_patch(update).items():
            setattr(menu, key, value)
        self._save(menu, f"update menu {menu_id}")
        return menu

    def _save(self, menu: Menu, operation: str):
        try:
            with store_errors(operation):
                self.db.add(menu)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
