"""
Count + window listing used by the food and user list endpoints.

The visible contract is that of "collect everything, count it, slice
[start, start + size)", with start = (page - 1) * size. The slice is
pushed down to the store as OFFSET/LIMIT over insertion order.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from database import store_errors
from errors import ValidationFailed

DEFAULT_PAGE_SIZE = 10


@dataclass
class Page:
    total_count: int
    items: List
    page: int
    page_size: int

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.page_size


def normalize_window(page: Optional[int], page_size: Optional[int]):
    if page_size is None or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    if page is None:
        page = 1
    if page < 1:
        raise ValidationFailed("page must be at least 1", page=page)
    return page, page_size


def list_page(db: Session, model, page: Optional[int] = None, page_size: Optional[int] = None) -> Page:
    page, page_size = normalize_window(page, page_size)
    start_index = (page - 1) * page_size

    with store_errors(f"list {model.__tablename__}"):
        total_count = db.execute(select(func.count()).select_from(model)).scalar_one()
        items = (
            db.query(model)
            .order_by(model.id)
            .offset(start_index)
            .limit(page_size)
            .all()
        )

    return Page(total_count=total_count, items=items, page=page, page_size=page_size)
