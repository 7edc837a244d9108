# parking_core/schemas/page.py
"""Paged listings: one page of items plus {current, pages, total}."""

import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from parking_core.config import settings

T = TypeVar("T")


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class Page(BaseModel, Generic[T]):
    items: list[T]
    pagination: Pagination


def page_window(page: Optional[int], limit: Optional[int]) -> tuple:
    """Clamp caller paging to (page >= 1, 1 <= limit <= MAX_PAGE_SIZE); returns (page, limit, offset)."""
    limit = max(1, min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))
    page = max(page or 1, 1)
    return page, limit, (page - 1) * limit


def make_page(items: list, total: int, page: int, limit: int) -> Page:
    return Page(
        items=items,
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )
