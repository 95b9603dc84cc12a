"""Page envelope shared by every list endpoint."""

from math import ceil
from typing import Generic, List, Tuple, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query

ItemT = TypeVar("ItemT")


def fetch_page(query: Query, page: int, page_size: int) -> Tuple[list, int]:
    """Rows for a 1-based page of an ordered query, plus the unpaged count."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return rows, total


class PaginatedResponse(BaseModel, Generic[ItemT]):
    items: List[ItemT]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def create(cls, items: List[ItemT], total: int, page: int, page_size: int):
        """Build the envelope; ``pages`` is 0 for an empty result."""
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            pages=ceil(total / page_size) if page_size else 0,
        )
