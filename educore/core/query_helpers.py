"""
Query helpers for paginated listings.
"""

import logging
import math
from typing import Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from educore.models.base import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def page_count(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` items."""
    return math.ceil(total / limit) if limit else 0


class QueryBuilder:
    """
    Fluent query builder with page-number pagination.

    Usage:
        tenants, total = await (
            QueryBuilder(db, Tenant)
            .filter(Tenant.status == "pending")
            .order_by(Tenant.created_at, "desc")
            .paginate(page=1, limit=10)
            .execute()
        )
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model
        self._query = select(model)
        self._page = 1
        self._limit = 10

    def filter(self, *conditions):
        """Add WHERE conditions."""
        self._query = self._query.where(*conditions)
        return self

    def order_by(self, column, direction: str = "desc"):
        """Add ORDER BY clause."""
        if direction == "desc":
            self._query = self._query.order_by(column.desc())
        else:
            self._query = self._query.order_by(column.asc())
        return self

    def paginate(self, page: int = 1, limit: int = 10):
        """Select one page; pages start at 1."""
        self._page = max(page, 1)
        self._limit = max(limit, 1)
        return self

    async def execute(self) -> tuple[list[T], int]:
        """
        Execute query and return results with total count.

        Runs two queries:
        1. Count query (for pagination metadata)
        2. Data query (with pagination applied)

        Returns:
            Tuple of (items, total_count)
        """
        count_query = select(func.count()).select_from(self._query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        data_query = self._query.offset((self._page - 1) * self._limit).limit(self._limit)
        result = await self.db.execute(data_query)
        items = list(result.scalars().all())

        logger.debug(
            f"QueryBuilder executed: {self.model.__name__} "
            f"page {self._page} ({len(items)}/{total} results)"
        )

        return items, total
