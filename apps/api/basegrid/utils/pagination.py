"""Page/per_page query parameters shared by the list endpoints."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

MAX_PER_PAGE = 100


@dataclass(frozen=True)
class PaginationParams:
    page: int = 1
    per_page: int = 30

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def pages(self, total: int) -> int:
        """Number of pages needed for ``total`` rows (0 when there are none)."""
        if total <= 0:
            return 0
        return -(-total // self.per_page)

    def apply(self, query: SQLAlchemyQuery) -> tuple[list, int]:
        """Run ``query`` for this page; returns (rows, total rows)."""
        total = query.count()
        rows = query.offset(self.offset).limit(self.per_page).all()
        return rows, total


def get_pagination(
    page: int = Query(1, ge=1),
    per_page: int = Query(30, ge=1, le=MAX_PER_PAGE),
) -> PaginationParams:
    return PaginationParams(page=page, per_page=per_page)
