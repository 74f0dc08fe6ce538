import math
from typing import Any, List, Tuple

from fastapi import Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from schemas import Pagination


class PageParams:
    """``page``/``limit`` query parameters shared by every list endpoint."""

    def __init__(self, page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100)):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        totalPages=total_pages,
        hasNext=page < total_pages,
        hasPrev=page > 1,
    )


def paginate(db: Session, stmt: Select, params: PageParams, scalars: bool = False) -> Tuple[List[Any], Pagination]:
    """Run ``stmt`` for one page and count the rows of the unpaged statement.

    ``stmt`` must carry a deterministic ORDER BY so pages never overlap.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = db.execute(count_stmt).scalar_one()
    paged = stmt.limit(params.limit).offset(params.offset)
    result = db.execute(paged)
    rows = list(result.scalars()) if scalars else list(result)
    return rows, build_pagination(params.page, params.limit, total)
