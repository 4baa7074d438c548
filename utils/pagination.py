import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Query
from pymongo import ASCENDING, DESCENDING

from config import settings

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class Pagination:
    page: int
    limit: int
    sort_field: str
    direction: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def sort(self):
        return [(self.sort_field, self.direction)]

    def envelope(self, items, total: int) -> dict:
        return {"items": items, "total": total, "page": self.page, "page_size": self.limit}


def parse_pagination(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
) -> Pagination:
    page = max(1, page if page is not None else 1)
    limit = min(settings.max_page_size, max(1, limit if limit is not None else settings.default_page_size))
    field = _CAMEL.sub("_", sort or "createdAt").lower()
    direction = ASCENDING if (order or "desc").lower() == "asc" else DESCENDING
    return Pagination(page=page, limit=limit, sort_field=field, direction=direction)


def pagination_params(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
) -> Pagination:
    return parse_pagination(page, limit, sort, order)
