"""Page/limit pagination over in-memory result lists."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from flask import current_app

from kickabout.errors import ValidationError

from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@dataclass
class Pagination:
    """A simple data class to hold pagination data."""

    items: list[Any] = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0

    @property
    def pages(self) -> int:
        """Total number of pages, at least one."""
        return max(1, math.ceil(self.total / self.limit))

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict[str, Any]:
        """Return the pagination envelope sent alongside list results."""
        return {
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.pages,
            "totalResults": self.total,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def parse_page_args(args: Any) -> tuple[int, int]:
    """Read and validate ``page`` and ``limit`` from request arguments."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", MAX_PAGE_SIZE)
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError) as e:
        raise ValidationError("page and limit must be integers.") from e
    if page < 1:
        raise ValidationError("page must be at least 1.")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}.")
    return page, limit


def paginate(items: list[Any], page: int, limit: int) -> Pagination:
    """Slice an already sorted list into one page."""
    start = (page - 1) * limit
    return Pagination(
        items=items[start : start + limit], page=page, limit=limit, total=len(items)
    )
