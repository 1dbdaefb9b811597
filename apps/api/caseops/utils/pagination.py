"""Pagination utilities for list endpoints."""

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from fastapi import Query

from caseops.core.config import settings


T = TypeVar("T")

# Pagination limits
DEFAULT_PAGE = 1
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int
    per_page: int


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(settings.PAGE_SIZE, ge=1, le=MAX_PER_PAGE, description=f"Items per page (max {MAX_PER_PAGE})"),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        async def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, per_page=per_page)


def total_pages(total: int, per_page: int) -> int:
    """ceil(total / per_page); 0 for an empty set."""
    return (total + per_page - 1) // per_page if per_page > 0 else 0


def clamp_page(page: int, total: int, per_page: int) -> int:
    """Clamp a requested page into [1, total_pages] (1 when empty)."""
    return min(max(page, 1), max(total_pages(total, per_page), 1))


def paginate(items: Sequence[T], page: int, per_page: int = 10) -> list[T]:
    """
    Slice one 1-indexed page.

    Does not clamp: a page past the end is empty, not an error.
    """
    start = (page - 1) * per_page
    if start < 0:
        return []
    return list(items[start:start + per_page])


@dataclass
class Page(Generic[T]):
    """Standard paginated response structure."""
    items: list[T]
    total: int
    page: int
    per_page: int
    pages: int

    @classmethod
    def create(cls, items: Sequence[T], pagination: PaginationParams) -> "Page[T]":
        """Page of an already filtered list; the requested page is clamped first."""
        total = len(items)
        page = clamp_page(pagination.page, total, pagination.per_page)
        return cls(
            items=paginate(items, page, pagination.per_page),
            total=total,
            page=page,
            per_page=pagination.per_page,
            pages=total_pages(total, pagination.per_page),
        )
