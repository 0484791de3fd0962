"""
Fixed-size page slicing for ordered listings.

`paginate()` never clamps: an out-of-range page is simply empty. Callers that
want "last page if too far" semantics clamp first with `clamp_page()`.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def paginate(items: Sequence[T], page: int, page_size: int) -> list[T]:
    """
    Return page `page` (0-based) of `items`.

    - page_size <= 0: the whole input, unchanged
    - start beyond the end: empty list
    """
    if page_size <= 0:
        return list(items)
    if page < 0:
        raise ValueError(f"page must be >= 0, got {page}")

    start = page * page_size
    if start >= len(items):
        return []

    end = min(start + page_size, len(items))
    return list(items[start:end])


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1 if total > 0 else 0
    return (total + page_size - 1) // page_size


def clamp_page(page: int, total: int, page_size: int) -> int:
    """Clamp `page` into [0, page_count - 1] (0 when there is nothing to show)."""
    pages = page_count(total, page_size)
    if pages == 0:
        return 0
    return max(0, min(page, pages - 1))
