"""
Read-only queries over a snapshot of records (a list in ascending id order).
All are O(n) in the snapshot size and never touch storage.
"""

import math
from typing import Sequence, TypeVar

from errors import InvalidInput, SumOverflowError

R = TypeVar("R")


def in_range(records: Sequence[R], field: str, start, end) -> list[R]:
    """Records with start <= field <= end. Empty when start > end."""
    if start > end:
        return []
    return [r for r in records if start <= getattr(r, field) <= end]


def above(records: Sequence[R], field: str, threshold) -> list[R]:
    return [r for r in records if getattr(r, field) > threshold]


def check_page(page: int, per_page: int) -> None:
    if page < 1:
        raise InvalidInput(f"page must be at least 1, got {page}")
    if per_page < 1:
        raise InvalidInput(f"per_page must be at least 1, got {per_page}")


def paginate(records: Sequence[R], page: int, per_page: int) -> list[R]:
    """1-indexed page of at most per_page records; short or empty past the end."""
    check_page(page, per_page)
    offset = (page - 1) * per_page
    return list(records[offset:offset + per_page])


def sorted_desc(records: Sequence[R], field: str) -> list[R]:
    """Descending by field; equal values keep ascending id order."""
    return sorted(records, key=lambda r: (-getattr(r, field), r.id))


def total(records: Sequence[R], field: str) -> float:
    """Exact float sum of field. Raises SumOverflowError past the float range."""
    try:
        return math.fsum(getattr(r, field) for r in records)
    except OverflowError as e:
        raise SumOverflowError(f"sum of {field} over {len(records)} records overflows: {e}") from e
