"""Filter whitelisting and pagination for incident queries.

Both helpers take raw query-string values and never raise: names outside the
whitelist are dropped and malformed numbers fall back to defaults.
"""
import re
from enum import Enum
from typing import Dict, Iterable, NamedTuple, Optional, Tuple

from sqlalchemy import Column, Table


class FilterField(str, Enum):
    """Incident columns that may be used as equality filters."""

    INCIDENT_STATE = "incident_state"
    OPENED_BY = "opened_by"
    CATEGORY = "category"
    URGENCY = "urgency"
    ASSIGNMENT_GROUP = "assignment_group"

    def column(self, table: Table) -> Column:
        return table.c[self.value]

    @classmethod
    def lookup(cls, name: str) -> Optional["FilterField"]:
        try:
            return cls(name)
        except ValueError:
            return None


class Page(NamedTuple):
    offset: int
    limit: int


def parse_filters(params: Iterable[Tuple[str, str]]) -> Dict[FilterField, str]:
    """Return the whitelisted filters from ``(name, value)`` pairs.

    Pairs are taken in order, so for a repeated name only the first value is
    kept. Unknown names are ignored.
    """
    filters: Dict[FilterField, str] = {}
    for name, value in params:
        field = FilterField.lookup(name)
        if field is None or field in filters:
            continue
        filters[field] = value
    return filters


# largest OFFSET a 64-bit store driver accepts
MAX_OFFSET = 2 ** 63 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")


def _to_int(raw: Optional[str]) -> int:
    """Parse a decimal integer; anything else, or a value outside int64, is 0."""
    if raw is None or not _INT_RE.match(raw):
        return 0
    value = int(raw)
    if abs(value) > MAX_OFFSET:
        return 0
    return value


def paginate(page: Optional[str], limit: Optional[str], max_page_size: int) -> Page:
    """Turn ``page``/``limit`` query values into an offset and limit.

    Args:
        page: 1-based page number. Missing, zero, negative, non-numeric or
            out-of-range values mean the first page.
        limit: requested page size. Missing, non-numeric, non-positive or
            oversized values mean ``max_page_size``.
        max_page_size: ceiling on the number of rows per page.
    """
    page_num = _to_int(page)
    if page_num < 1:
        page_num = 1
    size = _to_int(limit)
    if size <= 0 or size > max_page_size:
        size = max_page_size
    if page_num * size > MAX_OFFSET:
        page_num = 1
    return Page(offset=(page_num - 1) * size, limit=size)


__all__ = ["FilterField", "Page", "parse_filters", "paginate"]
