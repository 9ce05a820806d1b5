"""Pagination primitives.

Pageable describes what the caller asked for (page index, page size, sort
order); Page is the ordered slice handed back by a repository or search index
together with the total element count.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

T = TypeVar('T')

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 2000

# Row offsets are BIGINT in both stores
MAX_OFFSET = 2**63 - 1

# Sort properties must be plain identifiers; they end up in SQL/JSON paths
_PROPERTY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class SortOrder:
    """Single sort criterion."""

    property: str
    direction: str = "asc"

    @property
    def ascending(self) -> bool:
        return self.direction == "asc"

    def is_safe(self) -> bool:
        """Check that the property name is a plain identifier."""
        return bool(_PROPERTY_PATTERN.match(self.property))

    @classmethod
    def parse(cls, value: str) -> Optional["SortOrder"]:
        """Parse a ``property[,direction]`` sort expression.

        Parameters:
            value: Raw query parameter value, e.g. ``name,desc``

        Returns:
            SortOrder, or None if the expression has no property
        """
        parts = [p.strip() for p in value.split(",") if p.strip()]
        if not parts:
            return None

        direction = "asc"
        if len(parts) > 1 and parts[-1].lower() in ("asc", "desc"):
            direction = parts[-1].lower()

        return cls(property=parts[0], direction=direction)


@dataclass(frozen=True)
class Pageable:
    """Pagination request: page index (0-based), page size and sort order."""

    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    sort: tuple[SortOrder, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.page < 0:
            raise ValueError(f"Page index must not be negative: {self.page}")
        if self.size < 1:
            raise ValueError(f"Page size must be at least 1: {self.size}")
        if self.offset + self.size > MAX_OFFSET:
            raise ValueError(f"Page {self.page} of size {self.size} is out of range")

    @property
    def offset(self) -> int:
        return self.page * self.size

    @classmethod
    def of(
        cls,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        sort: Optional[list[str]] = None,
        max_size: int = MAX_PAGE_SIZE
    ) -> "Pageable":
        """Build a Pageable from raw request values.

        Parameters:
            page: Requested page index
            size: Requested page size (capped at ``max_size``)
            sort: Raw ``property[,direction]`` expressions
            max_size: Upper bound for the page size

        Returns:
            Pageable instance
        """
        orders = []
        for expression in sort or []:
            order = SortOrder.parse(expression)
            if order is not None:
                orders.append(order)

        return cls(page=page, size=min(size, max_size), sort=tuple(orders))


@dataclass(frozen=True)
class Page(Generic[T]):
    """An ordered, bounded slice of a larger result set.

    Attributes:
        content: Records on this page, in collaborator-provided order
        total_elements: Size of the full result set
        pageable: The request that produced this page
    """

    content: list[T]
    total_elements: int
    pageable: Pageable

    @property
    def number(self) -> int:
        return self.pageable.page

    @property
    def size(self) -> int:
        return self.pageable.size

    @property
    def total_pages(self) -> int:
        if self.total_elements == 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.number + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @property
    def is_last(self) -> bool:
        return not self.has_next
