"""Query option holders for find and aggregate calls."""

from dataclasses import dataclass, field
from typing import Self

from .filter_builder import FilterBuilder


class ProjectionBuilder:
    """Build a projection document."""

    def __init__(self) -> None:
        self._fields: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._fields)

    def include(self, *fields: str) -> Self:
        for name in fields:
            self._fields[name] = 1
        return self

    def exclude(self, *fields: str) -> Self:
        for name in fields:
            self._fields[name] = 0
        return self

    def exclude_id(self) -> Self:
        self._fields["_id"] = 0
        return self

    def build(self) -> dict[str, int]:
        return dict(self._fields)


class SortBuilder:
    """Build an ordered sort specification."""

    def __init__(self) -> None:
        self._fields: list[tuple[str, int]] = []

    def __len__(self) -> int:
        return len(self._fields)

    def ascending(self, *fields: str) -> Self:
        self._fields.extend((name, 1) for name in fields)
        return self

    def descending(self, *fields: str) -> Self:
        self._fields.extend((name, -1) for name in fields)
        return self

    def build(self) -> dict[str, int]:
        """Return the sort as an insertion ordered mapping."""
        return dict(self._fields)

    def as_list(self) -> list[tuple[str, int]]:
        return list(self._fields)


@dataclass
class FindOptions:
    """
    Everything needed to run a list, count or unique-values query.

    ``filter`` applies to stored documents. ``unwind_filter`` applies to the
    elements of a nested array after it has been unwound.
    """

    filter: FilterBuilder = field(default_factory=FilterBuilder)
    unwind_filter: FilterBuilder | None = None
    projection: ProjectionBuilder = field(default_factory=ProjectionBuilder)
    sort: SortBuilder = field(default_factory=SortBuilder)
    group: list[str] = field(default_factory=list)
    limit: int = 0
    skip: int = 0

    def get_unwind_filter(self) -> FilterBuilder:
        """Return the post-unwind filter, falling back to the main filter."""
        if self.unwind_filter is None:
            return self.filter
        return self.unwind_filter

    def set_pagination(self, page: int, per_page: int) -> Self:
        """
        Apply zero-based page pagination.

        Args:
            page: Zero-based page number
            per_page: Page size

        Returns:
            Self for method chaining

        """
        self.skip = page * per_page
        self.limit = per_page
        return self
