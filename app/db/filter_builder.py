"""Fluent builder for MongoDB filter documents."""

import logging
from collections.abc import Iterable
from typing import Self

logger = logging.getLogger(__name__)

CUSTOMERS_COLLECTION = "customers"
TENANT_FIELD = "customers"
ID_FIELD = "_id"


def to_document(pairs: Iterable[tuple[str, object]]) -> dict[str, object]:
    """
    Turn ordered filter pairs into a filter document.

    Repeated keys cannot live in a single mapping, so a pair list with
    duplicates is expressed as an ``$and`` of single-key documents.
    """
    pairs = list(pairs)
    keys = [key for key, _ in pairs]
    if len(set(keys)) == len(keys):
        return dict(pairs)
    return {"$and": [{key: value} for key, value in pairs]}


class FilterBuilder:
    """Accumulate ordered filter conditions and build a filter document."""

    def __init__(self) -> None:
        """Initialize an empty builder."""
        self._pairs: list[tuple[str, object]] = []
        self._tenant_is_id = False

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"FilterBuilder({self._pairs!r})"

    def pairs(self) -> list[tuple[str, object]]:
        """Return a copy of the accumulated (key, condition) pairs."""
        return list(self._pairs)

    def _append(self, key: str, value: object) -> Self:
        self._pairs.append((key, value))
        return self

    def with_filter(self, other: "FilterBuilder") -> Self:
        """
        Append all conditions of another builder.

        Args:
            other: Builder whose pairs are copied

        Returns:
            Self for method chaining

        """
        self._pairs.extend(other.pairs())
        return self

    def with_global(self) -> Self:
        """Match documents not owned by any tenant."""
        return self._append(TENANT_FIELD, "")

    def with_id(self, doc_id: str) -> Self:
        """
        Match the document primary key.

        When the tenant condition was already expressed as an ``_id`` match
        (the customers collection), the existing condition is replaced.
        """
        if self._tenant_is_id:
            for index, (key, _) in enumerate(self._pairs):
                if key == ID_FIELD:
                    self._pairs[index] = (ID_FIELD, doc_id)
                    return self
        return self._append(ID_FIELD, doc_id)

    def with_ids(self, ids: list[str]) -> Self:
        """Match any of the given primary keys."""
        if self._tenant_is_id:
            for index, (key, _) in enumerate(self._pairs):
                if key == ID_FIELD:
                    self._pairs[index] = (ID_FIELD, {"$in": list(ids)})
                    return self
        return self._append(ID_FIELD, {"$in": list(ids)})

    def with_name(self, name: str) -> Self:
        return self._append("name", name)

    def with_tenant(self, tenant_id: str, collection: str) -> Self:
        """
        Restrict the query to documents owned by a tenant.

        Args:
            tenant_id: Tenant identifier
            collection: Collection being queried; tenants themselves are
                stored in the customers collection keyed by their id

        Returns:
            Self for method chaining

        """
        if collection == CUSTOMERS_COLLECTION:
            self.with_id(tenant_id)
            self._tenant_is_id = True
            return self
        return self._append(TENANT_FIELD, tenant_id)

    def with_tenant_and_global(self, tenant_id: str) -> Self:
        """Match documents owned by the tenant or shared globally."""
        return self._append(TENANT_FIELD, {"$in": [tenant_id, ""]})

    def with_tenants(self, tenant_ids: list[str]) -> Self:
        return self._append(TENANT_FIELD, {"$in": list(tenant_ids)})

    def with_value(self, key: str, value: object) -> Self:
        return self._append(key, value)

    def with_regex(self, key: str, pattern: str, ignore_case: bool = False) -> Self:
        """Match a field against a regular expression."""
        condition: dict[str, object] = {"$regex": pattern}
        if ignore_case:
            condition["$options"] = "i"
        return self._append(key, condition)

    def with_range(self, key: str, lower: object, upper: object) -> Self:
        """Match values in the inclusive range ``[lower, upper]``."""
        return self._append(key, {"$gte": lower, "$lte": upper})

    def with_greater_than_equal(self, key: str, value: object) -> Self:
        return self._append(key, {"$gte": value})

    def with_lower_than_equal(self, key: str, value: object) -> Self:
        return self._append(key, {"$lte": value})

    def with_not_equal(self, key: str, value: object) -> Self:
        return self._append(key, {"$ne": value})

    def with_equal(self, key: str, value: object) -> Self:
        return self._append(key, {"$eq": value})

    def with_in(self, key: str, values: list[object]) -> Self:
        return self._append(key, {"$in": list(values)})

    def with_not_in(self, key: str, values: list[object]) -> Self:
        return self._append(key, {"$nin": list(values)})

    def add_exists(self, key: str, exists: bool) -> Self:
        """
        Match on presence of a field.

        A present field must also be non-null; a missing field is either
        absent or explicitly null.
        """
        if exists:
            return self._append(key, {"$exists": True, "$ne": None})
        return self._append(
            "$or", [{key: {"$exists": False}}, {key: None}]
        )

    def add_or(self, *filters: "FilterBuilder") -> Self:
        """Append a disjunction of the given builders."""
        return self._append("$or", [f.build() for f in filters])

    def add_and(self, *filters: "FilterBuilder") -> Self:
        """Replace the current conditions with a conjunction of the builders."""
        self._pairs = [("$and", [f.build() for f in filters])]
        return self

    def with_element_match(self, element: object) -> Self:
        """Match array elements against a document or scalar."""
        return self._append("$elemMatch", element)

    def wrap_element_match(self) -> Self:
        """Wrap the current conditions into a single ``$elemMatch`` pair."""
        self._pairs = [("$elemMatch", self.build())]
        return self

    def wrap_or(self) -> Self:
        """Turn every current condition into one branch of an ``$or``."""
        self._pairs = [("$or", [{key: value} for key, value in self._pairs])]
        return self

    def wrap_not(self) -> Self:
        self._pairs = [("$not", self.build())]
        return self

    def wrap_with_field(self, field: str) -> Self:
        """Nest the current conditions under ``field``."""
        self._pairs = [(field, self.build())]
        return self

    def wrap_dup_keys_with_or(self) -> Self:
        """
        Merge conditions sharing a key into an ``$or``.

        Keys keep the order of their first appearance. Operator keys such as
        ``$or`` are left untouched.
        """
        grouped: dict[str, list[object]] = {}
        order: list[str] = []
        operators: list[tuple[int, tuple[str, object]]] = []
        for key, value in self._pairs:
            if key.startswith("$"):
                operators.append((len(order), (key, value)))
                continue
            if key not in grouped:
                grouped[key] = []
                order.append(key)
            grouped[key].append(value)

        merged: list[tuple[str, object]] = []
        for key in order:
            values = grouped[key]
            if len(values) == 1:
                merged.append((key, values[0]))
            else:
                merged.append(("$or", [{key: value} for value in values]))
        for offset, (position, pair) in enumerate(operators):
            merged.insert(position + offset, pair)
        self._pairs = merged
        return self

    def build(self) -> dict[str, object]:
        """
        Build the filter document.

        Returns:
            Filter mapping ready to hand to the driver

        """
        return to_document(self._pairs)
