"""Per-collection schema descriptors and the API info registry."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_FIELD = "creationTime"


class FieldType(StrEnum):
    """Explicit field typing used to coerce query values."""

    DATE = "date"
    STRING = "string"


@dataclass(frozen=True)
class SchemaInfo:
    """
    Describe the parts of a collection the query engine needs to know about.

    Attributes:
        array_paths: Paths whose traversal requires unwinding an array
        fields_type: Explicit type of selected fields
        timestamp_field_name: Canonical timestamp used for default ordering and
            for ``since``/``until`` windows
        must_exclude_fields: Fields dropped from responses unless projected
        nested_doc_path: Array holding the addressable entity for nested
            collections

    """

    array_paths: tuple[str, ...] = ()
    fields_type: dict[str, FieldType] = field(default_factory=dict)
    timestamp_field_name: str = DEFAULT_TIMESTAMP_FIELD
    must_exclude_fields: tuple[str, ...] = ()
    nested_doc_path: str = ""

    def get_array_details(self, path: str) -> tuple[bool, str, str]:
        """
        Find the array a field path belongs to.

        Args:
            path: Dotted field path

        Returns:
            ``(is_array, array_path, sub_path)``; ``sub_path`` is the part of
            the path below the array root, empty when the path is the array

        """
        for array_path in self.array_paths:
            if path == array_path:
                return True, array_path, ""
            if path.startswith(array_path + "."):
                return True, array_path, path[len(array_path) + 1 :]
        return False, "", ""

    def get_timestamp_field_name(self) -> str:
        return self.timestamp_field_name or DEFAULT_TIMESTAMP_FIELD

    def is_date(self, field_name: str) -> bool:
        return self.fields_type.get(field_name) == FieldType.DATE

    def is_string(self, field_name: str) -> bool:
        return self.fields_type.get(field_name) == FieldType.STRING


@dataclass(frozen=True)
class APIInfo:
    """Registration record of a public collection path."""

    base_path: str
    db_collection: str
    schema: SchemaInfo = field(default_factory=SchemaInfo)


_apis_info: dict[str, APIInfo] = {}


def set_api_info(path: str, info: APIInfo) -> None:
    """Register a path; called while routes are assembled at startup."""
    if path in _apis_info and _apis_info[path] != info:
        logger.warning("API info for %s is being replaced", path)
    _apis_info[path] = info


def get_api_info(path: str) -> APIInfo | None:
    return _apis_info.get(path)


def get_apis_info() -> dict[str, APIInfo]:
    return dict(_apis_info)
