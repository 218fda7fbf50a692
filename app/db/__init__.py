"""Document store layer - filter builders, find options and tenant scoped access."""

from .errors import (
    ContextError,
    NoFieldsToUpdateError,
    TenantPurgeError,
    UnknownTemplateError,
)
from .filter_builder import FilterBuilder
from .find_options import FindOptions, ProjectionBuilder, SortBuilder
from .schema import APIInfo, FieldType, SchemaInfo

__all__ = [
    "APIInfo",
    "ContextError",
    "FieldType",
    "FilterBuilder",
    "FindOptions",
    "NoFieldsToUpdateError",
    "ProjectionBuilder",
    "SchemaInfo",
    "SortBuilder",
    "TenantPurgeError",
    "UnknownTemplateError",
]
