"""Translate v2 list and unique values requests into find options."""

import logging
import re
from datetime import datetime

from db.filter_builder import FilterBuilder
from db.find_options import FindOptions
from db.schema import SchemaInfo
from db.utils import format_rfc3339, parse_rfc3339, split_ignore_escaped, string_to_value
from server.config import Settings

from .schemas import UniqueValuesRequest, V2ListRequest

logger = logging.getLogger(__name__)

VALUE_SEPARATOR = ","
OPERATOR_SEPARATOR = "|"
SUB_QUERY_SEPARATOR = "&"
SORT_TYPE_SEPARATOR = ":"
ESCAPE_CHAR = "\\"

ASCENDING_SORT = "asc"
DESCENDING_SORT = "desc"

MATCH_OPERATOR = "match"
EQUAL_OPERATOR = "equal"
GREATER_OPERATOR = "greater"
LOWER_OPERATOR = "lower"
LIKE_OPERATOR = "like"
REGEX_OPERATOR = "regex"
RANGE_OPERATOR = "range"
EXISTS_OPERATOR = "exists"
MISSING_OPERATOR = "missing"
ELEMENT_MATCH_OPERATOR = "elemMatch"
IGNORE_CASE_OPTION = "ignorecase"

GUID_FIELD = "guid"


class QueryError(ValueError):
    """A search request cannot be translated into a query."""


def get_typed_value(schema: SchemaInfo, field: str, value: str) -> object:
    """
    Coerce a raw value according to the field type.

    Raises:
        QueryError: If a date field does not hold an RFC 3339 timestamp

    """
    if schema.is_string(field):
        return value
    if schema.is_date(field):
        try:
            return parse_rfc3339(value)
        except ValueError:
            raise QueryError(
                f"failed to parse field {field} with value {value} into Time type"
            ) from None
    return string_to_value(value)


def page_properties(page_size: int | None, page_num: int | None) -> tuple[int, int]:
    """Return ``(page, per_page)`` with defaults applied and size clamped."""
    max_size = Settings().page_max_limit
    per_page = max_size if page_size is None or page_size < 0 else page_size
    per_page = min(per_page, max_size)
    page = page_num if page_num and page_num > 0 else 0
    return page, per_page


def _term_filter(
    schema: SchemaInfo, key: str, key_with_root: str, term: str
) -> FilterBuilder:
    parts = term.split(OPERATOR_SEPARATOR)
    value = parts[0].replace(ESCAPE_CHAR, "")
    operator, option = MATCH_OPERATOR, ""
    if len(parts) == 2:
        operator, _, option = parts[1].partition(SUB_QUERY_SEPARATOR)
    operator = operator or MATCH_OPERATOR

    if operator == EXISTS_OPERATOR:
        return FilterBuilder().add_exists(key, True)
    if operator == MISSING_OPERATOR:
        return FilterBuilder().add_exists(key, False)
    if operator in (MATCH_OPERATOR, EQUAL_OPERATOR):
        if key == GUID_FIELD:
            return FilterBuilder().with_id(value)
        return FilterBuilder().with_value(
            key, get_typed_value(schema, key_with_root, value)
        )
    if operator == GREATER_OPERATOR:
        return FilterBuilder().with_greater_than_equal(
            key, get_typed_value(schema, key_with_root, value)
        )
    if operator == LOWER_OPERATOR:
        return FilterBuilder().with_lower_than_equal(
            key, get_typed_value(schema, key_with_root, value)
        )
    if operator in (LIKE_OPERATOR, REGEX_OPERATOR):
        if operator == LIKE_OPERATOR:
            value = re.escape(value)
        return FilterBuilder().with_regex(
            key, value, ignore_case=option == IGNORE_CASE_OPTION
        )
    if operator == RANGE_OPERATOR:
        bounds = value.split(SUB_QUERY_SEPARATOR)
        if len(bounds) != 2:
            raise QueryError(f"value missing range separator {value}")
        if not bounds[0] or not bounds[1]:
            raise QueryError(f"invalid range value {value}")
        lower = get_typed_value(schema, key_with_root, bounds[0])
        upper = get_typed_value(schema, key_with_root, bounds[1])
        if type(lower) is not type(upper):
            raise QueryError(
                "invalid range must use same value types found "
                f"{type(lower).__name__} {type(upper).__name__}"
            )
        return FilterBuilder().with_range(key, lower, upper)
    raise QueryError(f"unsupported operator {operator}")


def build_inner_filter(
    schema: SchemaInfo, inner_filter: dict[str, str], root_field: str = ""
) -> FilterBuilder | None:
    """
    Build the conjunction of one inner filter.

    Args:
        schema: Schema of the queried collection
        inner_filter: Mapping of field path to value string
        root_field: Array path when building the body of an element match

    Returns:
        The filter, or ``None`` when every value was empty

    Raises:
        QueryError: On any malformed term

    """
    builder = FilterBuilder()
    element_matches: dict[str, dict[str, str]] = {}
    for key, value in inner_filter.items():
        if not value:
            continue
        key_parts = key.split(OPERATOR_SEPARATOR)
        if len(key_parts) > 1 and key_parts[1] == ELEMENT_MATCH_OPERATOR:
            key = key_parts[0]
            key_with_root = f"{root_field}.{key}" if root_field else key
            is_array, array_path, field_path = schema.get_array_details(key_with_root)
            if not is_array:
                raise QueryError(
                    "element match operator is only supported for array fields"
                )
            element_matches.setdefault(array_path, {})[field_path] = value
            continue

        key_with_root = f"{root_field}.{key}" if root_field else key
        filters = [
            _term_filter(schema, key, key_with_root, term)
            for term in split_ignore_escaped(value, VALUE_SEPARATOR, ESCAPE_CHAR)
        ]
        if len(filters) > 1:
            builder.add_or(*filters)
        elif filters:
            builder.with_filter(filters[0])

    for array_path, element_filter in element_matches.items():
        try:
            element = build_inner_filter(schema, element_filter, array_path)
        except QueryError as e:
            raise QueryError(f"invalid element match filters {e}") from e
        if element is not None:
            builder.with_filter(element.wrap_element_match().wrap_with_field(array_path))

    if not len(builder):
        return None
    return builder


def _apply_inner_filters(
    schema: SchemaInfo, find_options: FindOptions, inner_filters: list[dict[str, str]]
) -> None:
    filters = [
        built
        for inner_filter in inner_filters
        if (built := build_inner_filter(schema, inner_filter)) is not None
    ]
    if len(filters) > 1:
        find_options.filter.add_or(*filters)
    elif filters:
        find_options.filter.with_filter(filters[0])


def _apply_time_window(
    schema: SchemaInfo,
    find_options: FindOptions,
    since: datetime | None,
    until: datetime | None,
) -> None:
    ts_field = schema.get_timestamp_field_name()
    if until is not None:
        value = get_typed_value(schema, ts_field, format_rfc3339(until))
        find_options.filter.with_lower_than_equal(ts_field, value)
    if since is not None:
        value = get_typed_value(schema, ts_field, format_rfc3339(since))
        find_options.filter.with_greater_than_equal(ts_field, value)


def _apply_sort(schema: SchemaInfo, find_options: FindOptions, order_by: str) -> None:
    if not order_by:
        order_by = (
            f"{schema.get_timestamp_field_name()}{SORT_TYPE_SEPARATOR}{DESCENDING_SORT}"
        )
    for sort_field in order_by.split(VALUE_SEPARATOR):
        name_and_type = sort_field.split(SORT_TYPE_SEPARATOR)
        if len(name_and_type) != 2:
            raise QueryError(f"invalid sort field {sort_field}")
        name, sort_type = name_and_type
        if sort_type == ASCENDING_SORT:
            find_options.sort.ascending(name)
        elif sort_type == DESCENDING_SORT:
            find_options.sort.descending(name)
        else:
            raise QueryError(f"invalid sort type {sort_type}")


def v2_list_to_find_options(schema: SchemaInfo, request: V2ListRequest) -> FindOptions:
    """
    Translate a paginated search request.

    Args:
        schema: Schema of the queried collection
        request: Search request

    Returns:
        Find options with filter, sort, projection and pagination

    Raises:
        QueryError: If the request holds an invalid sort or filter term

    """
    find_options = FindOptions()
    page, per_page = page_properties(request.page_size, request.page_num)
    find_options.set_pagination(page, per_page)

    _apply_sort(schema, find_options, request.order_by)

    find_options.projection.include(*request.fields_list)
    if not request.fields_list:
        find_options.projection.exclude(*schema.must_exclude_fields)

    _apply_time_window(schema, find_options, request.since, request.until)
    _apply_inner_filters(schema, find_options, request.inner_filters)
    logger.debug("v2 list filter %s", find_options.filter)
    return find_options


def unique_values_to_find_options(
    schema: SchemaInfo, request: UniqueValuesRequest
) -> FindOptions:
    """
    Translate a unique values request.

    Raises:
        QueryError: If no field is requested or a filter term is invalid

    """
    if not request.fields:
        raise QueryError("fields are required")
    find_options = FindOptions()
    page, per_page = page_properties(request.page_size, request.page_num)
    find_options.set_pagination(page, per_page)
    find_options.group.extend(request.fields)

    _apply_time_window(schema, find_options, request.since, request.until)
    _apply_inner_filters(schema, find_options, request.inner_filters)
    return find_options
