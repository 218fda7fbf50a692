"""Translate ``GET`` query parameters into an equality filter."""

import dataclasses
from collections.abc import Iterable

from db.filter_builder import FilterBuilder
from db.utils import parse_bool

NON_SEARCH_PARAMS = frozenset(
    {"customerGUID", "limit", "skip", "fromDate", "toDate", "projection"}
)


@dataclasses.dataclass(frozen=True)
class QueryConfig:
    """
    How the parameters of one context map to stored fields.

    Attributes:
        field_name: Stored field the context refers to; empty for top level
        path_in_array: Prefix of the key inside array elements
        is_array: Whether the field is an array matched element-wise
        parse_value: Whether values are coerced to bool or int

    """

    field_name: str = ""
    path_in_array: str = ""
    is_array: bool = False
    parse_value: bool = False


@dataclasses.dataclass(frozen=True)
class QueryParamsConfig:
    params: dict[str, QueryConfig]
    default_context: str = ""


def default_query_config() -> QueryParamsConfig:
    """Single segment parameters are looked up in ``attributes``."""
    return QueryParamsConfig(
        params={"attributes": QueryConfig(field_name="attributes")},
        default_context="attributes",
    )


def flat_query_config() -> QueryParamsConfig:
    """Single segment parameters are top level fields."""
    return QueryParamsConfig(params={"": QueryConfig()}, default_context="")


def _add_value(
    builder: FilterBuilder, config: QueryConfig, key: str, value: str
) -> None:
    if not config.parse_value:
        builder.with_value(key, value)
        return
    try:
        builder.with_equal(key, parse_bool(value))
        return
    except ValueError:
        pass
    try:
        builder.with_equal(key, int(value))
    except ValueError:
        builder.with_value(key, value)


def query_params_to_filter(
    params: Iterable[tuple[str, list[str]]], config: QueryParamsConfig | None
) -> FilterBuilder | None:
    """
    Build a filter from query parameters.

    ``a.b=v`` selects context ``a`` and key ``b``; a single segment uses the
    default context. Repeated values of a parameter are OR-ed, parameters of
    the same context are AND-ed and array contexts are matched element-wise.

    Args:
        params: ``(name, values)`` pairs of the query string
        config: Contexts configuration; ``None`` disables scope queries

    Returns:
        The filter, or ``None`` when no search parameter was given

    """
    if config is None:
        return None
    builders: dict[str, FilterBuilder] = {}
    for name, raw_values in params:
        if name in NON_SEARCH_PARAMS:
            continue
        values = [value for value in raw_values if value]
        if not values:
            continue
        context, _, key = name.partition(".")
        if not key:
            context, key = config.default_context, name

        query_config = config.params.get(context) or QueryConfig(
            field_name=context, parse_value=True
        )
        if query_config.is_array:
            if query_config.path_in_array:
                key = f"{query_config.path_in_array}.{key}"
        elif query_config.field_name:
            key = f"{query_config.field_name}.{key}"

        builder = builders.setdefault(query_config.field_name, FilterBuilder())
        if len(values) == 1:
            _add_value(builder, query_config, key, values[0])
        else:
            alternatives = FilterBuilder()
            for value in values:
                _add_value(alternatives, query_config, key, value)
            builder.with_filter(alternatives.wrap_or())

    result = FilterBuilder()
    for field_name, builder in builders.items():
        builder.wrap_dup_keys_with_or()
        query_config = config.params.get(field_name)
        if query_config is not None and query_config.is_array:
            builder.wrap_element_match().wrap_with_field(query_config.field_name)
        result.with_filter(builder)
    if not len(result):
        return None
    return result
