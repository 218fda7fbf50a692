"""Tests for query parameter scope filters."""

from apps.handlers.scope_query import (
    QueryConfig,
    QueryParamsConfig,
    default_query_config,
    flat_query_config,
    query_params_to_filter,
)


def _build(params: dict[str, list[str]], config: QueryParamsConfig | None) -> dict | None:
    builder = query_params_to_filter(params.items(), config)
    return None if builder is None else builder.build()


class TestScopeQuery:
    """Test cases for scope queries."""

    def test_disabled(self) -> None:
        """Test that no config disables scope queries."""
        assert _build({"cluster": ["c1"]}, None) is None

    def test_only_reserved_params(self) -> None:
        """Test that reserved parameters are not search terms."""
        assert _build({"customerGUID": ["t1"], "limit": ["10"]}, flat_query_config()) is None

    def test_default_context(self) -> None:
        """Test single segment keys in the attributes context."""
        assert _build({"cluster": ["c1"]}, default_query_config()) == {
            "attributes.cluster": "c1"
        }

    def test_repeated_values(self) -> None:
        """Test that repeated values are alternatives."""
        assert _build({"cluster": ["c1", "c2"]}, default_query_config()) == {
            "$or": [{"attributes.cluster": "c1"}, {"attributes.cluster": "c2"}]
        }

    def test_flat_context(self) -> None:
        """Test top level fields."""
        assert _build({"name": ["n"], "kind": ["k"]}, flat_query_config()) == {
            "name": "n",
            "kind": "k",
        }

    def test_unknown_context_parses_values(self) -> None:
        """Test value parsing in contexts without configuration."""
        query = _build(
            {"scope.enabled": ["true"], "scope.count": ["3"], "scope.kind": ["x"]},
            flat_query_config(),
        )

        assert query == {
            "scope.enabled": {"$eq": True},
            "scope.count": {"$eq": 3},
            "scope.kind": "x",
        }

    def test_array_context(self) -> None:
        """Test element-wise matching of array contexts."""
        config = QueryParamsConfig(
            params={
                "designators": QueryConfig(
                    field_name="designators", path_in_array="attributes", is_array=True
                )
            }
        )

        assert _build(
            {"designators.cluster": ["c1"], "designators.namespace": ["ns"]}, config
        ) == {
            "designators": {
                "$elemMatch": {"attributes.cluster": "c1", "attributes.namespace": "ns"}
            }
        }
