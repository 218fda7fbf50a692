"""Tests for tenant scoped store operations."""

import pytest

from apps.base.context import RequestContext
from db import queries
from db.errors import ContextError
from db.filter_builder import FilterBuilder
from db.find_options import FindOptions
from db.indexes import ensure_indexes, register_collection
from db.schema import SchemaInfo


async def _insert(ctx: RequestContext, *contents: dict) -> list[dict]:
    return await queries.insert_documents(ctx, list(contents))


class TestEnvelope:
    """Test cases for the stored envelope."""

    def test_new_document_allocates_id(self) -> None:
        """Test id allocation and tenant ownership."""
        document = queries.new_document({"name": "n"}, "t1")

        assert document["guid"]
        assert document["_id"] == document["guid"]
        assert document["customers"] == ["t1"]

    def test_new_document_keeps_id(self) -> None:
        """Test that an explicit id is kept."""
        document = queries.new_document({"guid": "g1"}, "t1")

        assert document["_id"] == "g1"

    def test_to_output_strips_envelope(self) -> None:
        """Test output shaping."""
        assert queries.to_output({"_id": "g", "customers": ["t"], "guid": "g"}) == {
            "guid": "g"
        }
        assert queries.to_output(None) is None

    def test_missing_context(self) -> None:
        """Test that a context without tenant is rejected."""
        with pytest.raises(ContextError):
            queries.read_context(RequestContext(collection="c"))


class TestTenantIsolation:
    """Test cases for tenant scoping."""

    @pytest.mark.asyncio
    async def test_find_only_own_documents(self, mongo, ctx: RequestContext) -> None:
        """Test that a tenant only reads its own documents."""
        other = ctx.replace(tenant_id="t2")
        await _insert(ctx, {"name": "a"}, {"name": "b"})
        await _insert(other, {"name": "c"})

        docs = await queries.get_all_for_tenant(ctx)

        assert sorted(doc["name"] for doc in docs) == ["a", "b"]
        assert all("customers" not in doc and "_id" not in doc for doc in docs)

    @pytest.mark.asyncio
    async def test_include_globals(self, mongo, ctx: RequestContext) -> None:
        """Test that global documents are visible when requested."""
        await _insert(ctx, {"name": "own"})
        await mongo[ctx.collection].insert_one(
            {"_id": "g", "guid": "g", "name": "global", "customers": [""]}
        )

        own = await queries.get_all_for_tenant(ctx)
        visible = await queries.get_all_for_tenant(ctx, include_globals=True)

        assert [doc["name"] for doc in own] == ["own"]
        assert sorted(doc["name"] for doc in visible) == ["global", "own"]

    @pytest.mark.asyncio
    async def test_get_by_guid_other_tenant(self, mongo, ctx: RequestContext) -> None:
        """Test that another tenant cannot read a document by id."""
        [doc] = await _insert(ctx, {"name": "a"})

        assert await queries.get_doc_by_guid(ctx, doc["guid"]) == doc
        assert await queries.get_doc_by_guid(ctx.replace(tenant_id="t2"), doc["guid"]) is None

    @pytest.mark.asyncio
    async def test_must_exclude_fields(self, mongo, ctx: RequestContext) -> None:
        """Test that must-exclude fields are dropped from lookups."""
        ctx = ctx.replace(schema=SchemaInfo(must_exclude_fields=("secret",)))
        [doc] = await _insert(ctx, {"name": "a", "secret": "s"})

        stored = await queries.get_doc_by_guid(ctx, doc["guid"])

        assert "secret" not in stored


class TestUpdates:
    """Test cases for update operations."""

    @pytest.mark.asyncio
    async def test_update_document(self, mongo, ctx: RequestContext) -> None:
        """Test that the old and new versions are returned."""
        [doc] = await _insert(ctx, {"name": "a", "attributes": {"x": 1}})

        old, new = await queries.update_document(
            ctx, doc["guid"], {"$set": {"attributes.y": 2}}
        )

        assert old["attributes"] == {"x": 1}
        assert new["attributes"] == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_update_other_tenant(self, mongo, ctx: RequestContext) -> None:
        """Test that another tenant's document is not updated."""
        [doc] = await _insert(ctx, {"name": "a"})

        result = await queries.update_document(
            ctx.replace(tenant_id="t2"), doc["guid"], {"$set": {"name": "b"}}
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_array_operations(self, mongo, ctx: RequestContext) -> None:
        """Test add to set and pull."""
        [doc] = await _insert(ctx, {"name": "a", "tags": ["x"]})

        assert await queries.add_to_array(ctx, doc["guid"], "tags", "x", "y") == 1
        assert await queries.pull_from_array(ctx, doc["guid"], "tags", "x") == 1
        stored = await queries.get_doc_by_guid(ctx, doc["guid"])

        assert stored["tags"] == ["y"]

    @pytest.mark.asyncio
    async def test_admin_update_many(self, mongo, ctx: RequestContext) -> None:
        """Test cross tenant update."""
        await _insert(ctx, {"name": "a", "v": 1})
        await _insert(ctx.replace(tenant_id="t2"), {"name": "b", "v": 1})

        modified = await queries.admin_update_many(
            ctx, FilterBuilder().with_value("v", 1), {"$set": {"v": 2}}
        )

        assert modified == 2


class TestDeletes:
    """Test cases for delete operations."""

    @pytest.mark.asyncio
    async def test_delete_by_guid(self, mongo, ctx: RequestContext) -> None:
        """Test deleting returns the deleted document."""
        [doc] = await _insert(ctx, {"name": "a"})

        assert await queries.delete_by_guid(ctx.replace(tenant_id="t2"), doc["guid"]) is None
        assert await queries.delete_by_guid(ctx, doc["guid"]) == doc
        assert await queries.count_docs(ctx) == 0

    @pytest.mark.asyncio
    async def test_delete_by_name(self, mongo, ctx: RequestContext) -> None:
        """Test deleting by name, single and bulk."""
        await _insert(ctx, {"name": "a"}, {"name": "b"}, {"name": "c"})

        deleted = await queries.delete_by_name(ctx, "a")
        count = await queries.bulk_delete_by_name(ctx, ["b", "c", "d"])

        assert deleted["name"] == "a"
        assert count == 2

    @pytest.mark.asyncio
    async def test_bulk_delete_scoped(self, mongo, ctx: RequestContext) -> None:
        """Test that bulk delete only touches the tenant documents."""
        await _insert(ctx, {"name": "a", "kind": "k"})
        await _insert(ctx.replace(tenant_id="t2"), {"name": "a", "kind": "k"})

        count = await queries.bulk_delete(ctx, FilterBuilder().with_value("kind", "k"))

        assert count == 1
        assert await queries.count_docs(ctx.replace(tenant_id="t2")) == 1

    @pytest.mark.asyncio
    async def test_delete_tenants_docs(self, mongo, ctx: RequestContext) -> None:
        """Test purging tenants from every collection."""
        await _insert(ctx, {"name": "a"})
        await _insert(ctx.replace(collection="other"), {"name": "b"})
        await _insert(ctx.replace(tenant_id="t2"), {"name": "c"})
        await mongo["customers"].insert_one({"_id": "t1", "guid": "t1"})

        deleted = await queries.admin_delete_tenants_docs("t1")

        assert deleted == 3
        assert await mongo["customers"].count_documents({}) == 0
        assert await queries.count_docs(ctx.replace(tenant_id="t2")) == 1


class TestPagination:
    """Test cases for paginated searches."""

    @pytest.mark.asyncio
    async def test_paginated(self, mongo, ctx: RequestContext) -> None:
        """Test total and page content."""
        await _insert(ctx, *({"name": f"n{i}", "rank": i} for i in range(5)))
        options = FindOptions().set_pagination(1, 2)
        options.sort.ascending("rank")

        result = await queries.find_paginated_for_tenant(ctx, options)

        assert result["total"] == {"value": 5, "relation": "eq"}
        assert [doc["rank"] for doc in result["response"]] == [2, 3]

    @pytest.mark.asyncio
    async def test_count_only(self, mongo, ctx: RequestContext) -> None:
        """Test that a zero page size only counts."""
        await _insert(ctx, {"name": "a"}, {"name": "b"})

        result = await queries.find_paginated_for_tenant(ctx, FindOptions())

        assert result == {"total": {"value": 2, "relation": "eq"}, "response": []}

    @pytest.mark.asyncio
    async def test_nested_paginated(self, mongo, ctx: RequestContext) -> None:
        """Test paginating the elements of a parent document."""
        ctx = ctx.replace(schema=SchemaInfo(nested_doc_path="items"))
        [parent] = await _insert(
            ctx, {"name": "p", "items": [{"n": 1}, {"n": 2}, {"n": 3}]}
        )
        ctx = ctx.replace(base_doc_id=parent["guid"])
        options = FindOptions().set_pagination(0, 2)
        options.filter.with_greater_than_equal("n", 2)
        options.sort.descending("n")

        result = await queries.find_nested_paginated_for_tenant(ctx, options)

        assert result["total"]["value"] == 2
        assert result["response"] == [{"n": 3}, {"n": 2}]

    @pytest.mark.asyncio
    async def test_nested_paginated_other_tenant(
        self, mongo, ctx: RequestContext
    ) -> None:
        """Test that the parent must belong to the tenant."""
        ctx = ctx.replace(schema=SchemaInfo(nested_doc_path="items"))
        [parent] = await _insert(ctx, {"name": "p", "items": [{"n": 1}]})
        other = ctx.replace(tenant_id="t2", base_doc_id=parent["guid"])

        result = await queries.find_nested_paginated_for_tenant(
            other, FindOptions().set_pagination(0, 10)
        )

        assert result["total"]["value"] == 0


class TestUniqueValues:
    """Test cases for unique values aggregation."""

    @pytest.mark.asyncio
    async def test_single_field(self, mongo, ctx: RequestContext) -> None:
        """Test values and counts of one field."""
        await _insert(ctx, {"k": "a"}, {"k": "b"}, {"k": "a"}, {"other": 1})
        await _insert(ctx.replace(tenant_id="t2"), {"k": "z"})
        options = FindOptions(group=["k"])

        result = await queries.aggregate_for_tenant(ctx, options)

        assert result["fields"] == {"k": ["a", "b"]}
        assert result["fieldsCount"] == {
            "k": [{"field": "a", "count": 2}, {"field": "b", "count": 1}]
        }

    @pytest.mark.asyncio
    async def test_composite_field_in_array(
        self, mongo, ctx: RequestContext, array_schema: SchemaInfo
    ) -> None:
        """Test composite keys over unwound array elements."""
        ctx = ctx.replace(schema=array_schema)
        await _insert(
            ctx,
            {
                "relatedObjects": [
                    {"severity": "critical", "component": "c1"},
                    {"severity": "low", "component": "c2"},
                ]
            },
        )
        field = "relatedObjects.severity|relatedObjects.component"
        options = FindOptions(group=[field])
        options.filter.with_value("relatedObjects.severity", "critical")

        result = await queries.aggregate_for_tenant(ctx, options)

        assert result["fields"] == {field: ["critical|c1"]}

    @pytest.mark.asyncio
    async def test_composite_field_over_two_arrays(
        self, mongo, ctx: RequestContext
    ) -> None:
        """Test that every array in a composite key is unwound."""
        ctx = ctx.replace(schema=SchemaInfo(array_paths=("images", "wlids")))
        await _insert(
            ctx,
            {"cluster": "c1", "images": ["nginx"], "wlids": ["w1", "w2"]},
        )
        options = FindOptions(group=["cluster|wlids", "images|wlids"])

        result = await queries.aggregate_for_tenant(ctx, options)

        assert result["fields"] == {
            "cluster|wlids": ["c1|w1", "c1|w2"],
            "images|wlids": ["nginx|w1", "nginx|w2"],
        }

    def test_match_filters_for_unwind(self) -> None:
        """Test element match conditions are rewritten for unwound elements."""
        pairs = [
            ("customers", "t1"),
            ("relatedObjects", {"$elemMatch": {"cveID": "cve1", "$or": [{"a": 1}]}}),
        ]

        assert queries.match_filters_for_unwind("relatedObjects", pairs) == {
            "customers": "t1",
            "relatedObjects.cveID": "cve1",
            "$or": [{"relatedObjects.a": 1}],
        }

    @pytest.mark.asyncio
    async def test_empty_group(self, mongo, ctx: RequestContext) -> None:
        """Test that a grouping field is required."""
        with pytest.raises(ValueError, match="group is empty"):
            await queries.admin_aggregate(ctx, FindOptions())


class TestIndexes:
    """Test cases for index creation."""

    @pytest.mark.asyncio
    async def test_ensure_indexes(self, mongo) -> None:
        """Test that registered collections are indexed."""
        register_collection("attack_chains")

        await ensure_indexes(mongo)
        indexes = await mongo["attack_chains"].index_information()

        assert "attackChainID_1" in indexes
