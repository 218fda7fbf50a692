"""Tests for request document validators."""

from datetime import UTC, datetime, timedelta

import pytest

from apps.base.context import RequestContext
from apps.base.exceptions import BadRequestException
from apps.base.models import BaseDocument
from apps.handlers.validators import (
    NAME_KEY,
    get_unique_short_name,
    name_value,
    short_name_base,
    validate_cache_ttl,
    validate_guid_existence,
    validate_name_existence,
    validate_post_short_name,
    validate_put_short_name,
    validate_unique_values,
)
from apps.notifications_cache.models import Cache
from db import queries


@pytest.fixture
def ctx() -> RequestContext:
    """POST context of tenant ``t1``."""
    return RequestContext(tenant_id="t1", collection="clusters", method="POST")


def _docs(*names: str) -> list[BaseDocument]:
    return [BaseDocument(name=name) for name in names]


class TestGuidExistence:
    """Test cases for id validation on updates."""

    @pytest.mark.asyncio
    async def test_path_guid(self, ctx: RequestContext) -> None:
        """Test that the path id is applied to the document."""
        [doc] = await validate_guid_existence(ctx.replace(path_guid="g1"), _docs("a"))

        assert doc.guid == "g1"

    @pytest.mark.asyncio
    async def test_path_guid_with_bulk(self, ctx: RequestContext) -> None:
        """Test that a path id is rejected for several documents."""
        with pytest.raises(BadRequestException, match="not allowed in bulk"):
            await validate_guid_existence(ctx.replace(path_guid="g1"), _docs("a", "b"))

    @pytest.mark.asyncio
    async def test_missing_guid(self, ctx: RequestContext) -> None:
        """Test that the id is required."""
        with pytest.raises(BadRequestException, match="guid is required"):
            await validate_guid_existence(ctx, _docs("a"))


class TestUniqueValues:
    """Test cases for the unique name validator."""

    @pytest.mark.asyncio
    async def test_new_names(self, mongo, ctx: RequestContext) -> None:
        """Test that new names pass."""
        docs = await validate_unique_values(NAME_KEY)(ctx, _docs("a", "b"))

        assert [doc.name for doc in docs] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_name_taken(self, mongo, ctx: RequestContext) -> None:
        """Test that a taken name is rejected."""
        await queries.insert_documents(ctx, [{"name": "a"}])

        with pytest.raises(BadRequestException, match="name a already exists"):
            await validate_unique_values(NAME_KEY)(ctx, _docs("a", "b"))

    @pytest.mark.asyncio
    async def test_name_taken_by_other_tenant(self, mongo, ctx: RequestContext) -> None:
        """Test that names are unique per tenant only."""
        await queries.insert_documents(ctx.replace(tenant_id="t2"), [{"name": "a"}])

        docs = await validate_unique_values(NAME_KEY)(ctx, _docs("a"))

        assert len(docs) == 1

    @pytest.mark.asyncio
    async def test_duplicate_in_request(self, mongo, ctx: RequestContext) -> None:
        """Test duplicates inside one request."""
        with pytest.raises(BadRequestException, match="duplicate name a"):
            await validate_unique_values(NAME_KEY)(ctx, _docs("a", "a"))

    @pytest.mark.asyncio
    async def test_missing_name(self, mongo, ctx: RequestContext) -> None:
        """Test that a mandatory unique key must be set."""
        with pytest.raises(BadRequestException, match="name is required"):
            await validate_unique_values(NAME_KEY)(ctx, [BaseDocument()])

    @pytest.mark.asyncio
    async def test_rename_on_put(self, mongo, ctx: RequestContext) -> None:
        """Test that a document may keep its own name on update."""
        [first, _] = await queries.insert_documents(
            ctx, [{"name": "a"}, {"name": "b"}]
        )
        put_ctx = ctx.replace(method="PUT")
        validator = validate_unique_values(NAME_KEY)

        same = await validator(put_ctx, [BaseDocument(guid=first["guid"], name="a")])
        with pytest.raises(BadRequestException, match="name b already exists"):
            await validator(put_ctx, [BaseDocument(guid=first["guid"], name="b")])

        assert same[0].name == "a"

    @pytest.mark.asyncio
    async def test_name_existence(self, ctx: RequestContext) -> None:
        """Test the mandatory name validator."""
        with pytest.raises(BadRequestException, match="name is required"):
            await validate_name_existence(ctx, [BaseDocument(name="")])


class TestShortNames:
    """Test cases for short name generation."""

    def test_short_name_base(self) -> None:
        """Test the short name prefix."""
        assert short_name_base("my-cluster.prod") == "MYCLU"
        assert short_name_base("--") == "X"

    @pytest.mark.asyncio
    async def test_unique_short_name(self, mongo, ctx: RequestContext) -> None:
        """Test that taken short names get a counter."""
        await queries.insert_documents(
            ctx, [{"name": "c", "attributes": {"alias": "MYCLU"}}]
        )

        assert await get_unique_short_name(ctx, "my-cluster") == "MYCLU-1"
        assert await get_unique_short_name(ctx, "my-cluster", {"MYCLU-1"}) == "MYCLU-2"

    @pytest.mark.asyncio
    async def test_post_short_names_in_batch(self, mongo, ctx: RequestContext) -> None:
        """Test that documents of one batch get distinct short names."""
        docs = _docs("my-cluster-a", "my-cluster-b")
        docs[0].attributes = {"alias": "KEEP"}

        docs = await validate_post_short_name(name_value)(ctx, docs)

        assert docs[0].attributes["alias"] == "KEEP"
        assert docs[1].attributes["alias"] == "MYCLU"

    @pytest.mark.asyncio
    async def test_put_keeps_short_name(self, mongo, ctx: RequestContext) -> None:
        """Test that updated attributes keep the stored short name."""
        [stored] = await queries.insert_documents(
            ctx, [{"name": "c", "attributes": {"alias": "C"}}]
        )
        doc = BaseDocument(guid=stored["guid"], attributes={"env": "prod"})

        [doc] = await validate_put_short_name(ctx, [doc])

        assert doc.attributes == {"env": "prod", "alias": "C"}


class TestCacheTTL:
    """Test cases for cache expiry computation."""

    @pytest.mark.asyncio
    async def test_default_ttl(self, ctx: RequestContext) -> None:
        """Test that documents without ttl get the default."""
        before = datetime.now(UTC)
        [doc] = await validate_cache_ttl(timedelta(hours=1))(ctx, [Cache(name="c")])

        assert doc.expiry_time >= before + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_max_ttl(self, ctx: RequestContext) -> None:
        """Test that the requested ttl is capped."""
        before = datetime.now(UTC)
        validator = validate_cache_ttl(timedelta(hours=1), timedelta(days=1))
        [doc] = await validator(ctx, [Cache(name="c", ttl=timedelta(days=30))])

        assert doc.expiry_time <= datetime.now(UTC) + timedelta(days=1)
        assert doc.expiry_time >= before + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_explicit_expiry(self, ctx: RequestContext) -> None:
        """Test that an explicit expiry time is kept."""
        expiry = datetime(2030, 1, 1, tzinfo=UTC)
        [doc] = await validate_cache_ttl(timedelta(hours=1))(
            ctx, [Cache(name="c", expiryTime=expiry)]
        )

        assert doc.expiry_time == expiry
