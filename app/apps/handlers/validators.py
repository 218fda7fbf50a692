"""Validators and mutators applied to request documents before they are stored."""

import dataclasses
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from apps.base.context import RequestContext
from apps.base.exceptions import (
    GUID_IN_BULK_PATH,
    GUID_REQUIRED,
    BadRequestException,
    NotFoundException,
    duplicate_value,
    missing_key,
    values_exist,
)
from apps.base.models import SHORT_NAME_ATTRIBUTE, SHORT_NAME_FIELD, BaseDocument
from db import queries
from db.filter_builder import FilterBuilder
from db.find_options import FindOptions

logger = logging.getLogger(__name__)

Validator = Callable[
    [RequestContext, list[BaseDocument]], Awaitable[list[BaseDocument]]
]
ValueGetter = Callable[[BaseDocument], str]

SHORT_NAME_LENGTH = 5


@dataclasses.dataclass(frozen=True)
class UniqueKey:
    """A key whose value must be unique per tenant."""

    key: str
    mandatory: bool
    getter: ValueGetter


def name_value(doc: BaseDocument) -> str:
    return doc.get_name()


NAME_KEY = UniqueKey("name", True, name_value)


def _lookup(document: dict[str, object], path: str) -> object:
    value: object = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


async def validate_guid_existence(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    """
    Require an id on every document, taking it from the path when given.

    Raises:
        BadRequestException: On a path id with several documents or a missing id

    """
    if ctx.path_guid and len(docs) != 1:
        raise BadRequestException(GUID_IN_BULK_PATH)
    for doc in docs:
        if ctx.path_guid:
            doc.guid = ctx.path_guid
        if not doc.guid:
            raise BadRequestException(GUID_REQUIRED)
    return docs


def _collect_post_values(unique_key: UniqueKey, docs: list[BaseDocument]) -> list[str]:
    values: list[str] = []
    for doc in docs:
        value = unique_key.getter(doc)
        if unique_key.mandatory and not value:
            raise BadRequestException(missing_key(unique_key.key))
        if value in values:
            raise BadRequestException(duplicate_value(unique_key.key, value))
        values.append(value)
    return values


def _collect_put_values(
    unique_key: UniqueKey, docs: list[BaseDocument]
) -> dict[str, str]:
    value_to_guid: dict[str, str] = {}
    for doc in docs:
        value = unique_key.getter(doc)
        if unique_key.mandatory and not value:
            raise BadRequestException(missing_key(unique_key.key))
        if value in value_to_guid:
            raise BadRequestException(duplicate_value(unique_key.key, value))
        value_to_guid[value] = doc.guid or ""
    return value_to_guid


def validate_unique_values(*unique_keys: UniqueKey) -> Validator:
    """
    Reject documents whose unique values are already used by the tenant.

    On ``POST`` every value must be new; on ``PUT`` a value may only be held
    by the document being updated.
    """

    async def validator(
        ctx: RequestContext, docs: list[BaseDocument]
    ) -> list[BaseDocument]:
        find_options = FindOptions()
        key_values: dict[str, list[str]] = {}
        for unique_key in unique_keys:
            if len(find_options.filter):
                find_options.filter.wrap_or()
            if ctx.method == "PUT":
                value_to_guid = _collect_put_values(unique_key, docs)
                conditions = [
                    FilterBuilder()
                    .with_value(unique_key.key, value)
                    .with_not_equal("guid", guid)
                    for value, guid in value_to_guid.items()
                ]
                if len(conditions) > 1:
                    find_options.filter.add_or(*conditions)
                else:
                    find_options.filter.with_filter(conditions[0])
                key_values[unique_key.key] = list(value_to_guid)
            else:
                values = _collect_post_values(unique_key, docs)
                if len(values) > 1:
                    find_options.filter.with_in(unique_key.key, values)
                else:
                    find_options.filter.with_value(unique_key.key, values[0])
                key_values[unique_key.key] = values
            find_options.projection.include(unique_key.key)

        existing = await queries.find_for_tenant(ctx, find_options)
        if not existing:
            return docs
        messages = []
        for unique_key in unique_keys:
            taken: list[str] = []
            for document in existing:
                value = _lookup(document, unique_key.key)
                if value in key_values[unique_key.key] and value not in taken:
                    taken.append(value)
            if taken:
                messages.append(values_exist(unique_key.key, taken))
        raise BadRequestException("; ".join(messages))

    return validator


async def validate_name_existence(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    for doc in docs:
        if not doc.get_name():
            raise BadRequestException(missing_key(NAME_KEY.key))
    return docs


def short_name_base(value: str) -> str:
    """Upper case alphanumeric prefix of a value."""
    letters = re.sub(r"[^A-Za-z0-9]", "", value).upper()
    return letters[:SHORT_NAME_LENGTH] or "X"


async def get_unique_short_name(
    ctx: RequestContext, value: str, reserved: set[str] | None = None
) -> str:
    """
    Derive a short name not used by any document of the tenant.

    Args:
        ctx: Request context
        value: Value the short name is derived from
        reserved: Short names already given to other documents of the batch

    """
    base = short_name_base(value)
    find_options = FindOptions()
    find_options.filter.with_regex(SHORT_NAME_FIELD, f"^{re.escape(base)}(-\\d+)?$")
    find_options.projection.include(SHORT_NAME_FIELD)
    taken = {
        _lookup(document, SHORT_NAME_FIELD)
        for document in await queries.find_for_tenant(ctx, find_options)
    }
    taken |= reserved or set()
    candidate, counter = base, 0
    while candidate in taken:
        counter += 1
        candidate = f"{base}-{counter}"
    return candidate


def validate_post_short_name(value_getter: ValueGetter) -> Validator:
    """Fill a missing short name attribute from the value getter."""

    async def validator(
        ctx: RequestContext, docs: list[BaseDocument]
    ) -> list[BaseDocument]:
        reserved: set[str] = set()
        for doc in docs:
            attributes = doc.get_attributes()
            if not attributes.get(SHORT_NAME_ATTRIBUTE):
                short_name = await get_unique_short_name(ctx, value_getter(doc), reserved)
                attributes[SHORT_NAME_ATTRIBUTE] = short_name
            reserved.add(attributes[SHORT_NAME_ATTRIBUTE])
        return docs

    return validator


async def validate_put_short_name(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    """
    Keep the stored short name when an update replaces the attributes.

    Raises:
        NotFoundException: If the updated document does not exist

    """
    for doc in docs:
        if not doc.attributes or SHORT_NAME_ATTRIBUTE in doc.attributes:
            continue
        old = await queries.get_doc_by_guid(ctx, doc.guid or "")
        if old is None:
            raise NotFoundException()
        old_attributes = old.get("attributes") or {}
        if SHORT_NAME_ATTRIBUTE in old_attributes:
            doc.attributes[SHORT_NAME_ATTRIBUTE] = old_attributes[SHORT_NAME_ATTRIBUTE]
    return docs


def validate_cache_ttl(default_ttl: timedelta, max_ttl: timedelta | None = None) -> Validator:
    """
    Compute the expiry time of cache documents.

    Args:
        default_ttl: Used when a document carries neither ``ttl`` nor ``expiryTime``
        max_ttl: Upper bound of the requested ttl; ``None`` or zero for no bound

    """

    async def validator(
        ctx: RequestContext, docs: list[BaseDocument]
    ) -> list[BaseDocument]:
        now = datetime.now(UTC)
        for doc in docs:
            ttl = getattr(doc, "ttl", None)
            if ttl is None and getattr(doc, "expiry_time", None) is not None:
                continue
            ttl = ttl or default_ttl
            if max_ttl and ttl > max_ttl:
                ttl = max_ttl
            doc.expiry_time = now + ttl
        return docs

    return validator
