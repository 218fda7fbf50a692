"""
Tenant scoped operations over the document store.

Every function reads the collection and the tenant from the request context.
Functions without the ``admin_`` prefix always add the tenant predicate before
they reach the database.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from server.db import db_manager

from .errors import TenantPurgeError
from .filter_builder import CUSTOMERS_COLLECTION, ID_FIELD, FilterBuilder, to_document
from .find_options import FindOptions, ProjectionBuilder
from .update import get_add_to_set_command, get_pull_command
from .utils import new_guid, to_string

if TYPE_CHECKING:
    from apps.base.context import RequestContext

logger = logging.getLogger(__name__)

COMPOSITE_SEPARATOR = "|"
INTERNAL_FIELDS = (ID_FIELD, "customers")


def read_context(ctx: "RequestContext") -> tuple[str, str]:
    """Return ``(collection, tenant_id)`` from the request context."""
    return ctx.require()


def _collection(name: str) -> AsyncIOMotorCollection:
    return db_manager.get_db()[name]


def _tenant_filter(ctx: "RequestContext", include_globals: bool = False) -> FilterBuilder:
    collection, tenant_id = read_context(ctx)
    if include_globals:
        return FilterBuilder().with_tenant_and_global(tenant_id)
    return FilterBuilder().with_tenant(tenant_id, collection)


def _scoped(ctx: "RequestContext", filter_builder: FilterBuilder | None) -> FilterBuilder:
    scoped = _tenant_filter(ctx)
    if filter_builder is not None:
        scoped.with_filter(filter_builder)
    return scoped


def _projection(ctx: "RequestContext", projection: ProjectionBuilder | None) -> dict | None:
    if projection is not None and len(projection):
        return projection.build()
    if ctx.schema.must_exclude_fields:
        return ProjectionBuilder().exclude(*ctx.schema.must_exclude_fields).build()
    return None


def to_output(document: dict[str, object] | None) -> dict[str, object] | None:
    """Strip the storage envelope from a stored document."""
    if document is None:
        return None
    return {k: v for k, v in document.items() if k not in INTERNAL_FIELDS}


async def get_all_for_tenant(
    ctx: "RequestContext", include_globals: bool = False
) -> list[dict[str, object]]:
    """Return every document visible to the tenant."""
    find_options = FindOptions(filter=_tenant_filter(ctx, include_globals))
    return await admin_find(ctx, find_options)


async def find_for_tenant(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> list[dict[str, object]]:
    find_options = find_options or FindOptions()
    find_options.filter = _scoped(ctx, find_options.filter)
    return await admin_find(ctx, find_options)


async def find_for_tenant_with_globals(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> list[dict[str, object]]:
    find_options = find_options or FindOptions()
    find_options.filter = _tenant_filter(ctx, include_globals=True).with_filter(
        find_options.filter
    )
    return await admin_find(ctx, find_options)


async def admin_find(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> list[dict[str, object]]:
    """
    Find documents of all tenants unless the caller filtered them.

    Args:
        ctx: Request context holding the collection
        find_options: Filter, projection, sort and skip to apply

    Returns:
        Matching documents without their storage envelope

    """
    collection, _ = read_context(ctx)
    find_options = find_options or FindOptions()
    query = find_options.filter.build()
    logger.debug("admin_find %s %s", collection, query)
    cursor = _collection(collection).find(
        query, projection=_projection(ctx, find_options.projection)
    )
    if len(find_options.sort):
        cursor = cursor.sort(find_options.sort.as_list())
    if find_options.skip:
        cursor = cursor.skip(find_options.skip)
    return [to_output(doc) async for doc in cursor]


def _page_stages(ctx: "RequestContext", find_options: FindOptions) -> list[dict]:
    stages: list[dict] = []
    if len(find_options.sort):
        stages.append({"$sort": find_options.sort.build()})
    if find_options.skip > 0:
        stages.append({"$skip": find_options.skip})
    if find_options.limit > 0:
        stages.append({"$limit": find_options.limit})
    projection = _projection(ctx, find_options.projection)
    if projection:
        stages.append({"$project": projection})
    return stages


def search_result(total: int, documents: list[dict[str, object]]) -> dict[str, object]:
    """Shape a paginated response."""
    return {
        "total": {"value": total, "relation": "eq"},
        "response": documents,
    }


async def _run_paginated(
    ctx: "RequestContext",
    collection: str,
    pipeline: list[dict],
    find_options: FindOptions,
) -> dict[str, object]:
    if find_options.limit == 0:
        pipeline = [*pipeline, {"$count": "count"}]
        results = await _collection(collection).aggregate(pipeline).to_list(length=1)
        total = results[0]["count"] if results else 0
        return search_result(total, [])

    page_stages = _page_stages(ctx, find_options)
    pipeline = [
        *pipeline,
        {
            "$facet": {
                "limitedResults": page_stages,
                "count": [{"$count": "count"}],
            }
        },
    ]
    results = await _collection(collection).aggregate(pipeline).to_list(length=1)
    if not results:
        return search_result(0, [])
    facet = results[0]
    count = facet.get("count") or []
    total = count[0]["count"] if count else 0
    documents = [to_output(doc) for doc in facet.get("limitedResults") or []]
    return search_result(total, documents)


async def find_paginated_for_tenant(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> dict[str, object]:
    find_options = find_options or FindOptions()
    find_options.filter = _scoped(ctx, find_options.filter)
    return await admin_find_paginated(ctx, find_options)


async def admin_find_paginated(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> dict[str, object]:
    """
    Run a paginated search and count in a single aggregation.

    Returns:
        ``{"total": {"value", "relation"}, "response": [...]}``

    """
    collection, _ = read_context(ctx)
    find_options = find_options or FindOptions()
    logger.debug("admin_find_paginated %s %s", collection, find_options)
    pipeline = [{"$match": find_options.filter.build()}]
    return await _run_paginated(ctx, collection, pipeline, find_options)


async def find_nested_paginated_for_tenant(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> dict[str, object]:
    """Paginate the elements of the nested array of one parent document."""
    return await _find_nested_paginated(ctx, find_options, admin=False)


async def admin_find_nested_paginated(
    ctx: "RequestContext", find_options: FindOptions | None = None
) -> dict[str, object]:
    return await _find_nested_paginated(ctx, find_options, admin=True)


async def _find_nested_paginated(
    ctx: "RequestContext", find_options: FindOptions | None, admin: bool
) -> dict[str, object]:
    collection, _ = read_context(ctx)
    find_options = find_options or FindOptions()
    nested_path = ctx.schema.nested_doc_path
    if not nested_path:
        raise ValueError(f"collection {collection} has no nested document path")
    parent_filter = FilterBuilder() if admin else _tenant_filter(ctx)
    parent_filter.with_id(ctx.base_doc_id)
    pipeline = [
        {"$match": parent_filter.build()},
        {"$unwind": f"${nested_path}"},
        {"$replaceRoot": {"newRoot": f"${nested_path}"}},
    ]
    if len(find_options.filter):
        pipeline.append({"$match": find_options.filter.build()})
    logger.debug("find_nested_paginated %s %s", collection, pipeline)
    return await _run_paginated(ctx, collection, pipeline, find_options)


def _prefix_keys(array_path: str, value: object) -> object:
    if isinstance(value, dict):
        return {
            key if key.startswith("$") else f"{array_path}.{key}": (
                _prefix_keys(array_path, item) if key.startswith("$") else item
            )
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_prefix_keys(array_path, item) for item in value]
    return value


def _unwind_pairs(
    array_path: str, pairs: list[tuple[str, object]]
) -> list[tuple[str, object]]:
    unwound: list[tuple[str, object]] = []
    for key, value in pairs:
        if key != array_path or not isinstance(value, dict):
            unwound.append((key, value))
            continue
        # operators apply to the unwound element itself
        operators: dict[str, object] = {}
        for condition, condition_value in value.items():
            if condition == "$elemMatch" and isinstance(condition_value, dict):
                unwound.extend(_prefix_keys(array_path, condition_value).items())
            elif condition.startswith("$"):
                operators[condition] = condition_value
            else:
                unwound.append((f"{array_path}.{condition}", condition_value))
        if operators:
            unwound.append((array_path, operators))
    return unwound


def match_filters_for_unwind(
    array_path: str, pairs: list[tuple[str, object]]
) -> dict[str, object]:
    """
    Rewrite filter conditions so they apply after ``$unwind`` of an array.

    Element-match conditions on the unwound array become plain conditions on
    the array element fields.
    """
    return to_document(_unwind_pairs(array_path, pairs))


def unique_value_pipeline(
    ctx: "RequestContext", field: str, find_options: FindOptions
) -> list[dict]:
    """
    Build the unique values pipeline of one (possibly composite) field.

    Composite fields list several paths separated by ``|`` and are grouped on
    the tuple of their values. Every array holding one of the paths is unwound.
    """
    paths = field.split(COMPOSITE_SEPARATOR)
    match = FilterBuilder().with_filter(find_options.filter)
    for path in paths:
        match.add_exists(path, True)
    pipeline: list[dict] = [{"$match": match.build()}]

    array_paths: list[str] = []
    for path in paths:
        is_array, array_path, _ = ctx.schema.get_array_details(path)
        if is_array and array_path not in array_paths:
            array_paths.append(array_path)
    if array_paths:
        unwind_match = FilterBuilder().with_filter(find_options.get_unwind_filter())
        for path in paths:
            unwind_match.add_exists(path, True)
        pairs = unwind_match.pairs()
        for array_path in array_paths:
            pipeline.append({"$unwind": f"${array_path}"})
            pairs = _unwind_pairs(array_path, pairs)
        pipeline.append({"$match": to_document(pairs)})

    if len(paths) == 1:
        group_id: object = f"${paths[0]}"
        sort: dict[str, int] = {"_id": 1}
    else:
        group_id = {f"f{i}": f"${path}" for i, path in enumerate(paths)}
        sort = {f"_id.f{i}": 1 for i in range(len(paths))}
    pipeline.extend([
        {"$group": {"_id": group_id, "count": {"$sum": 1}}},
        {"$sort": sort},
    ])
    if find_options.skip > 0:
        pipeline.append({"$skip": find_options.skip})
    if find_options.limit > 0:
        pipeline.append({"$limit": find_options.limit})
    return pipeline


def _group_key(field: str, value: object) -> str:
    if COMPOSITE_SEPARATOR not in field:
        return to_string(value)
    parts = value if isinstance(value, dict) else {}
    count = len(field.split(COMPOSITE_SEPARATOR))
    return COMPOSITE_SEPARATOR.join(to_string(parts.get(f"f{i}")) for i in range(count))


async def aggregate_for_tenant(
    ctx: "RequestContext", find_options: FindOptions
) -> dict[str, object]:
    find_options.filter = _scoped(ctx, find_options.filter)
    if find_options.unwind_filter is not None:
        find_options.unwind_filter = _scoped(ctx, find_options.unwind_filter)
    return await admin_aggregate(ctx, find_options)


async def admin_aggregate(
    ctx: "RequestContext", find_options: FindOptions
) -> dict[str, object]:
    """
    Compute unique values and their counts for every requested field.

    One aggregation runs per field; the first failure cancels the others.

    Returns:
        ``{"fields": {field: [values]}, "fieldsCount": {field: [{field, count}]}}``

    Raises:
        ValueError: If no grouping field was requested

    """
    collection, _ = read_context(ctx)
    if not find_options.group:
        raise ValueError("group is empty")
    logger.debug("admin_aggregate %s %s", collection, find_options.group)

    async def aggregate_field(field: str) -> list[dict]:
        pipeline = unique_value_pipeline(ctx, field, find_options)
        return await _collection(collection).aggregate(pipeline).to_list(length=None)

    async with asyncio.TaskGroup() as group:
        tasks = {
            field: group.create_task(aggregate_field(field))
            for field in find_options.group
        }

    fields: dict[str, list[str]] = {}
    fields_count: dict[str, list[dict[str, object]]] = {}
    for field, task in tasks.items():
        rows = task.result()
        fields[field] = [_group_key(field, row["_id"]) for row in rows]
        fields_count[field] = [
            {"field": _group_key(field, row["_id"]), "count": row["count"]}
            for row in rows
        ]
    return {"fields": fields, "fieldsCount": fields_count}


async def update_document(
    ctx: "RequestContext", guid: str, update: dict[str, object]
) -> list[dict[str, object]] | None:
    """
    Apply an update command to one tenant document.

    Returns:
        ``[old, new]`` or ``None`` when the document does not exist

    """
    collection, _ = read_context(ctx)
    query = _tenant_filter(ctx).with_id(guid).build()
    logger.debug("update_document %s %s", collection, guid)
    old_doc = await _collection(collection).find_one(query)
    if old_doc is None:
        return None
    new_doc = await _collection(collection).find_one_and_update(
        query, update, return_document=ReturnDocument.AFTER
    )
    if new_doc is None:
        return None
    return [to_output(old_doc), to_output(new_doc)]


async def update_one(ctx: "RequestContext", guid: str, update: dict[str, object]) -> int:
    """Apply an update to one tenant document and return the modified count."""
    collection, _ = read_context(ctx)
    query = _tenant_filter(ctx).with_id(guid).build()
    result = await _collection(collection).update_one(query, update)
    return result.modified_count


async def add_to_array(
    ctx: "RequestContext", guid: str, array_path: str, *values: object
) -> int:
    return await update_one(ctx, guid, get_add_to_set_command(array_path, *values))


async def pull_from_array(
    ctx: "RequestContext", guid: str, array_path: str, *values: object
) -> int:
    return await update_one(ctx, guid, get_pull_command(array_path, *values))


async def admin_update_many(
    ctx: "RequestContext", filter_builder: FilterBuilder, update: dict[str, object]
) -> int:
    """Update every matching document regardless of its owner."""
    collection, _ = read_context(ctx)
    query = filter_builder.build()
    logger.info("admin_update_many %s %s", collection, query)
    result = await _collection(collection).update_many(query, update)
    return result.modified_count


async def doc_exist(ctx: "RequestContext", filter_builder: FilterBuilder) -> bool:
    collection, _ = read_context(ctx)
    query = _scoped(ctx, filter_builder).build()
    count = await _collection(collection).count_documents(query, limit=1)
    return count > 0


async def doc_with_name_exist(ctx: "RequestContext", name: str) -> bool:
    return await doc_exist(ctx, FilterBuilder().with_name(name))


async def get_doc_by_guid(ctx: "RequestContext", guid: str) -> dict[str, object] | None:
    """Return a tenant document by id or ``None``."""
    collection, _ = read_context(ctx)
    query = _tenant_filter(ctx).with_id(guid).build()
    document = await _collection(collection).find_one(
        query, projection=_projection(ctx, None)
    )
    return to_output(document)


async def get_doc(
    ctx: "RequestContext", filter_builder: FilterBuilder | None = None
) -> dict[str, object] | None:
    """Return the first document matching an unscoped filter."""
    collection, _ = read_context(ctx)
    query = filter_builder.build() if filter_builder is not None else {}
    document = await _collection(collection).find_one(
        query, projection=_projection(ctx, None)
    )
    return to_output(document)


async def get_doc_by_name(ctx: "RequestContext", name: str) -> dict[str, object] | None:
    collection, _ = read_context(ctx)
    query = _tenant_filter(ctx).with_name(name).build()
    document = await _collection(collection).find_one(
        query, projection=_projection(ctx, None)
    )
    return to_output(document)


async def count_docs(ctx: "RequestContext", filter_builder: FilterBuilder | None = None) -> int:
    collection, _ = read_context(ctx)
    query = _scoped(ctx, filter_builder).build()
    return await _collection(collection).count_documents(query)


def new_document(content: dict[str, object], tenant_id: str) -> dict[str, object]:
    """
    Wrap content into the stored envelope.

    The id is allocated when absent and mirrored into ``_id``.
    """
    document = dict(content)
    guid = document.get("guid") or new_guid()
    document["guid"] = guid
    document[ID_FIELD] = guid
    document["customers"] = [tenant_id] if tenant_id else []
    return document


async def insert_documents(
    ctx: "RequestContext", contents: list[dict[str, object]]
) -> list[dict[str, object]]:
    """
    Insert one or many documents owned by the current tenant.

    Raises:
        pymongo.errors.DuplicateKeyError: If an id already exists

    """
    collection, tenant_id = read_context(ctx)
    documents = [new_document(content, tenant_id) for content in contents]
    logger.debug("insert_documents %s count=%d", collection, len(documents))
    if len(documents) == 1:
        await _collection(collection).insert_one(documents[0])
    else:
        await _collection(collection).insert_many(documents)
    return [to_output(document) for document in documents]


async def delete_by_name(ctx: "RequestContext", name: str) -> dict[str, object] | None:
    collection, _ = read_context(ctx)
    to_be_deleted = await get_doc_by_name(ctx, name)
    if to_be_deleted is None:
        return None
    result = await _collection(collection).delete_one({ID_FIELD: to_be_deleted["guid"]})
    if result.deleted_count == 0:
        return None
    return to_be_deleted


async def delete_by_guid(ctx: "RequestContext", guid: str) -> dict[str, object] | None:
    """Delete a tenant document by id and return it."""
    collection, _ = read_context(ctx)
    to_be_deleted = await get_doc_by_guid(ctx, guid)
    if to_be_deleted is None:
        return None
    result = await _collection(collection).delete_one(
        _tenant_filter(ctx).with_id(guid).build()
    )
    if result.deleted_count == 0:
        return None
    return to_be_deleted


async def bulk_delete_by_name(ctx: "RequestContext", names: list[str]) -> int:
    return await bulk_delete(ctx, FilterBuilder().with_in("name", names))


async def bulk_delete(ctx: "RequestContext", filter_builder: FilterBuilder) -> int:
    """Delete every tenant document matching the filter."""
    return await admin_bulk_delete(ctx, _scoped(ctx, filter_builder))


async def admin_bulk_delete(ctx: "RequestContext", filter_builder: FilterBuilder) -> int:
    collection, _ = read_context(ctx)
    query = filter_builder.build()
    logger.info("bulk delete %s %s", collection, query)
    result = await _collection(collection).delete_many(query)
    return result.deleted_count


async def delete_tenant_docs(ctx: "RequestContext") -> int:
    """Purge every document owned by the current tenant."""
    _, tenant_id = read_context(ctx)
    return await admin_delete_tenants_docs(tenant_id)


async def admin_delete_tenants_docs(*tenant_ids: str) -> int:
    """
    Purge tenants and every document they own, in all collections.

    Deletions run concurrently, one per collection, plus one for the tenant
    records themselves.

    Returns:
        Total number of deleted documents

    Raises:
        TenantPurgeError: If any collection failed; carries the partial count

    """
    if not tenant_ids:
        return 0
    database = db_manager.get_db()
    collections = await database.list_collection_names()
    owners = FilterBuilder().with_tenants(list(tenant_ids)).build()
    tenants = FilterBuilder().with_ids(list(tenant_ids)).build()

    targets: dict[str, dict] = {CUSTOMERS_COLLECTION: tenants}
    for collection in collections:
        if collection != CUSTOMERS_COLLECTION:
            targets[collection] = owners

    async def purge(collection: str, query: dict) -> int:
        result = await database[collection].delete_many(query)
        logger.info(
            "purged %d documents in collection %s", result.deleted_count, collection
        )
        return result.deleted_count

    names = list(targets)
    results = await asyncio.gather(
        *(purge(name, targets[name]) for name in names), return_exceptions=True
    )
    deleted = 0
    errors: dict[str, Exception] = {}
    for name, result in zip(names, results, strict=True):
        if isinstance(result, Exception):
            logger.error("failed to purge collection %s: %s", name, result)
            errors[name] = result
        else:
            deleted += result
    if errors:
        raise TenantPurgeError(deleted, errors)
    return deleted
