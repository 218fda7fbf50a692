"""Request handling shared by every collection route."""

import json
import logging
from collections.abc import Awaitable, Callable, Sequence

from fastapi import Request
from pydantic import BaseModel

from apps.base.context import RequestContext
from apps.base.exceptions import (
    MISSING_GUIDS,
    NAME_REQUIRED,
    NO_DOCUMENTS,
    BadRequestException,
    NotFoundException,
)
from apps.base.models import BaseDocument
from db import queries
from db.filter_builder import FilterBuilder
from db.find_options import FindOptions
from db.update import (
    get_set_field_command,
    get_unset_field_command,
    get_update_doc_command,
)

from .query_translator import unique_values_to_find_options, v2_list_to_find_options
from .schemas import UniqueValuesRequest, V2ListRequest
from .scope_query import QueryParamsConfig, query_params_to_filter
from .validators import Validator

logger = logging.getLogger(__name__)

LIST_PARAM = "list"
GUID_PARAM = "guid"

ModelType = type[BaseDocument]


async def read_body(request: Request) -> object:
    """
    Return the decoded JSON body, ``None`` when it is empty.

    Raises:
        BadRequestException: If the body is not valid JSON

    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise BadRequestException(f"failed to decode request body: {e.msg}") from e


async def read_model(request: Request, model: type[BaseModel]) -> BaseModel:
    return model.model_validate(await read_body(request) or {})


def parse_documents(model: ModelType, body: object) -> list[BaseDocument]:
    """
    Validate a single document or a list of documents.

    Raises:
        BadRequestException: If the body holds no document
        pydantic.ValidationError: If a document does not match the model

    """
    if isinstance(body, dict):
        return [model.model_validate(body)]
    if isinstance(body, list) and body:
        return [model.model_validate(item) for item in body]
    raise BadRequestException(NO_DOCUMENTS)


async def decode_documents(
    request: Request, ctx: RequestContext, model: ModelType
) -> list[BaseDocument]:
    if ctx.body_decoder is not None:
        docs = await ctx.body_decoder(request, ctx)
    else:
        docs = parse_documents(model, await read_body(request))
    if not docs:
        raise BadRequestException(NO_DOCUMENTS)
    return docs


async def run_validators(
    ctx: RequestContext, docs: list[BaseDocument], validators: Sequence[Validator]
) -> list[BaseDocument]:
    for validator in validators:
        docs = await validator(ctx, docs)
    return docs


def send_doc(ctx: RequestContext, doc: dict[str, object] | None) -> object:
    """Shape a single document response, 404 when there is no document."""
    if doc is None:
        raise NotFoundException()
    if ctx.response_sender is not None:
        return ctx.response_sender(ctx, doc, None)
    return doc


def send_docs(ctx: RequestContext, docs: list[dict[str, object]]) -> object:
    if ctx.response_sender is not None:
        return ctx.response_sender(ctx, None, docs)
    return docs


# GET


async def get_by_guid(ctx: RequestContext, guid: str) -> object:
    return send_doc(ctx, await queries.get_doc_by_guid(ctx, guid))


async def get_names_list(ctx: RequestContext) -> list[str]:
    find_options = FindOptions()
    find_options.projection.include("name").exclude_id()
    docs = await queries.find_for_tenant_with_globals(ctx, find_options)
    return [doc["name"] for doc in docs if doc.get("name")]


async def get_list(
    ctx: RequestContext,
    request: Request,
    *,
    serve_names_list: bool,
    name_param: str,
    query_config: QueryParamsConfig | None,
    include_globals: bool,
) -> object:
    """
    Serve ``GET P``.

    The first applicable mode wins: names list, lookup by name, scope query,
    then every document of the tenant.
    """
    params = request.query_params
    if serve_names_list and LIST_PARAM in params:
        return await get_names_list(ctx)
    if name_param and (name := params.get(name_param)):
        return send_doc(ctx, await queries.get_doc_by_name(ctx, name))
    scope_filter = query_params_to_filter(
        ((key, params.getlist(key)) for key in params), query_config
    )
    if scope_filter is not None:
        logger.debug("scope query %s", scope_filter)
        docs = await queries.find_for_tenant(ctx, FindOptions(filter=scope_filter))
        return send_docs(ctx, docs)
    return send_docs(ctx, await queries.get_all_for_tenant(ctx, include_globals))


# POST


async def post_documents(ctx: RequestContext, docs: list[BaseDocument]) -> object:
    """
    Insert validated documents.

    Returns:
        The stored document, or the list of them for bulk requests

    Raises:
        pymongo.errors.DuplicateKeyError: If an id is already taken

    """
    contents = []
    for doc in docs:
        doc.init_new()
        doc.set_updated_time()
        contents.append(doc.to_document())
    inserted = await queries.insert_documents(ctx, contents)
    logger.info("inserted %d documents into %s", len(inserted), ctx.collection)
    if len(inserted) == 1:
        return inserted[0]
    return inserted


async def search(ctx: RequestContext, request: V2ListRequest) -> dict[str, object]:
    """Run a paginated search, scoped to a parent document for nested paths."""
    find_options = v2_list_to_find_options(ctx.schema, request)
    if ctx.schema.nested_doc_path and ctx.base_doc_id:
        if ctx.admin:
            return await queries.admin_find_nested_paginated(ctx, find_options)
        return await queries.find_nested_paginated_for_tenant(ctx, find_options)
    if ctx.admin:
        return await queries.admin_find_paginated(ctx, find_options)
    return await queries.find_paginated_for_tenant(ctx, find_options)


async def unique_values(
    ctx: RequestContext, request: UniqueValuesRequest
) -> dict[str, object]:
    find_options = unique_values_to_find_options(ctx.schema, request)
    if find_options.limit == 0:
        return {
            "fields": {field: [] for field in find_options.group},
            "fieldsCount": {field: [] for field in find_options.group},
        }
    if ctx.admin:
        return await queries.admin_aggregate(ctx, find_options)
    return await queries.aggregate_for_tenant(ctx, find_options)


# PUT


async def put_document(ctx: RequestContext, doc: BaseDocument) -> object:
    """
    Update one document with the fields it carries.

    Raises:
        NoFieldsToUpdateError: If only read-only or non whitelisted fields were sent
        NotFoundException: If the document does not exist

    """
    doc.set_updated_time()
    update = get_update_doc_command(
        doc.to_document(), ctx.put_fields or None, doc.get_read_only_fields()
    )
    result = await queries.update_document(ctx, doc.guid or "", update)
    if result is None:
        raise NotFoundException()
    return send_docs(ctx, result)


# DELETE


async def delete_by_guid(ctx: RequestContext, guid: str) -> dict[str, object]:
    deleted = await queries.delete_by_guid(ctx, guid)
    if deleted is None:
        raise NotFoundException()
    return deleted


def _non_empty(values: list[object]) -> list[str]:
    return [value for value in values if isinstance(value, str) and value]


async def bulk_delete(ctx: RequestContext, request: Request) -> dict[str, int]:
    """Delete by ids given as repeated ``guid`` query params or a JSON list."""
    guids = request.query_params.getlist(GUID_PARAM)
    if not guids:
        body = await read_body(request)
        guids = body if isinstance(body, list) else []
    guids = _non_empty(guids)
    if not guids:
        raise BadRequestException(MISSING_GUIDS)
    deleted = await queries.bulk_delete(ctx, FilterBuilder().with_ids(guids))
    if deleted == 0:
        raise NotFoundException()
    return {"deletedCount": deleted}


async def delete_by_name(
    ctx: RequestContext, request: Request, name_param: str
) -> dict[str, object]:
    """Delete by names given in the query or as ``[{<name_param>: name}]``."""
    names = request.query_params.getlist(name_param)
    if not names:
        body = await read_body(request)
        if isinstance(body, list):
            names = [item.get(name_param) for item in body if isinstance(item, dict)]
    names = _non_empty(names)
    if not names:
        raise BadRequestException(NAME_REQUIRED)
    if len(names) == 1:
        deleted = await queries.delete_by_name(ctx, names[0])
        if deleted is None:
            raise NotFoundException()
        return deleted
    count = await queries.bulk_delete_by_name(ctx, names)
    if count == 0:
        raise NotFoundException()
    return {"deletedCount": count}


async def delete_by_query(ctx: RequestContext, request: V2ListRequest) -> dict[str, int]:
    """
    Delete every document matching a search request.

    Raises:
        BadRequestException: If the request carries no filter at all

    """
    find_options = v2_list_to_find_options(ctx.schema, request)
    if not len(find_options.filter):
        raise BadRequestException("delete by query requires at least one filter")
    if ctx.admin:
        deleted = await queries.admin_bulk_delete(ctx, find_options.filter)
    else:
        deleted = await queries.bulk_delete(ctx, find_options.filter)
    return {"deletedCount": deleted}


# Containers

ContainerExtractor = Callable[
    [Request, RequestContext], Awaitable[tuple[str, str, list[object]]]
]


async def add_to_array(
    ctx: RequestContext, guid: str, path: str, values: list[object]
) -> dict[str, int]:
    return {"added": await queries.add_to_array(ctx, guid, path, *values)}


async def remove_from_array(
    ctx: RequestContext, guid: str, path: str, values: list[object]
) -> dict[str, int]:
    return {"removed": await queries.pull_from_array(ctx, guid, path, *values)}


async def set_field(
    ctx: RequestContext, guid: str, path: str, values: list[object], unset: bool = False
) -> dict[str, int]:
    if unset:
        update = get_unset_field_command(path)
    else:
        update = get_set_field_command(path, values[0] if values else None)
    return {"modified": await queries.update_one(ctx, guid, update)}
