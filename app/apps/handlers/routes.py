"""Route factory emitting the standard HTTP surface of a collection."""

import dataclasses
import logging
from collections.abc import Callable
from enum import StrEnum

from fastapi import APIRouter, Depends, Request

from apps.base.auth import Identity, authenticate
from apps.base.context import BodyDecoder, RequestContext, ResponseSender
from apps.base.exceptions import BadRequestException
from apps.base.models import BaseDocument
from db.indexes import register_collection
from db.schema import APIInfo, SchemaInfo, set_api_info

from . import services
from .schemas import UniqueValuesRequest, V2ListRequest
from .scope_query import QueryParamsConfig
from .validators import (
    NAME_KEY,
    Validator,
    ValueGetter,
    validate_guid_existence,
    validate_name_existence,
    validate_post_short_name,
    validate_put_short_name,
    validate_unique_values,
)

logger = logging.getLogger(__name__)

BULK_SUFFIX = "/bulk"
QUERY_SUFFIX = "/query"
UNIQUE_VALUES_SUFFIX = "/uniqueValues"
GUID_PATH = "/{guid}"


class ContainerType(StrEnum):
    ARRAY = "array"
    MAP = "map"


@dataclasses.dataclass(frozen=True)
class ContainerHandler:
    """
    Sub-resource editing an array or a map inside the tenant document.

    Attributes:
        path: Route suffix, may hold path parameters
        extractor: Returns ``(document id, path inside the document, values)``
        container_type: Array (add to set / pull) or map (set / unset key)
        serve_put: Serve ``PUT`` (add or set)
        serve_delete: Serve ``DELETE`` (pull or unset)

    """

    path: str
    extractor: services.ContainerExtractor
    container_type: ContainerType
    serve_put: bool = True
    serve_delete: bool = True


@dataclasses.dataclass
class RouterOptions:
    """Feature flags and collaborators of one collection route group."""

    path: str
    db_collection: str
    model: type[BaseDocument] = BaseDocument
    schema: SchemaInfo = dataclasses.field(default_factory=SchemaInfo)

    serve_get: bool = True
    serve_get_names_list: bool = True
    serve_get_with_guid_only: bool = False
    serve_get_include_globals: bool = False
    serve_post: bool = True
    serve_put: bool = True
    serve_delete: bool = True
    serve_bulk_delete: bool = True
    serve_delete_by_query: bool = True
    serve_delete_by_name: bool = False
    serve_post_v2_list: bool = False

    validate_post_unique_name: bool = True
    validate_post_mandatory_name: bool = False
    validate_put_unique_name: bool = False
    validate_put_guid: bool = True

    name_query_param: str = ""
    query_config: QueryParamsConfig | None = None
    unique_short_name: ValueGetter | None = None
    put_fields: tuple[str, ...] = ()
    post_validators: list[Validator] = dataclasses.field(default_factory=list)
    put_validators: list[Validator] = dataclasses.field(default_factory=list)
    body_decoder: BodyDecoder | None = None
    response_sender: ResponseSender | None = None
    container_handlers: list[ContainerHandler] = dataclasses.field(
        default_factory=list
    )

    def validate(self) -> None:
        """
        Check flag combinations.

        Raises:
            ValueError: On an inconsistent configuration

        """
        if not self.db_collection or not self.path:
            raise ValueError("dbCollection and path must be set")
        if self.serve_get_include_globals and not self.serve_get:
            raise ValueError("includeGlobals can only be set when serveGet is true")
        if self.serve_delete_by_name and not self.serve_delete:
            raise ValueError("deleteByName can only be set when serveDelete is true")
        if self.unique_short_name is not None and not (
            self.serve_post and self.serve_put
        ):
            raise ValueError(
                "uniqueShortName can only be set when servePost and servePut are true"
            )
        if self.serve_get_with_guid_only and not self.serve_get:
            raise ValueError("getWithGUIDOnly can only be set when serveGet is true")

    def post_chain(self) -> list[Validator]:
        chain: list[Validator] = []
        if self.validate_post_unique_name:
            chain.append(validate_unique_values(NAME_KEY))
        if self.validate_post_mandatory_name:
            chain.append(validate_name_existence)
        if self.unique_short_name is not None:
            chain.append(validate_post_short_name(self.unique_short_name))
        return chain + self.post_validators

    def put_chain(self) -> list[Validator]:
        chain: list[Validator] = []
        if self.validate_put_guid:
            chain.append(validate_guid_existence)
        if self.unique_short_name is not None:
            chain.append(validate_put_short_name)
        if self.validate_put_unique_name:
            chain.append(validate_unique_values(NAME_KEY))
        return chain + self.put_validators


_admin_handlers: dict[str, RouterOptions] = {}


def get_admin_handler(collection: str) -> RouterOptions | None:
    """Return the options of the route group serving admin queries on a collection."""
    return _admin_handlers.get(collection)


def context_dependency(
    options: RouterOptions,
) -> Callable[..., object]:
    """Build the dependency resolving the request context of a route group."""

    async def dependency(
        request: Request, identity: Identity = Depends(authenticate)
    ) -> RequestContext:
        guid = request.path_params.get("guid", "")
        return RequestContext(
            tenant_id=identity.tenant_id,
            collection=options.db_collection,
            schema=options.schema,
            base_doc_id=guid if options.schema.nested_doc_path else "",
            put_fields=options.put_fields,
            body_decoder=options.body_decoder,
            response_sender=options.response_sender,
            method=request.method,
            path_guid=guid,
        )

    return dependency


def _add_get_routes(router: APIRouter, options: RouterOptions, context: Callable) -> None:
    if not options.serve_get_with_guid_only:

        @router.get("", response_model=None)
        async def get_documents(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> object:
            return await services.get_list(
                ctx,
                request,
                serve_names_list=options.serve_get_names_list,
                name_param=options.name_query_param,
                query_config=options.query_config,
                include_globals=options.serve_get_include_globals,
            )

    @router.get(GUID_PATH, response_model=None)
    async def get_document(guid: str, ctx: RequestContext = Depends(context)) -> object:
        return await services.get_by_guid(ctx, guid)


def _add_post_routes(router: APIRouter, options: RouterOptions, context: Callable) -> None:
    chain = options.post_chain()

    @router.post("", status_code=201, response_model=None)
    async def post_documents(
        request: Request, ctx: RequestContext = Depends(context)
    ) -> object:
        docs = await services.decode_documents(request, ctx, options.model)
        docs = await services.run_validators(ctx, docs, chain)
        return await services.post_documents(ctx, docs)


def _add_put_routes(router: APIRouter, options: RouterOptions, context: Callable) -> None:
    chain = options.put_chain()

    async def put_document(request: Request, ctx: RequestContext) -> object:
        docs = await services.decode_documents(request, ctx, options.model)
        if len(docs) != 1 and not ctx.path_guid:
            raise BadRequestException("bulk update is not supported")
        docs = await services.run_validators(ctx, docs, chain)
        return await services.put_document(ctx, docs[0])

    @router.put("", response_model=None)
    async def put_document_with_body_guid(
        request: Request, ctx: RequestContext = Depends(context)
    ) -> object:
        return await put_document(request, ctx)

    @router.put(GUID_PATH, response_model=None)
    async def put_document_with_path_guid(
        guid: str, request: Request, ctx: RequestContext = Depends(context)
    ) -> object:
        return await put_document(request, ctx)


def _add_delete_routes(
    router: APIRouter, options: RouterOptions, context: Callable
) -> None:
    if options.serve_delete_by_name:

        @router.delete("", response_model=None)
        async def delete_by_name(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> object:
            return await services.delete_by_name(ctx, request, options.name_query_param)

    if options.serve_bulk_delete:

        @router.delete(BULK_SUFFIX)
        async def bulk_delete(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> dict[str, int]:
            return await services.bulk_delete(ctx, request)

    if options.serve_delete_by_query:

        @router.delete(QUERY_SUFFIX)
        async def delete_by_query(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> dict[str, int]:
            return await services.delete_by_query(
                ctx, await services.read_model(request, V2ListRequest)
            )

    @router.delete(GUID_PATH, response_model=None)
    async def delete_document(
        guid: str, ctx: RequestContext = Depends(context)
    ) -> object:
        return await services.delete_by_guid(ctx, guid)


def _add_search_routes(
    router: APIRouter, options: RouterOptions, context: Callable
) -> None:
    @router.post(QUERY_SUFFIX, response_model=None)
    async def search(request: Request, ctx: RequestContext = Depends(context)) -> object:
        return await services.search(
            ctx, await services.read_model(request, V2ListRequest)
        )

    @router.post(UNIQUE_VALUES_SUFFIX, response_model=None)
    async def unique_values(
        request: Request, ctx: RequestContext = Depends(context)
    ) -> object:
        return await services.unique_values(
            ctx, await services.read_model(request, UniqueValuesRequest)
        )

    if options.schema.nested_doc_path:

        @router.post(GUID_PATH + QUERY_SUFFIX, response_model=None)
        async def search_nested(
            guid: str, request: Request, ctx: RequestContext = Depends(context)
        ) -> object:
            return await services.search(
                ctx, await services.read_model(request, V2ListRequest)
            )


def _add_container_routes(
    router: APIRouter, handler: ContainerHandler, context: Callable
) -> None:
    if handler.container_type == ContainerType.ARRAY:
        put_action, delete_action = services.add_to_array, services.remove_from_array
    else:
        put_action = services.set_field

        async def delete_action(
            ctx: RequestContext, guid: str, path: str, values: list[object]
        ) -> dict[str, int]:
            return await services.set_field(ctx, guid, path, values, unset=True)

    if handler.serve_put:

        @router.put(handler.path)
        async def put_container(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> dict[str, int]:
            guid, path, values = await handler.extractor(request, ctx)
            return await put_action(ctx, guid, path, values)

    if handler.serve_delete:

        @router.delete(handler.path)
        async def delete_container(
            request: Request, ctx: RequestContext = Depends(context)
        ) -> dict[str, int]:
            guid, path, values = await handler.extractor(request, ctx)
            return await delete_action(ctx, guid, path, values)


def add_routes(options: RouterOptions) -> APIRouter:
    """
    Register the routes of a collection.

    Args:
        options: Collection configuration

    Returns:
        The router of the group; custom routes added to it afterwards are
        served under the same path and context

    Raises:
        ValueError: If the options are inconsistent

    """
    options.validate()
    register_collection(options.db_collection)
    set_api_info(
        options.path, APIInfo(options.path, options.db_collection, options.schema)
    )
    _admin_handlers[options.db_collection] = options

    router = APIRouter(prefix=options.path, tags=[options.path.strip("/")])
    context = context_dependency(options)

    # container and fixed suffix routes come before the id routes
    for handler in options.container_handlers:
        _add_container_routes(router, handler, context)
    if options.serve_post_v2_list:
        _add_search_routes(router, options, context)
    if options.serve_delete:
        _add_delete_routes(router, options, context)
    if options.serve_get:
        _add_get_routes(router, options, context)
    if options.serve_post:
        _add_post_routes(router, options, context)
    if options.serve_put:
        _add_put_routes(router, options, context)

    logger.debug("routes registered for %s on %s", options.path, options.db_collection)
    return router


POLICY_NAME_PARAM = "policyName"


def add_policy_routes(
    path: str,
    db_collection: str,
    model: type[BaseDocument],
    query_config: QueryParamsConfig | None,
    allow_rename: bool = False,
    schema: SchemaInfo | None = None,
    name_param: str = POLICY_NAME_PARAM,
) -> APIRouter:
    """Register a policy collection: globals included, deleted by name, v2 search."""
    options = RouterOptions(
        path=path,
        db_collection=db_collection,
        model=model,
        name_query_param=name_param,
        query_config=query_config,
        serve_get_include_globals=True,
        serve_delete_by_name=True,
        serve_post_v2_list=True,
        validate_put_unique_name=allow_rename,
    )
    if schema is not None:
        options.schema = schema
    return add_routes(options)
