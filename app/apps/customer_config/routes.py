"""
Customer configuration routes.

Reads resolve a configuration by name: the global default, the tenant
configuration or a cluster configuration. Unless ``unmerged`` is set, the
settings of the more specific levels are merged over the default ones.
"""

import copy
import logging

from fastapi import Depends, Request

from apps.base.context import RequestContext
from apps.base.exceptions import NAME_REQUIRED, BadRequestException, NotFoundException
from apps.base.models import BaseDocument
from apps.handlers import services
from apps.handlers.routes import RouterOptions, add_routes, context_dependency
from db import queries
from db.cache import add_cached_document, get_cached_document
from db.filter_builder import FilterBuilder
from server.config import Settings

from .models import CustomerConfig

logger = logging.getLogger(__name__)

CUSTOMER_CONFIG_PATH = "/v1_customer_configuration"
CUSTOMER_CONFIG_COLLECTION = "v1_customer_configurations"
DEFAULT_CUSTOMER_CONFIG_KEY = "defaultCustomerConfig"
DEFAULT_CONFIG_TTL = 5 * 60

CONFIG_NAME_PARAM = "configName"
CLUSTER_NAME_PARAM = "clusterName"
SCOPE_PARAM = "scope"
UNMERGED_PARAM = "unmerged"

GLOBAL_CONFIG_NAME = "default"
CUSTOMER_CONFIG_NAME = "CustomerConfig"
SCOPE_TO_NAME = {"default": GLOBAL_CONFIG_NAME, "customer": CUSTOMER_CONFIG_NAME}
SETTINGS_FIELD = "settings"

_default_config: dict[str, object] | None = None


def set_default_config(config: dict[str, object] | None) -> None:
    """Replace the default configuration; ``None`` falls back to the stored one."""
    global _default_config
    _default_config = config


async def get_default_config() -> dict[str, object] | None:
    if _default_config is not None:
        return copy.deepcopy(_default_config)
    return await get_cached_document(DEFAULT_CUSTOMER_CONFIG_KEY)


def config_name_from_params(request: Request) -> str:
    params = request.query_params
    if name := params.get(CONFIG_NAME_PARAM):
        return name
    if name := params.get(CLUSTER_NAME_PARAM):
        return name
    return SCOPE_TO_NAME.get(params.get(SCOPE_PARAM, ""), "")


def merge_settings(base: object, override: object) -> object:
    """Deep merge of mappings; any other override value replaces the base."""
    if not isinstance(base, dict) or not isinstance(override, dict):
        return copy.deepcopy(override)
    merged = copy.deepcopy(base)
    for key, value in override.items():
        merged[key] = merge_settings(merged.get(key), value)
    return merged


async def merged_config(
    ctx: RequestContext, name: str, config: dict[str, object] | None
) -> dict[str, object]:
    """
    Merge a configuration over the tenant and default configurations.

    Raises:
        NotFoundException: If no level exists at all

    """
    levels = [await get_default_config()]
    if name != CUSTOMER_CONFIG_NAME:
        levels.append(await queries.get_doc_by_name(ctx, CUSTOMER_CONFIG_NAME))
    levels.append(config)
    levels = [level for level in levels if level is not None]
    if not levels:
        raise NotFoundException()
    result = dict(levels[-1])
    settings: object = {}
    for level in levels:
        settings = merge_settings(settings, level.get(SETTINGS_FIELD) or {})
    result[SETTINGS_FIELD] = settings
    return result


async def decode_customer_config(
    request: Request, ctx: RequestContext
) -> list[BaseDocument]:
    """Parse configurations; updates are addressed by name, from the query or the body."""
    docs = services.parse_documents(CustomerConfig, await services.read_body(request))
    if request.method != "PUT":
        return docs
    if len(docs) != 1:
        raise BadRequestException("bulk update is not supported")
    doc = docs[0]
    name = config_name_from_params(request) or doc.get_name()
    if not name:
        raise BadRequestException(NAME_REQUIRED)
    doc.name = name
    return docs


async def validate_put_customer_config(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    for doc in docs:
        stored = await queries.get_doc_by_name(ctx, doc.get_name())
        if stored is None:
            raise NotFoundException()
        doc.guid = str(stored["guid"])
    return docs


options = RouterOptions(
    path=CUSTOMER_CONFIG_PATH,
    db_collection=CUSTOMER_CONFIG_COLLECTION,
    model=CustomerConfig,
    serve_get=False,
    serve_delete=False,
    validate_put_guid=False,
    body_decoder=decode_customer_config,
    put_validators=[validate_put_customer_config],
)
router = add_routes(options)
context = context_dependency(options)


@router.get("", response_model=None)
async def get_customer_config(
    request: Request, ctx: RequestContext = Depends(context)
) -> object:
    if services.LIST_PARAM in request.query_params:
        return await services.get_names_list(ctx)
    name = config_name_from_params(request)
    if not name:
        return await queries.get_all_for_tenant(ctx, include_globals=True)
    if name == GLOBAL_CONFIG_NAME:
        default = await get_default_config()
        if default is None:
            raise NotFoundException()
        return default

    config = await queries.get_doc_by_name(ctx, name)
    if request.query_params.get(UNMERGED_PARAM) == "true":
        if config is None:
            raise NotFoundException()
        return config
    return await merged_config(ctx, name, config)


@router.delete("", response_model=None)
async def delete_customer_config(
    request: Request, ctx: RequestContext = Depends(context)
) -> dict[str, object]:
    name = config_name_from_params(request)
    if not name:
        raise BadRequestException(NAME_REQUIRED)
    deleted = await queries.delete_by_name(ctx, name)
    if deleted is None:
        raise NotFoundException()
    return deleted


if (default := Settings().load_default_configs().get("customerConfig")) is not None:
    set_default_config(default)
add_cached_document(
    DEFAULT_CUSTOMER_CONFIG_KEY,
    CUSTOMER_CONFIG_COLLECTION,
    FilterBuilder().with_global().with_name(GLOBAL_CONFIG_NAME),
    DEFAULT_CONFIG_TTL,
)
