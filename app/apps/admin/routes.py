"""
Admin routes.

Every route requires admin rights and runs without the tenant predicate.
"""

import logging

from fastapi import APIRouter, Depends, Request

from apps.base.auth import Identity, authenticate_admin
from apps.base.context import RequestContext
from apps.base.exceptions import (
    BadRequestException,
    NotFoundException,
    number_param,
    required_query_param,
    rfc3339_param,
)
from apps.cluster.routes import CLUSTERS_COLLECTION
from apps.customer.notification import CUSTOMERS_COLLECTION
from apps.handlers import services
from apps.handlers.routes import get_admin_handler
from apps.handlers.schemas import UniqueValuesRequest, V2ListRequest
from apps.handlers.scope_query import flat_query_config, query_params_to_filter
from apps.policies.routes import (
    POSTURE_EXCEPTION_POLICY_COLLECTION,
    VULNERABILITY_EXCEPTION_POLICY_COLLECTION,
)
from db import queries
from db.aggregation import CUSTOMERS_WITH_SCANS_BETWEEN_DATES, aggregate_with_template
from db.filter_builder import FilterBuilder
from db.find_options import FindOptions
from db.schema import get_api_info
from db.update import get_set_field_command
from db.utils import format_rfc3339, parse_rfc3339
from server.config import Settings

from .schemas import PostureExceptionsSeverityUpdate, VulnerabilityExceptionsSeverityUpdate

logger = logging.getLogger(__name__)

LIMIT_PARAM = "limit"
SKIP_PARAM = "skip"
FROM_DATE_PARAM = "fromDate"
TO_DATE_PARAM = "toDate"
CUSTOMERS_PARAM = "customers"
PROJECTION_PARAM = "projection"
DEFAULT_ACTIVE_CUSTOMERS_LIMIT = 1000

router = APIRouter(prefix=Settings().admin_path, tags=["admin"])


def admin_context(
    identity: Identity, collection: str, request: Request | None = None
) -> RequestContext:
    return RequestContext(
        tenant_id=identity.tenant_id,
        collection=collection,
        admin=True,
        method=request.method if request is not None else "",
    )


def path_context(identity: Identity, path: str, request: Request) -> RequestContext:
    """
    Build the admin context of a public collection path.

    Raises:
        NotFoundException: If no collection is served under the path

    """
    api_info = get_api_info(f"/{path}")
    if api_info is None:
        raise NotFoundException(f"unknown path /{path}")
    return admin_context(identity, api_info.db_collection, request).replace(
        schema=api_info.schema
    )


def _int_param(request: Request, name: str, default: int) -> int:
    value = request.query_params.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise BadRequestException(number_param(name)) from None


def _date_param(request: Request, name: str) -> str:
    value = request.query_params.get(name)
    if not value:
        raise BadRequestException(required_query_param(name))
    try:
        return format_rfc3339(parse_rfc3339(value))
    except ValueError:
        raise BadRequestException(rfc3339_param(name)) from None


@router.get("/activeCustomers")
async def get_active_customers(
    request: Request, identity: Identity = Depends(authenticate_admin)
) -> dict[str, object]:
    """Tenants with at least one cluster reporting between the two dates."""
    limit = _int_param(request, LIMIT_PARAM, DEFAULT_ACTIVE_CUSTOMERS_LIMIT)
    skip = _int_param(request, SKIP_PARAM, 0)
    from_date = _date_param(request, FROM_DATE_PARAM)
    to_date = _date_param(request, TO_DATE_PARAM)
    logger.info("active customers between %s and %s", from_date, to_date)
    return await aggregate_with_template(
        CLUSTERS_COLLECTION,
        CUSTOMERS_WITH_SCANS_BETWEEN_DATES,
        limit=limit,
        skip=skip,
        from_date=from_date,
        to_date=to_date,
    )


@router.get("/customers")
async def get_customers(
    request: Request, identity: Identity = Depends(authenticate_admin)
) -> list[dict[str, object]]:
    params = request.query_params
    query = query_params_to_filter(
        ((key, params.getlist(key)) for key in params), flat_query_config()
    )
    if query is None:
        raise BadRequestException("must provide query params")
    find_options = FindOptions(filter=query)
    if projection := params.get(PROJECTION_PARAM):
        find_options.projection.include(*projection.split(","))
    ctx = admin_context(identity, CUSTOMERS_COLLECTION, request)
    return await queries.admin_find(ctx, find_options)


@router.delete("/customers")
async def delete_customers_data(
    request: Request, identity: Identity = Depends(authenticate_admin)
) -> dict[str, int]:
    """
    Purge tenants and every document they own.

    Raises:
        TenantPurgeError: If some collections could not be purged

    """
    tenant_ids = [value for value in request.query_params.getlist(CUSTOMERS_PARAM) if value]
    if not tenant_ids:
        raise BadRequestException(required_query_param(CUSTOMERS_PARAM))
    deleted = await queries.admin_delete_tenants_docs(*tenant_ids)
    logger.info(
        "%d documents of %d tenants deleted by admin %s",
        deleted,
        len(tenant_ids),
        identity.tenant_id,
    )
    return {"deleted": deleted}


@router.put("/updateVulnerabilityExceptionsSeverity")
async def update_vulnerability_exceptions_severity(
    payload: VulnerabilityExceptionsSeverityUpdate,
    identity: Identity = Depends(authenticate_admin),
) -> dict[str, int]:
    ctx = admin_context(identity, VULNERABILITY_EXCEPTION_POLICY_COLLECTION)
    updated = await queries.admin_update_many(
        ctx,
        FilterBuilder().with_in("vulnerabilities.name", payload.cves),
        get_set_field_command("vulnerabilities.$.severityScore", payload.severity_score),
    )
    return {"updatedCount": updated}


@router.put("/updatePostureExceptionsSeverity")
async def update_posture_exceptions_severity(
    payload: PostureExceptionsSeverityUpdate,
    identity: Identity = Depends(authenticate_admin),
) -> dict[str, int]:
    ctx = admin_context(identity, POSTURE_EXCEPTION_POLICY_COLLECTION)
    updated = await queries.admin_update_many(
        ctx,
        FilterBuilder().with_in("posturePolicies.controlID", payload.control_ids),
        get_set_field_command("posturePolicies.$.severityScore", payload.severity_score),
    )
    return {"updatedCount": updated}


def _require_admin_handler(ctx: RequestContext, path: str) -> None:
    if get_admin_handler(ctx.collection) is None:
        raise NotFoundException(f"no query handler for path /{path}")


@router.post("/{path}/query", response_model=None)
async def admin_search_collection(
    path: str, request: Request, identity: Identity = Depends(authenticate_admin)
) -> dict[str, object]:
    ctx = path_context(identity, path, request)
    _require_admin_handler(ctx, path)
    return await services.search(ctx, await services.read_model(request, V2ListRequest))


@router.delete("/{path}/query")
async def admin_delete_collection(
    path: str, request: Request, identity: Identity = Depends(authenticate_admin)
) -> dict[str, int]:
    ctx = path_context(identity, path, request)
    _require_admin_handler(ctx, path)
    return await services.delete_by_query(
        ctx, await services.read_model(request, V2ListRequest)
    )


@router.post("/{path}/uniqueValues", response_model=None)
async def admin_aggregate_collection(
    path: str, request: Request, identity: Identity = Depends(authenticate_admin)
) -> dict[str, object]:
    ctx = path_context(identity, path, request)
    return await services.unique_values(
        ctx, await services.read_model(request, UniqueValuesRequest)
    )
