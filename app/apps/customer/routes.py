"""Tenant record routes."""

import logging

from fastapi import APIRouter, Depends, Request

from apps.base.auth import Identity, authenticate
from apps.base.context import RequestContext
from apps.base.exceptions import GUID_REQUIRED, BadRequestException, NotFoundException
from apps.handlers import services
from db import queries
from db.indexes import register_collection
from db.update import get_update_doc_command

from .models import Customer
from .notification import CUSTOMERS_COLLECTION
from .notification import router as notification_router

logger = logging.getLogger(__name__)

TENANT_PATH = "/customer_tenant"
CUSTOMER_PATH = "/customer"

register_collection(CUSTOMERS_COLLECTION)
router = APIRouter(tags=["customer"])


async def customer_context(
    request: Request, identity: Identity = Depends(authenticate)
) -> RequestContext:
    return RequestContext(
        tenant_id=identity.tenant_id,
        collection=CUSTOMERS_COLLECTION,
        method=request.method,
    )


@router.post(TENANT_PATH, status_code=201)
async def create_tenant(request: Request) -> dict[str, object]:
    """
    Create a tenant record owned by itself.

    No authentication: the tenant does not exist yet.
    """
    docs = services.parse_documents(Customer, await services.read_body(request))
    if len(docs) != 1:
        raise BadRequestException("bulk tenant creation is not supported")
    customer = docs[0]
    if not customer.guid:
        raise BadRequestException(GUID_REQUIRED)
    ctx = RequestContext(tenant_id=customer.guid, collection=CUSTOMERS_COLLECTION)
    customer.init_new()
    customer.set_updated_time()
    inserted = await queries.insert_documents(ctx, [customer.to_document()])
    logger.info("tenant %s created", customer.guid)
    return inserted[0]


@router.get(CUSTOMER_PATH)
async def get_customer(ctx: RequestContext = Depends(customer_context)) -> dict[str, object]:
    customer = await queries.get_doc_by_guid(ctx, ctx.tenant_id)
    if customer is None:
        raise NotFoundException()
    return customer


@router.put(CUSTOMER_PATH)
async def update_customer(
    request: Request, ctx: RequestContext = Depends(customer_context)
) -> list[dict[str, object]]:
    body = await services.read_body(request)
    if not isinstance(body, dict):
        raise BadRequestException("tenant record must be a single object")
    customer = Customer.model_validate(body)
    customer.set_updated_time()
    update = get_update_doc_command(
        customer.to_document(), exclude_fields=customer.get_read_only_fields()
    )
    result = await queries.update_document(ctx, ctx.tenant_id, update)
    if result is None:
        raise NotFoundException()
    return result


@router.delete(CUSTOMER_PATH)
async def delete_customer(ctx: RequestContext = Depends(customer_context)) -> dict[str, int]:
    """Purge the tenant record and every document the tenant owns."""
    deleted = await queries.delete_tenant_docs(ctx)
    logger.info("tenant %s purged, %d documents deleted", ctx.tenant_id, deleted)
    return {"deleted": deleted}


router.include_router(notification_router)
