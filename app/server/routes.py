"""Router assembly and error mapping of the HTTP surface."""

import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from apps.admin.routes import router as admin_router
from apps.attack_chains.routes import router as attack_chains_router
from apps.base.exceptions import GUID_EXISTS, BaseHTTPException
from apps.cloud_credentials.routes import router as cloud_credentials_router
from apps.cluster.routes import router as cluster_router
from apps.customer.routes import router as customer_router
from apps.customer_config.routes import router as customer_config_router
from apps.handlers.query_translator import QueryError
from apps.integration_reference.routes import router as integration_reference_router
from apps.notifications_cache.routes import routers as notifications_routers
from apps.policies.routes import routers as policy_routers
from apps.repository.routes import routers as repository_routers
from apps.runtime.routes import routers as runtime_routers
from apps.users.routes import router as users_router
from apps.workflows.routes import router as workflows_router
from db.errors import (
    ContextError,
    NoFieldsToUpdateError,
    TenantPurgeError,
    UnknownTemplateError,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "internal server error"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def http_exception_handler(request: Request, exc: BaseHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("bad request %s %s: %s", request.method, request.url.path, exc)
    return error_response(400, str(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return error_response(400, f"failed to bind json: {'; '.join(messages)}")


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.info("duplicate key on %s: %s", request.url.path, exc)
    return error_response(409, GUID_EXISTS)


async def purge_error_handler(request: Request, exc: TenantPurgeError) -> JSONResponse:
    logger.error("tenant purge failed after %d deletions: %s", exc.deleted, exc.errors)
    return error_response(500, f"deleted: {exc.deleted}, errors: {exc}")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "internal error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(500, INTERNAL_ERROR)


def collection_routers() -> list[APIRouter]:
    return [
        cluster_router,
        *policy_routers,
        *repository_routers,
        customer_router,
        customer_config_router,
        *runtime_routers,
        integration_reference_router,
        *notifications_routers,
        cloud_credentials_router,
        attack_chains_router,
        workflows_router,
        users_router,
    ]


def setup_routes(app: FastAPI, prefix: str = "") -> None:
    """Include every router and register the error mapping."""
    server_router = APIRouter()
    for router in [admin_router, *collection_routers()]:
        server_router.include_router(router)
    app.include_router(server_router, prefix=prefix)

    app.add_exception_handler(BaseHTTPException, http_exception_handler)
    app.add_exception_handler(QueryError, bad_request_handler)
    app.add_exception_handler(NoFieldsToUpdateError, bad_request_handler)
    app.add_exception_handler(ValidationError, request_validation_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(TenantPurgeError, purge_error_handler)
    for error in (PyMongoError, ContextError, UnknownTemplateError, ExceptionGroup):
        app.add_exception_handler(error, internal_error_handler)
