"""Notification configuration stored inside the tenant record."""

from fastapi import Request

from apps.base.context import RequestContext
from apps.base.exceptions import BadRequestException, InternalException, missing_key
from apps.handlers import services
from apps.handlers.routes import ContainerHandler, ContainerType, RouterOptions, add_routes

from .models import (
    NOTIFICATIONS_CONFIG_FIELD,
    Customer,
    NotificationConfigIdentifier,
    NotificationsConfig,
    PushReport,
)

NOTIFICATION_CONFIG_PATH = "/customer/notificationConfig"
CUSTOMERS_COLLECTION = "customers"
UNSUBSCRIBE_PATH_PREFIX = f"{NOTIFICATIONS_CONFIG_FIELD}.unsubscribedUsers."
LATEST_PUSH_REPORTS_PREFIX = f"{NOTIFICATIONS_CONFIG_FIELD}.latestPushReports."


async def decode_notification_config(
    request: Request, ctx: RequestContext
) -> list[Customer]:
    """Wrap the notification configuration into the tenant record; no bulk updates."""
    body = await services.read_body(request)
    if not isinstance(body, dict):
        raise BadRequestException("notification config must be a single object")
    config = NotificationsConfig.model_validate(body)
    return [Customer(guid=ctx.tenant_id, notifications_config=config)]


def customer_to_notification_config(customer: dict[str, object]) -> dict[str, object]:
    return customer.get(NOTIFICATIONS_CONFIG_FIELD) or {}


def send_notification_config(
    ctx: RequestContext,
    doc: dict[str, object] | None,
    docs: list[dict[str, object]] | None,
) -> object:
    """Respond with the configuration; a ``PUT`` returns the old and the new one."""
    if ctx.method == "PUT":
        if not docs or len(docs) != 2:
            raise InternalException("unexpected document array response in PUT")
        return [customer_to_notification_config(customer) for customer in docs]
    if doc is None:
        raise InternalException("unexpected nil document response")
    return customer_to_notification_config(doc)


async def unsubscribe_extractor(
    request: Request, ctx: RequestContext
) -> tuple[str, str, list[object]]:
    user_id = request.path_params.get("userId", "")
    if not user_id:
        raise BadRequestException(missing_key("userId"))
    body = await services.read_body(request)
    items = body if isinstance(body, list) else [body]
    identifiers = []
    for item in items:
        if not isinstance(item, dict):
            raise BadRequestException(missing_key("notificationId"))
        identifier = NotificationConfigIdentifier.model_validate(item)
        if not identifier.notification_type:
            raise BadRequestException(missing_key("notificationId"))
        identifiers.append(identifier.model_dump(by_alias=True, exclude_none=True))
    return ctx.tenant_id, UNSUBSCRIBE_PATH_PREFIX + user_id, identifiers


async def latest_push_report_extractor(
    request: Request, ctx: RequestContext
) -> tuple[str, str, list[object]]:
    cluster_name = request.path_params.get("clusterName", "")
    if not cluster_name:
        raise BadRequestException(missing_key("clusterName"))
    report = PushReport()
    if request.method == "PUT":
        report = PushReport.model_validate(await services.read_body(request) or {})
    values = [report.model_dump(by_alias=True, exclude_none=True)]
    return ctx.tenant_id, LATEST_PUSH_REPORTS_PREFIX + cluster_name, values


router = add_routes(
    RouterOptions(
        path=NOTIFICATION_CONFIG_PATH,
        db_collection=CUSTOMERS_COLLECTION,
        model=Customer,
        serve_get_with_guid_only=True,
        put_fields=(NOTIFICATIONS_CONFIG_FIELD, "updatedTime"),
        serve_post=False,
        serve_delete=False,
        body_decoder=decode_notification_config,
        response_sender=send_notification_config,
        container_handlers=[
            ContainerHandler(
                "/unsubscribe/{userId}", unsubscribe_extractor, ContainerType.ARRAY
            ),
            ContainerHandler(
                "/latestPushReport/{clusterName}",
                latest_push_report_extractor,
                ContainerType.MAP,
            ),
        ],
    )
)
