"""Tenant resolution and admin gating dependencies."""

import dataclasses
import logging

from fastapi import Request

from server.config import Settings

from .exceptions import NOT_ADMIN, UnauthorizedException

logger = logging.getLogger(__name__)

CUSTOMER_GUID = "customerGUID"
ADMIN_ACCESS = "adminAccess"


@dataclasses.dataclass(frozen=True)
class Identity:
    """Tenant resolved for the current request."""

    tenant_id: str
    admin: bool = False

    def is_admin(self) -> bool:
        return self.admin or self.tenant_id in Settings().admin_users


def parse_customer_cookie(value: str) -> Identity | None:
    """
    Parse a ``customerGUID`` cookie of the form ``<tenant>[;adminAccess]...``.

    Returns:
        The identity, or ``None`` when the cookie holds no tenant

    """
    parts = [part.strip() for part in value.split(";")]
    if not parts or not parts[0]:
        return None
    return Identity(tenant_id=parts[0], admin=ADMIN_ACCESS in parts[1:])


async def authenticate(request: Request) -> Identity:
    """
    Resolve the tenant from the cookie or the query string.

    Raises:
        UnauthorizedException: If no tenant can be resolved

    """
    identity = None
    if cookie := request.cookies.get(CUSTOMER_GUID):
        identity = parse_customer_cookie(cookie)
    if identity is None and (tenant_id := request.query_params.get(CUSTOMER_GUID)):
        identity = Identity(tenant_id=tenant_id)
    if identity is None:
        raise UnauthorizedException()
    return identity


async def authenticate_admin(request: Request) -> Identity:
    """Resolve the tenant and require admin rights."""
    identity = await authenticate(request)
    if not identity.is_admin():
        logger.warning("tenant %s denied admin access", identity.tenant_id)
        raise UnauthorizedException(NOT_ADMIN)
    return identity
