"""Request scoped context shared by handlers and the document store layer."""

import dataclasses
from collections.abc import Awaitable, Callable

from db.errors import ContextError
from db.schema import SchemaInfo

BodyDecoder = Callable[..., Awaitable[list]]
ResponseSender = Callable[..., object]


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """
    Everything a request carries down to the store.

    Attributes:
        tenant_id: Tenant resolved by authentication
        collection: Collection served by the route group
        schema: Schema descriptor of the collection
        admin: Whether the caller was granted admin access
        base_doc_id: Parent document id for nested collections
        put_fields: Whitelist of updatable field prefixes
        body_decoder: Custom request body decoder
        response_sender: Custom response serializer
        method: HTTP method of the request
        path_guid: Document id taken from the URL path

    """

    tenant_id: str = ""
    collection: str = ""
    schema: SchemaInfo = dataclasses.field(default_factory=SchemaInfo)
    admin: bool = False
    base_doc_id: str = ""
    put_fields: tuple[str, ...] = ()
    body_decoder: BodyDecoder | None = None
    response_sender: ResponseSender | None = None
    method: str = ""
    path_guid: str = ""

    def replace(self, **changes: object) -> "RequestContext":
        return dataclasses.replace(self, **changes)

    def require(self) -> tuple[str, str]:
        """
        Return the collection and tenant, failing when either is missing.

        Raises:
            ContextError: If the collection or the tenant is not set

        """
        missing = [
            name
            for name, value in (
                ("collection", self.collection),
                ("tenant", self.tenant_id),
            )
            if not value
        ]
        if missing:
            raise ContextError(f"{' and '.join(missing)} not in request context")
        return self.collection, self.tenant_id
