"""Cloud credentials routes."""

from apps.base.context import RequestContext
from apps.base.exceptions import BadRequestException, missing_key
from apps.base.models import BaseDocument
from apps.handlers.routes import RouterOptions, add_routes
from db.schema import SchemaInfo

from .models import CloudCredentials

CLOUD_CREDENTIALS_PATH = "/cloudCredentials"
CLOUD_CREDENTIALS_COLLECTION = "cloud_credentials"


async def validate_mandatory_fields(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    for doc in docs:
        for key, value in (
            ("provider", getattr(doc, "provider", None)),
            ("accountID", getattr(doc, "account_id", None)),
            ("name", doc.get_name()),
        ):
            if not value:
                raise BadRequestException(missing_key(key))
        if getattr(doc, "enabled", None) is None:
            raise BadRequestException(missing_key("enabled"))
    return docs


router = add_routes(
    RouterOptions(
        path=CLOUD_CREDENTIALS_PATH,
        db_collection=CLOUD_CREDENTIALS_COLLECTION,
        model=CloudCredentials,
        schema=SchemaInfo(array_paths=("credentials.regions", "credentials.services")),
        post_validators=[validate_mandatory_fields],
        serve_post_v2_list=True,
    )
)
