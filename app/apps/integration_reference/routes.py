"""Integration reference routes."""

from apps.handlers.routes import RouterOptions, add_routes
from db.schema import SchemaInfo

from .models import IntegrationReference

INTEGRATION_REFERENCE_PATH = "/integrationReference"
INTEGRATION_REFERENCE_COLLECTION = "integration_references"

router = add_routes(
    RouterOptions(
        path=INTEGRATION_REFERENCE_PATH,
        db_collection=INTEGRATION_REFERENCE_COLLECTION,
        model=IntegrationReference,
        schema=SchemaInfo(array_paths=("relatedObjects",)),
        serve_get_names_list=False,
        validate_post_unique_name=False,
        serve_post_v2_list=True,
    )
)
