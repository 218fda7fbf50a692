"""Cluster routes."""

from apps.handlers.routes import RouterOptions, add_routes
from apps.handlers.scope_query import default_query_config
from apps.handlers.validators import name_value
from db.schema import SchemaInfo

from .models import Cluster

CLUSTER_PATH = "/cluster"
CLUSTERS_COLLECTION = "clusters"

router = add_routes(
    RouterOptions(
        path=CLUSTER_PATH,
        db_collection=CLUSTERS_COLLECTION,
        model=Cluster,
        schema=SchemaInfo(timestamp_field_name="subscription_date"),
        name_query_param="name",
        query_config=default_query_config(),
        unique_short_name=name_value,
        serve_post_v2_list=True,
    )
)
