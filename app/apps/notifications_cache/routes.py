"""Users notifications cache and vulnerability notification routes."""

from datetime import timedelta

from apps.handlers.routes import RouterOptions, add_routes
from apps.handlers.validators import validate_cache_ttl
from db.schema import SchemaInfo

from .models import AggregatedVulnerability, Cache

USERS_NOTIFICATIONS_CACHE_PATH = "/usersNotificationsCache"
USERS_NOTIFICATIONS_CACHE_COLLECTION = "users_notifications_cache"
USERS_NOTIFICATIONS_VULNERABILITIES_PATH = "/usersNotificationsVulnerabilities"
USERS_NOTIFICATIONS_VULNERABILITIES_COLLECTION = "users_notifications_vulnerabilities"
DEFAULT_TTL = timedelta(days=90)

ttl_validator = validate_cache_ttl(DEFAULT_TTL)

cache_router = add_routes(
    RouterOptions(
        path=USERS_NOTIFICATIONS_CACHE_PATH,
        db_collection=USERS_NOTIFICATIONS_CACHE_COLLECTION,
        model=Cache,
        serve_get_names_list=False,
        validate_post_unique_name=False,
        post_validators=[ttl_validator],
        put_validators=[ttl_validator],
        serve_post_v2_list=True,
    )
)

vulnerabilities_router = add_routes(
    RouterOptions(
        path=USERS_NOTIFICATIONS_VULNERABILITIES_PATH,
        db_collection=USERS_NOTIFICATIONS_VULNERABILITIES_COLLECTION,
        model=AggregatedVulnerability,
        schema=SchemaInfo(array_paths=("workloads", "images", "wlids")),
        serve_get_names_list=False,
        validate_post_unique_name=False,
        serve_post_v2_list=True,
    )
)

routers = [cache_router, vulnerabilities_router]
