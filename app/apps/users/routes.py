"""User routes."""

from apps.handlers.routes import RouterOptions, add_routes

from .models import User

USER_PATH = "/users"
USER_COLLECTION = "users"

router = add_routes(
    RouterOptions(
        path=USER_PATH,
        db_collection=USER_COLLECTION,
        model=User,
        serve_get_names_list=False,
        serve_get_with_guid_only=True,
        validate_post_unique_name=False,
    )
)
