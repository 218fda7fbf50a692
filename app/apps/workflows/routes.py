"""Workflow routes."""

from apps.handlers.routes import POLICY_NAME_PARAM, RouterOptions, add_routes
from db.schema import SchemaInfo

from .models import Workflow

WORKFLOW_PATH = "/workflows"
WORKFLOW_COLLECTION = "workflows"

router = add_routes(
    RouterOptions(
        path=WORKFLOW_PATH,
        db_collection=WORKFLOW_COLLECTION,
        model=Workflow,
        schema=SchemaInfo(
            array_paths=(
                "scope",
                "conditions",
                "notifications",
                "notifications.teamsWebhookURLs",
                "notifications.slackChannels",
                "notifications.jiraTicketIdentifiers",
            ),
            timestamp_field_name="creationTime",
        ),
        name_query_param=POLICY_NAME_PARAM,
        serve_delete_by_name=True,
        validate_post_unique_name=False,
        validate_post_mandatory_name=True,
        serve_post_v2_list=True,
    )
)
