"""Repository, container image registry and registry cron job routes."""

from apps.handlers.routes import RouterOptions, add_routes
from apps.handlers.scope_query import flat_query_config
from db.schema import FieldType, SchemaInfo

from .models import ContainerImageRegistry, RegistryCronJob, Repository, repo_name_value

REPOSITORY_PATH = "/v1_repository"
REPOSITORY_COLLECTION = "v1_repositories"
REGISTRY_CRON_JOB_PATH = "/registryCronJob"
REGISTRY_CRON_JOB_COLLECTION = "v1_registry_cron_jobs"
CONTAINER_IMAGE_REGISTRY_PATH = "/containerImageRegistry"
CONTAINER_IMAGE_REGISTRY_COLLECTION = "container_image_registries"

repository_router = add_routes(
    RouterOptions(
        path=REPOSITORY_PATH,
        db_collection=REPOSITORY_COLLECTION,
        model=Repository,
        schema=SchemaInfo(timestamp_field_name="creationDate"),
        name_query_param="name",
        unique_short_name=repo_name_value,
        serve_post_v2_list=True,
    )
)

registry_cron_job_router = add_routes(
    RouterOptions(
        path=REGISTRY_CRON_JOB_PATH,
        db_collection=REGISTRY_CRON_JOB_COLLECTION,
        model=RegistryCronJob,
        schema=SchemaInfo(timestamp_field_name="updatedTime"),
        name_query_param="name",
        query_config=flat_query_config(),
        serve_delete_by_name=True,
    )
)

container_image_registry_router = add_routes(
    RouterOptions(
        path=CONTAINER_IMAGE_REGISTRY_PATH,
        db_collection=CONTAINER_IMAGE_REGISTRY_COLLECTION,
        model=ContainerImageRegistry,
        schema=SchemaInfo(
            fields_type={"creationTime": FieldType.DATE, "updatedTime": FieldType.DATE},
            timestamp_field_name="updatedTime",
        ),
        validate_post_unique_name=False,
        serve_post_v2_list=True,
    )
)

routers = [repository_router, registry_cron_job_router, container_image_registry_router]
