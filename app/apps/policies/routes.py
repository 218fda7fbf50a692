"""Routes of the policy collections."""

from apps.handlers.routes import add_policy_routes
from apps.handlers.scope_query import default_query_config, flat_query_config

from .models import (
    CollaborationConfig,
    Framework,
    PostureExceptionPolicy,
    VulnerabilityExceptionPolicy,
)

POSTURE_EXCEPTION_POLICY_PATH = "/v1_posture_exception_policy"
POSTURE_EXCEPTION_POLICY_COLLECTION = "v1_posture_exception_policies"
VULNERABILITY_EXCEPTION_POLICY_PATH = "/v1_vulnerability_exception_policy"
VULNERABILITY_EXCEPTION_POLICY_COLLECTION = "v1_vulnerability_exception_policies"
FRAMEWORK_PATH = "/v1_opa_framework"
FRAMEWORK_COLLECTION = "v1_opa_frameworks"
FRAMEWORK_NAME_PARAM = "frameworkName"
COLLABORATION_CONFIG_PATH = "/collaborationConfig"
COLLABORATION_CONFIG_COLLECTION = "v1_collaboration_configs"

posture_exception_router = add_policy_routes(
    POSTURE_EXCEPTION_POLICY_PATH,
    POSTURE_EXCEPTION_POLICY_COLLECTION,
    PostureExceptionPolicy,
    default_query_config(),
)

vulnerability_exception_router = add_policy_routes(
    VULNERABILITY_EXCEPTION_POLICY_PATH,
    VULNERABILITY_EXCEPTION_POLICY_COLLECTION,
    VulnerabilityExceptionPolicy,
    default_query_config(),
)

framework_router = add_policy_routes(
    FRAMEWORK_PATH,
    FRAMEWORK_COLLECTION,
    Framework,
    default_query_config(),
    name_param=FRAMEWORK_NAME_PARAM,
)

collaboration_config_router = add_policy_routes(
    COLLABORATION_CONFIG_PATH,
    COLLABORATION_CONFIG_COLLECTION,
    CollaborationConfig,
    flat_query_config(),
    allow_rename=True,
)

routers = [
    posture_exception_router,
    vulnerability_exception_router,
    framework_router,
    collaboration_config_router,
]
