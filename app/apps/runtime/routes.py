"""Runtime incident, alert and incident policy routes."""

from apps.handlers.routes import POLICY_NAME_PARAM, RouterOptions, add_routes
from db.schema import FieldType, SchemaInfo

from .models import RELATED_ALERTS_FIELD, IncidentPolicy, RuntimeIncident
from .validators import incident_update_resolve_day_date

RUNTIME_INCIDENT_PATH = "/runtimeIncident"
RUNTIME_ALERT_PATH = "/runtimeAlert"
RUNTIME_INCIDENT_COLLECTION = "runtime_incidents"
RUNTIME_INCIDENT_POLICY_PATH = "/runtimeIncidentPolicy"
RUNTIME_INCIDENT_POLICY_COLLECTION = "runtime_incident_policies"

INCIDENT_FIELDS_TYPE = {
    "creationTimestamp": FieldType.DATE,
    "seenAt": FieldType.DATE,
    "timestamp": FieldType.DATE,
    f"{RELATED_ALERTS_FIELD}.timestamp": FieldType.DATE,
}

incident_router = add_routes(
    RouterOptions(
        path=RUNTIME_INCIDENT_PATH,
        db_collection=RUNTIME_INCIDENT_COLLECTION,
        model=RuntimeIncident,
        schema=SchemaInfo(
            array_paths=(RELATED_ALERTS_FIELD, "relatedResources"),
            fields_type={
                **INCIDENT_FIELDS_TYPE,
                "creationDayDate": FieldType.DATE,
                "resolveDayDate": FieldType.DATE,
            },
            timestamp_field_name="creationTimestamp",
            must_exclude_fields=(
                RELATED_ALERTS_FIELD,
                "creationDayDate",
                "resolveDayDate",
            ),
        ),
        serve_get_names_list=False,
        validate_post_unique_name=False,
        put_validators=[incident_update_resolve_day_date],
        serve_post_v2_list=True,
    )
)

# alerts are read only, through the incident holding them
alert_router = add_routes(
    RouterOptions(
        path=RUNTIME_ALERT_PATH,
        db_collection=RUNTIME_INCIDENT_COLLECTION,
        schema=SchemaInfo(
            array_paths=(RELATED_ALERTS_FIELD, "relatedResources"),
            fields_type=INCIDENT_FIELDS_TYPE,
            timestamp_field_name="timestamp",
            nested_doc_path=RELATED_ALERTS_FIELD,
        ),
        serve_get=False,
        serve_get_names_list=False,
        serve_post=False,
        serve_put=False,
        serve_delete=False,
        serve_post_v2_list=True,
    )
)

incident_policy_router = add_routes(
    RouterOptions(
        path=RUNTIME_INCIDENT_POLICY_PATH,
        db_collection=RUNTIME_INCIDENT_POLICY_COLLECTION,
        model=IncidentPolicy,
        schema=SchemaInfo(
            array_paths=(
                "notifications",
                "actions",
                "scope.riskFactors",
                "scope.designators",
                "incidentTypeIDs",
                "managedRuleSetIDs",
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

routers = [incident_router, alert_router, incident_policy_router]
