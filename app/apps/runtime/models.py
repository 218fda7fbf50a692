"""Runtime incidents, their alerts and incident policies."""

from datetime import UTC, datetime
from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import (
    RUNTIME_INCIDENT_READ_ONLY_FIELDS,
    BaseDocument,
    RenamableDocument,
)

RELATED_ALERTS_FIELD = "relatedAlerts"


def day_start(value: datetime) -> datetime:
    value = value.astimezone(UTC)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


class RuntimeAlert(BaseModel):
    """Alert element of an incident ``relatedAlerts`` array."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    alert_name: str | None = Field(None, alias="alertName")
    rule_id: str | None = Field(None, alias="ruleID")
    message: str | None = None
    timestamp: datetime | None = None


class RuntimeIncident(BaseDocument):
    """
    Incident raised by the runtime detection.

    Date fields are stored as BSON dates so they can be queried by range.
    """

    read_only_fields: ClassVar[tuple[str, ...]] = RUNTIME_INCIDENT_READ_ONLY_FIELDS

    creation_timestamp: datetime | None = Field(None, alias="creationTimestamp")
    creation_day_date: datetime | None = Field(None, alias="creationDayDate")
    resolve_day_date: datetime | None = Field(None, alias="resolveDayDate")
    seen_at: datetime | None = Field(None, alias="seenAt")
    severity: str | None = None
    is_dismissed: bool | None = Field(None, alias="isDismissed")
    related_alerts: list[RuntimeAlert] | None = Field(None, alias=RELATED_ALERTS_FIELD)
    related_resources: list[dict[str, object]] | None = Field(
        None, alias="relatedResources"
    )

    def init_new(self) -> Self:
        super().init_new()
        if self.creation_timestamp is None:
            self.creation_timestamp = datetime.now(UTC)
        self.creation_day_date = day_start(self.creation_timestamp)
        return self

    def get_read_only_fields(self) -> list[str]:
        fields = super().get_read_only_fields()
        # an empty alert list would wipe the stored alerts
        if self.related_alerts is not None and not self.related_alerts:
            fields.append(RELATED_ALERTS_FIELD)
        return fields


class IncidentPolicy(RenamableDocument):
    scope: dict[str, object] | None = None
    enabled: bool | None = None
    incident_type_ids: list[str] | None = Field(None, alias="incidentTypeIDs")
    managed_rule_set_ids: list[str] | None = Field(None, alias="managedRuleSetIDs")
    notifications: list[dict[str, object]] | None = None
    actions: list[dict[str, object]] | None = None
