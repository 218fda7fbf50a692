"""Tenant records and their notification configuration."""

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import BaseDocument

NOTIFICATIONS_CONFIG_FIELD = "notifications_config"


class NotificationConfigIdentifier(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    notification_type: str = Field("", alias="notificationType")


class PushReport(BaseModel):
    """Latest report pushed to the tenant for one cluster."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    report_guid: str | None = Field(None, alias="reportGUID")
    timestamp: str | None = None


class NotificationsConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    unsubscribed_users: dict[str, list[NotificationConfigIdentifier]] | None = Field(
        None, alias="unsubscribedUsers"
    )
    latest_push_reports: dict[str, PushReport] | None = Field(
        None, alias="latestPushReports"
    )
    alert_channels: list[dict[str, object]] | None = Field(None, alias="alertChannels")


class Customer(BaseDocument):
    """Tenant record; its id is the tenant id."""

    description: str | None = None
    email: str | None = None
    license_type: str | None = Field(None, alias="licenseType")
    notifications_config: NotificationsConfig | None = Field(
        None, alias=NOTIFICATIONS_CONFIG_FIELD
    )
