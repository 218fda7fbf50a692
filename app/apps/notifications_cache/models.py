"""Per user notification cache entries and aggregated vulnerability notifications."""

from datetime import datetime, timedelta

from pydantic import Field

from apps.base.models import BaseDocument


class Cache(BaseDocument):
    """
    Cache entry removed by the store once ``expiryTime`` has passed.

    ``ttl`` is accepted on input only and is never stored.
    """

    data_type: str | None = Field(None, alias="dataType")
    data: object | None = None
    ttl: timedelta | None = Field(None, exclude=True)
    expiry_time: datetime | None = Field(None, alias="expiryTime")


class AggregatedVulnerability(BaseDocument):
    """Vulnerability notification aggregated over the workloads it affects."""

    cve_id: str | None = Field(None, alias="cveID")
    severity: str | None = None
    cluster: str | None = None
    namespace: str | None = None
    notification_type: str | None = Field(None, alias="notificationType")
    workloads: list[dict[str, object]] | None = None
    images: list[str] | None = None
    wlids: list[str] | None = None
