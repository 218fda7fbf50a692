"""Cluster documents."""

from typing import ClassVar, Self

from pydantic import Field

from apps.base.models import CLUSTER_READ_ONLY_FIELDS, BaseDocument
from db.utils import now_rfc3339


class Cluster(BaseDocument):
    """Cluster registered by a tenant; ``subscription_date`` is set on insert."""

    read_only_fields: ClassVar[tuple[str, ...]] = CLUSTER_READ_ONLY_FIELDS

    subscription_date: str | None = Field(None, description="RFC 3339 subscription time")
    last_report_date: str | None = Field(
        None, alias="lastReportDate", description="RFC 3339 time of the latest scan"
    )

    def init_new(self) -> Self:
        super().init_new()
        self.subscription_date = now_rfc3339()
        return self
