"""Attack chain state of a cluster."""

from typing import ClassVar

from pydantic import Field

from apps.base.models import ATTACK_CHAIN_READ_ONLY_FIELDS, BaseDocument


class AttackChain(BaseDocument):
    read_only_fields: ClassVar[tuple[str, ...]] = ATTACK_CHAIN_READ_ONLY_FIELDS

    attack_chain_id: str | None = Field(None, alias="attackChainID")
    customer_guid: str | None = Field(None, alias="customerGUID")
    cluster_name: str | None = Field(None, alias="clusterName")
    latest_report_guid: str | None = Field(None, alias="latestReportGUID")
    ui_status: dict[str, object] | None = Field(None, alias="uiStatus")
