"""Cloud account credentials."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import CLUSTER_READ_ONLY_FIELDS, BaseDocument


class Credentials(BaseModel):
    """Provider secrets; only the encrypted forms are ever stored."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    regions: list[str] | None = None
    services: list[dict[str, object]] | None = None


class CloudCredentials(BaseDocument):
    read_only_fields: ClassVar[tuple[str, ...]] = CLUSTER_READ_ONLY_FIELDS

    provider: str | None = None
    account_id: str | None = Field(None, alias="accountID")
    enabled: bool | None = None
    credentials: Credentials | None = None
