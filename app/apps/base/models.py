"""Base pydantic model shared by every stored document."""

from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from db.utils import now_rfc3339

ATTRIBUTES_FIELD = "attributes"
SHORT_NAME_ATTRIBUTE = "alias"
SHORT_NAME_FIELD = f"{ATTRIBUTES_FIELD}.{SHORT_NAME_ATTRIBUTE}"

BASE_READ_ONLY_FIELDS: tuple[str, ...] = ("_id", "guid")
COMMON_READ_ONLY_FIELDS: tuple[str, ...] = ("name", *BASE_READ_ONLY_FIELDS)
V1_READ_ONLY_FIELDS: tuple[str, ...] = ("creationTime", *COMMON_READ_ONLY_FIELDS)
ALLOW_RENAME_READ_ONLY_FIELDS: tuple[str, ...] = (
    "creationTime",
    *BASE_READ_ONLY_FIELDS,
)
CLUSTER_READ_ONLY_FIELDS: tuple[str, ...] = (
    "subscription_date",
    *COMMON_READ_ONLY_FIELDS,
)
REPOSITORY_READ_ONLY_FIELDS: tuple[str, ...] = (
    "creationDate",
    *COMMON_READ_ONLY_FIELDS,
)
REGISTRY_CRON_JOB_READ_ONLY_FIELDS: tuple[str, ...] = (
    "creationTime",
    "clusterName",
    "registryName",
    *COMMON_READ_ONLY_FIELDS,
)
ATTACK_CHAIN_READ_ONLY_FIELDS: tuple[str, ...] = (
    "creationTime",
    "customerGUID",
    "clusterName",
    *V1_READ_ONLY_FIELDS,
)
RUNTIME_INCIDENT_READ_ONLY_FIELDS: tuple[str, ...] = (
    "creationTimestamp",
    "creationDayDate",
    *V1_READ_ONLY_FIELDS,
)


class BaseDocument(BaseModel):
    """
    Payload of a stored document.

    Unknown fields are kept as extra payload so every collection can carry its
    own shape. Only fields that were actually sent (or set by a hook) are
    written back to the store.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    read_only_fields: ClassVar[tuple[str, ...]] = V1_READ_ONLY_FIELDS

    guid: str | None = Field(None, description="Document identifier")
    name: str | None = Field(None, description="Human readable name")
    attributes: dict[str, object] | None = Field(
        None, description="Free form attribute bag"
    )
    creation_time: str | None = Field(
        None, alias="creationTime", description="RFC 3339 creation time"
    )
    updated_time: str | None = Field(
        None, alias="updatedTime", description="RFC 3339 last update time"
    )

    def init_new(self) -> Self:
        """Stamp a document that is about to be inserted."""
        self.creation_time = now_rfc3339()
        return self

    def get_read_only_fields(self) -> list[str]:
        return list(self.read_only_fields)

    def set_updated_time(self, value: str | None = None) -> Self:
        self.updated_time = value or now_rfc3339()
        return self

    def get_name(self) -> str:
        return self.name or ""

    def set_name(self, name: str) -> Self:
        self.name = name
        return self

    def get_attributes(self) -> dict[str, object]:
        if self.attributes is None:
            self.attributes = {}
        return self.attributes

    def to_document(self) -> dict[str, object]:
        """Dump set fields by alias, extra payload included."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class CommonDocument(BaseDocument):
    """Document whose name is fixed at creation."""

    read_only_fields: ClassVar[tuple[str, ...]] = COMMON_READ_ONLY_FIELDS


class RenamableDocument(BaseDocument):
    """Document that may be renamed after creation."""

    read_only_fields: ClassVar[tuple[str, ...]] = ALLOW_RENAME_READ_ONLY_FIELDS
