"""Source repositories, container image registries and registry scan jobs."""

from datetime import UTC, datetime
from typing import ClassVar, Self

from pydantic import Field

from apps.base.models import (
    REGISTRY_CRON_JOB_READ_ONLY_FIELDS,
    REPOSITORY_READ_ONLY_FIELDS,
    BaseDocument,
)
from db.utils import now_rfc3339


class Repository(BaseDocument):
    read_only_fields: ClassVar[tuple[str, ...]] = REPOSITORY_READ_ONLY_FIELDS

    provider: str | None = None
    owner: str | None = None
    repo_name: str | None = Field(None, alias="repoName")
    branch_name: str | None = Field(None, alias="branchName")
    creation_date: str | None = Field(None, alias="creationDate")

    def init_new(self) -> Self:
        super().init_new()
        self.creation_date = now_rfc3339()
        return self


def repo_name_value(doc: BaseDocument) -> str:
    return getattr(doc, "repo_name", None) or ""


class RegistryCronJob(BaseDocument):
    """Periodic scan of a container registry from one cluster."""

    read_only_fields: ClassVar[tuple[str, ...]] = REGISTRY_CRON_JOB_READ_ONLY_FIELDS

    cluster_name: str | None = Field(None, alias="clusterName")
    registry_name: str | None = Field(None, alias="registryName")
    cron_tab_schedule: str | None = Field(None, alias="cronTabSchedule")
    include: list[str] | None = None
    exclude: list[str] | None = None


class ContainerImageRegistry(BaseDocument):
    """
    Connection to a container image registry.

    Creation and update times are BSON dates so they can be searched by range.
    """

    creation_time: datetime | None = Field(None, alias="creationTime")
    updated_time: datetime | None = Field(None, alias="updatedTime")
    provider: str | None = None
    cluster_name: str | None = Field(None, alias="clusterName")
    scan_frequency: str | None = Field(None, alias="scanFrequency")
    resource_hash: str | None = Field(None, alias="resourceHash")

    def init_new(self) -> Self:
        self.creation_time = datetime.now(UTC)
        return self

    def set_updated_time(self, value: datetime | None = None) -> Self:
        self.updated_time = value or datetime.now(UTC)
        return self
