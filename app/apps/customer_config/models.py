"""Tenant and cluster level configuration."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import BaseDocument

CLUSTER_SCOPE_ATTRIBUTE = "cluster"


class ConfigScope(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    attributes: dict[str, str] | None = None


class CustomerConfig(BaseDocument):
    """
    Configuration document.

    A cluster configuration is named after the cluster of its scope.
    """

    scope: ConfigScope | None = None
    settings: dict[str, object] | None = Field(
        None, description="Settings merged over the default configuration"
    )

    def _scope_cluster(self) -> str:
        if self.scope is None or not self.scope.attributes:
            return ""
        return self.scope.attributes.get(CLUSTER_SCOPE_ATTRIBUTE) or ""

    def get_name(self) -> str:
        return self.name or self._scope_cluster()

    def init_new(self) -> Self:
        super().init_new()
        if cluster := self._scope_cluster():
            self.name = cluster
        return self
