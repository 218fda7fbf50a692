"""References between external tickets and scanned objects."""

from pydantic import BaseModel, ConfigDict, Field

from apps.base.models import BaseDocument


class RelatedObject(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    cve_id: str | None = Field(None, alias="cveID")
    severity: str | None = None
    component: str | None = None


class IntegrationReference(BaseDocument):
    provider: str | None = None
    type: str | None = None
    related_objects: list[RelatedObject] | None = Field(None, alias="relatedObjects")
