from pydantic import Field

from apps.base.models import RenamableDocument


class Workflow(RenamableDocument):
    """Notification workflow triggered by matching conditions."""

    enabled: bool | None = None
    scope: list[dict[str, object]] | None = None
    conditions: list[dict[str, object]] | None = None
    notifications: list[dict[str, object]] | None = None
    updated_by: str | None = Field(None, alias="updatedBy")
