from pydantic import BaseModel, ConfigDict, Field


class VulnerabilityExceptionsSeverityUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cves: list[str] = Field(..., min_length=1, description="CVE names to update")
    severity_score: int = Field(..., alias="severityScore")


class PostureExceptionsSeverityUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    control_ids: list[str] = Field(
        ..., min_length=1, alias="controlIDs", description="Control ids to update"
    )
    severity_score: int = Field(..., alias="severityScore")
