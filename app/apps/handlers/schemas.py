"""Request and response bodies of the generic search endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class V2ListRequest(BaseModel):
    """Paginated search request."""

    model_config = ConfigDict(populate_by_name=True)

    page_size: int | None = Field(None, alias="pageSize")
    page_num: int | None = Field(None, alias="pageNum")
    order_by: str = Field("", alias="orderBy")
    fields_list: list[str] = Field(default_factory=list, alias="fieldsList")
    since: datetime | None = None
    until: datetime | None = None
    inner_filters: list[dict[str, str]] = Field(
        default_factory=list, alias="innerFilters"
    )


class UniqueValuesRequest(BaseModel):
    """Unique values request; ``fields`` keys are the grouping fields."""

    model_config = ConfigDict(populate_by_name=True)

    fields: dict[str, str] = Field(default_factory=dict)
    page_size: int | None = Field(None, alias="pageSize")
    page_num: int | None = Field(None, alias="pageNum")
    since: datetime | None = None
    until: datetime | None = None
    inner_filters: list[dict[str, str]] = Field(
        default_factory=list, alias="innerFilters"
    )
