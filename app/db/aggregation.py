"""Pre-defined aggregation templates."""

import logging
from collections.abc import Callable

from server.config import Settings
from server.db import db_manager

from .errors import UnknownTemplateError
from .queries import to_output

logger = logging.getLogger(__name__)

CUSTOMERS_WITH_SCANS_BETWEEN_DATES = "customersWithScansBetweenDates"

PipelineBuilder = Callable[..., list[dict]]

_templates: dict[str, PipelineBuilder] = {}


def register_template(name: str) -> Callable[[PipelineBuilder], PipelineBuilder]:
    """Register a pipeline builder under a template name."""

    def decorator(builder: PipelineBuilder) -> PipelineBuilder:
        _templates[name] = builder
        return builder

    return decorator


def get_template(name: str) -> PipelineBuilder:
    try:
        return _templates[name]
    except KeyError:
        raise UnknownTemplateError(name) from None


@register_template(CUSTOMERS_WITH_SCANS_BETWEEN_DATES)
def customers_with_scans_between_dates(
    *, skip: int, limit: int, from_date: str, to_date: str
) -> list[dict]:
    """
    Tenants owning at least one cluster that reported inside the window.

    Args:
        skip: Number of tenants to skip
        limit: Maximum number of tenants to return
        from_date: Window start as an RFC 3339 string
        to_date: Window end as an RFC 3339 string

    """
    return [
        {"$match": {"lastReportDate": {"$gte": from_date, "$lte": to_date}}},
        {"$unwind": "$customers"},
        {"$group": {"_id": "$customers"}},
        {"$sort": {"_id": 1}},
        {
            "$lookup": {
                "from": "customers",
                "localField": "_id",
                "foreignField": "_id",
                "as": "customer",
            }
        },
        {"$unwind": "$customer"},
        {"$replaceRoot": {"newRoot": "$customer"}},
        {
            "$facet": {
                "metadata": [{"$count": "total"}],
                "results": [{"$skip": skip}, {"$limit": limit}],
            }
        },
    ]


async def aggregate_with_template(
    collection: str,
    template: str,
    limit: int = 0,
    skip: int = 0,
    **template_args: object,
) -> dict[str, object]:
    """
    Run a registered template and page its results.

    Args:
        collection: Collection the pipeline starts from
        template: Registered template name
        limit: Page size, capped at the configured maximum
        skip: Number of results to skip
        **template_args: Template specific arguments

    Returns:
        ``{"metadata": {"total", "limit", "nextSkip"}, "results": [...]}``;
        ``nextSkip`` is zero once the last page is reached

    Raises:
        UnknownTemplateError: If no template has that name

    """
    max_limit = Settings().max_aggregation_limit
    if limit <= 0 or limit > max_limit:
        limit = max_limit
    pipeline = get_template(template)(skip=skip, limit=limit, **template_args)
    logger.debug("aggregate_with_template %s %s %s", collection, template, template_args)

    rows = await db_manager.get_db()[collection].aggregate(pipeline).to_list(length=1)
    metadata = {"total": 0, "limit": limit, "nextSkip": 0}
    if not rows:
        return {"metadata": metadata, "results": []}
    facet = rows[0]
    if facet.get("metadata"):
        metadata["total"] = facet["metadata"][0].get("total", 0)
    results = [to_output(doc) for doc in facet.get("results") or []]
    if skip + len(results) < metadata["total"]:
        metadata["nextSkip"] = skip + len(results)
    return {"metadata": metadata, "results": results}
