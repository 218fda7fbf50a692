from datetime import UTC, datetime

from apps.base.context import RequestContext
from apps.base.models import BaseDocument

from .models import day_start


async def incident_update_resolve_day_date(
    ctx: RequestContext, docs: list[BaseDocument]
) -> list[BaseDocument]:
    """Stamp the resolve day of incidents dismissed by the update."""
    for doc in docs:
        if getattr(doc, "is_dismissed", None) and doc.resolve_day_date is None:
            doc.resolve_day_date = day_start(datetime.now(UTC))
    return docs
