"""Index definitions for every collection served by the API."""

import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, IndexModel

logger = logging.getLogger(__name__)


def _ascending(*fields: str) -> list[IndexModel]:
    return [IndexModel([(name, ASCENDING)]) for name in fields]


DEFAULT_INDEXES = _ascending("guid", "name", "customers")

COLLECTION_INDEXES: dict[str, list[IndexModel]] = {
    "customers": _ascending("guid"),
    "users_notifications_cache": [
        *_ascending("guid", "name", "customers", "dataType"),
        IndexModel([("expiryTime", ASCENDING)], expireAfterSeconds=0),
    ],
    "attack_chains": _ascending(
        "guid",
        "name",
        "customers",
        "attackChainID",
        "clusterName",
        "latestReportGUID",
        "uiStatus.processingStatus",
    ),
    "v1_collaboration_configs": _ascending("guid", "name", "provider", "customers"),
    "users_notifications_vulnerabilities": _ascending(
        "cveID", "cluster", "namespace", "notificationType", "customers"
    ),
}

_registered: set[str] = set()


def register_collection(collection: str) -> None:
    """Mark a collection for index creation at startup."""
    _registered.add(collection)


def registered_collections() -> list[str]:
    return sorted(_registered)


async def index_collection(database: AsyncIOMotorDatabase, collection: str) -> None:
    """Create the custom indexes of a collection, or the default set."""
    models = COLLECTION_INDEXES.get(collection, DEFAULT_INDEXES)
    if not models:
        return
    names = await database[collection].create_indexes(models)
    logger.info("created indexes %s on collection %s", names, collection)


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    for collection in registered_collections():
        await index_collection(database, collection)
