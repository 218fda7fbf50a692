"""Lazily cached global documents."""

import logging
from dataclasses import dataclass

from aiocache import SimpleMemoryCache

from server.db import db_manager

from .filter_builder import FilterBuilder
from .queries import to_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedDocument:
    """Where a cached document is loaded from and for how long it is kept."""

    collection: str
    filter: FilterBuilder
    ttl: float


_documents: dict[str, CachedDocument] = {}
_cache = SimpleMemoryCache(namespace="documents")


def add_cached_document(
    key: str, collection: str, filter_builder: FilterBuilder, ttl: float
) -> None:
    """
    Register a document for lazy caching.

    Args:
        key: Cache key
        collection: Collection holding the document
        filter_builder: Filter selecting the document
        ttl: Seconds a loaded value is served from memory

    """
    _documents[key] = CachedDocument(collection, filter_builder, ttl)


async def get_cached_document(key: str) -> dict[str, object] | None:
    """
    Return a registered document, loading it from the store on a miss.

    Raises:
        KeyError: If the key was never registered

    """
    document = _documents[key]
    value = await _cache.get(key)
    if value is not None:
        return dict(value)
    logger.debug("cache miss for %s, loading from %s", key, document.collection)
    stored = await db_manager.get_db()[document.collection].find_one(
        document.filter.build()
    )
    value = to_output(stored)
    if value is not None:
        await _cache.set(key, value, ttl=document.ttl)
        return dict(value)
    return None


async def invalidate_cached_document(key: str) -> None:
    await _cache.delete(key)


async def clear_cached_documents() -> None:
    await _cache.clear()
