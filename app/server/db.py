"""MongoDB connection module."""

import logging

from db.manager import DatabaseManager

from . import config

logger = logging.getLogger(__name__)


# Global database manager instance
db_manager = DatabaseManager(
    config.Settings().mongo_uri,
    config.Settings().mongodb_database,
    config.Settings().mongodb_replica_set,
)
