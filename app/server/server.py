"""FastAPI server for the configuration service."""

import logging
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from fastapi_mongo_base.core import app_factory

from . import config, db
from .routes import setup_routes


async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler."""
    logging.info("Lifespan started - initializing database connection")
    db_manager = db.db_manager
    await db_manager.aconnect()
    await db_manager.ainit_indexes()
    logging.info("Database connection initialized and indexes created")
    yield
    await db_manager.adisconnect()
    logging.info("Lifespan ended - database connection closed")


app = app_factory.create_app(settings=config.Settings(), lifespan_func=lifespan)
setup_routes(app, prefix=config.Settings.base_path)
