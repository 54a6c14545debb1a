# shopsearch/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shopsearch.db import mongo, redis as r
from shopsearch.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo holds the search index, catalog and orders
    if settings.MONGO_URI:
        await mongo.connect()
    else:
        logger.warning("No MONGO_URI provided, skipping Mongo connection")

    # Redis optional
    if settings.REDIS_URL:
        await r.connect()
    else:
        logger.warning("No REDIS_URL provided, running without cache")

    # Application runs
    yield

    # --- Shutdown ---
    try:
        if settings.REDIS_URL:
            await r.disconnect()
    except Exception as e:
        logger.warning("Redis disconnect failed: %s", e)

    try:
        if settings.MONGO_URI:
            await mongo.disconnect()
            logger.info("Mongo disconnected")
    except Exception as e:
        logger.warning("Mongo disconnect failed: %s", e)
