# simreco/core/lifespan.py
from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from simreco.db import mongo, redis as r
from simreco.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is required: catalog, sync records and vectors all live there
    await mongo.connect()

    # Redis optional (sync lock only)
    if settings.REDIS_URL:
        await r.connect()
    else:
        logger.warning("No REDIS_URL provided, sync runs will not be locked")

    if not settings.OPENAI_API_KEY:
        logger.warning("No OPENAI_API_KEY provided, recommendations use heuristic scoring only")

    # Application runs
    yield

    # --- Shutdown ---
    await r.disconnect()
    await mongo.disconnect()
