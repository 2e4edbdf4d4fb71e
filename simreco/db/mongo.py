# simreco/db/mongo.py
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from simreco.core.config import get_settings
import certifi
import logging

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def connect():
    """
    Create Motor client with explicit CA bundle.
    Do not crash the app if the initial ping fails: keep a lazy client so
    requests can retry once Atlas/network is OK (queries fall back meanwhile).
    """
    global _client, _db
    settings = get_settings()

    def _new_client() -> AsyncIOMotorClient:
        tls = {}
        if settings.MONGO_URI.startswith("mongodb+srv"):
            # SRV implies TLS; explicit CA bundle is critical in containers
            tls = {"tls": True, "tlsCAFile": certifi.where()}
        return AsyncIOMotorClient(
            settings.MONGO_URI,                 # e.g. mongodb+srv://.../...
            uuidRepresentation="standard",
            serverSelectionTimeoutMS=6000,
            connectTimeoutMS=6000,
            **tls,
        )

    try:
        _client = _new_client()
        _db = _client[settings.MONGO_DB]
        # Soft fail-fast: try a ping, but don't abort on failure
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok)")
    except Exception as e:
        logger.warning(f"Mongo ping at startup failed: {e}")
        try:
            # keep a lazy client; first real query will attempt to connect again
            _client = _new_client()
            _db = _client[settings.MONGO_DB]
            logger.warning("Mongo will attempt lazy connection on first query")
        except Exception as e2:
            # as a last resort, keep None; routes that need DB will assert
            _client = None
            _db = None
            logger.error(f"Mongo client init failed: {e2}")


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
