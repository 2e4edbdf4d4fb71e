import asyncio
import contextlib
import logging

from simreco.core.config import get_settings
from simreco.domain.errors import EmbeddingUnavailable, SyncInProgress
from simreco.domain.models.sync import SyncMode, SyncReport
from simreco.domain.repositories.product_repo import ProductRepo
from simreco.domain.repositories.sync_record_repo import SyncRecordRepo
from simreco.domain.repositories.vector_store_repo import VectorStoreRepo
from simreco.domain.services.constants import SYNC_LOCK_PREFIX
from simreco.domain.services.embedding_svc import EmbeddingClient
from simreco.domain.services.sync_state_svc import SyncStateTracker
from simreco.domain.services.vector_sync_svc import VectorSyncEngine
from simreco.utils.backoff import BackoffPolicy
from simreco.utils.locks import RedisLock

logger = logging.getLogger(__name__)


def build_sync_engine(db, settings=None, *, embedder=None) -> VectorSyncEngine:
    """Wire the sync engine from settings; `embedder` overrides the OpenAI client."""
    settings = settings or get_settings()
    embedder = embedder or EmbeddingClient.from_settings(settings)
    if embedder is None:
        raise EmbeddingUnavailable("OPENAI_API_KEY is not configured; vector sync is disabled")
    store = VectorStoreRepo(
        db,
        namespace=settings.VECTOR_NAMESPACE,
        collection_name=settings.vector_collection,
        index_name=settings.vector_index,
        num_candidates_factor=settings.vector_num_candidates_factor,
        backoff=BackoffPolicy.from_settings(settings),
    )
    return VectorSyncEngine(
        catalog=ProductRepo(db, settings.products_collection),
        embedder=embedder,
        store=store,
        tracker=SyncStateTracker(SyncRecordRepo(db, settings.sync_records_collection)),
        batch_size=settings.embedding_batch_size,
        workers=settings.sync_workers,
    )


async def run_catalog_sync(db, redis, mode: SyncMode = SyncMode.INCREMENTAL, *, engine=None) -> SyncReport:
    """
    Run one sync pass under a Redis lock keyed by namespace.
    Without Redis the run proceeds unguarded (single-instance deployments).
    """
    settings = get_settings()
    engine = engine or build_sync_engine(db, settings)

    if redis is None:
        logger.warning("[sync] no Redis configured, running without a lock")
        return await engine.run_sync(mode)

    lock = RedisLock(redis, f"{SYNC_LOCK_PREFIX}:{settings.VECTOR_NAMESPACE}", ttl=settings.sync_lock_ttl)
    if not await lock.acquire():
        logger.info(f"[sync] lock busy namespace={settings.VECTOR_NAMESPACE}")
        raise SyncInProgress(settings.VECTOR_NAMESPACE)
    # Renew well before expiry; a slow run (provider backoff) may outlast one TTL
    heartbeat = asyncio.create_task(lock.keep_alive(max(1.0, settings.sync_lock_ttl / 3)))
    try:
        return await engine.run_sync(mode)
    finally:
        heartbeat.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await heartbeat
        await lock.release()
