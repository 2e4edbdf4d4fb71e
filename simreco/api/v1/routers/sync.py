# simreco/api/v1/routers/sync.py

from fastapi import APIRouter, Depends, Query
import logging
import time

from simreco.api.deps import mongo_db, redis_dep
from simreco.api.v1.schemas.reco import SyncReportOut
from simreco.domain.models.sync import SyncMode
from simreco.domain.services.sync_job_svc import run_catalog_sync

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])

@router.post(
    "/products/sync",
    response_model=SyncReportOut,
    summary="Reconcile the catalog with the vector store (incremental or full)",
)
async def sync_products(
    mode: SyncMode = Query(SyncMode.INCREMENTAL, description="'incremental' re-embeds changed products only; 'full' re-embeds everything"),
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
):
    """
    Embeds new/changed products, upserts their vectors and removes vectors of deleted products.
    Item failures are listed in the report; the run itself succeeds.
    """
    start = time.perf_counter()
    logger.info(f"[sync] request mode={mode.value}")
    report = await run_catalog_sync(db, redis, mode)
    logger.info(
        f"[sync] response mode={mode.value} partial_failure={report.partial_failure} "
        f"time_ms={(time.perf_counter() - start) * 1000.0:.1f}"
    )
    return {**report.model_dump(mode="json"), "partial_failure": report.partial_failure}
