# simreco/api/v1/routers/similar.py
from fastapi import APIRouter, Depends, Query
from typing import Optional
import time
import logging

from simreco.api.deps import recommendation_service
from simreco.api.v1.schemas.reco import RecoResultOut
from simreco.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["similar"])

@router.get("/products/{product_id}/similar", response_model=RecoResultOut)
async def similar_products(
    product_id: str,
    limit: Optional[int] = Query(None, ge=1, description="Number of similar products (defaults to settings.default_top_k)"),
    svc = Depends(recommendation_service),
):
    """
    Substitutable/similar products.
    Pipeline: Atlas vector neighbours → heuristic scoring when the vector path is unavailable.
    Only an unknown product_id is an error (404).
    """
    settings = get_settings()
    top_k = min(limit or settings.default_top_k, settings.max_top_k)
    logger.info("Request: similar_products product_id=%s, limit=%s", product_id, top_k)

    start_time = time.perf_counter()
    res = await svc.recommend(product_id, top_k)

    elapsed_time = time.perf_counter() - start_time
    logger.info(
        "Response: similar_products product_id=%s, count=%s, elapsed_time=%.4fs",
        product_id, res.count, elapsed_time,
    )
    return res.model_dump()
