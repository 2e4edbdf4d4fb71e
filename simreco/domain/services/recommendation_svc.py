import logging
from typing import List, Optional

from simreco.domain.errors import NotFound, VectorNotReady, VectorStoreUnavailable
from simreco.domain.models.product import Product, RecoResult
from simreco.domain.services.constants import PATH_FALLBACK, PATH_VECTOR
from simreco.domain.repositories.product_repo import ProductRepo
from simreco.domain.repositories.sync_record_repo import SyncRecordRepo
from simreco.domain.repositories.vector_store_repo import VectorStoreRepo
from simreco.domain.services.fallback_svc import score_similar
from simreco.domain.services.similarity_svc import SimilarityQueryService
from simreco.domain.services.sync_state_svc import SyncStateTracker
from simreco.utils.backoff import BackoffPolicy

logger = logging.getLogger(__name__)


class RecommendationService:
    """
    Single entry point for similar-product recommendations.

    High-level flow:
      1) Load the source product (NotFound if missing, never a fallback result).
      2) Vector path when configured: SimilarityQueryService.
      3) On VectorNotReady / VectorStoreUnavailable (or no vector path at all):
         heuristic scoring over a same-category sample of the catalog.

    Both paths return the same RecoResult shape.
    """

    def __init__(self, catalog, query_service=None, *, fallback_sample_size: int = 500):
        self.catalog = catalog
        self.query_service = query_service  # None => embeddings unconfigured
        self.fallback_sample_size = fallback_sample_size

    async def recommend(self, product_id: str, top_k: int) -> RecoResult:
        src = await self.catalog.get_by_product_id(product_id)
        if not src:
            logger.warning(f"Product not found: product_id={product_id}")
            raise NotFound(product_id)

        if self.query_service is not None:
            try:
                result = await self.query_service.query_similar(product_id, top_k)
                logger.info(f"recommend product_id={product_id} path={PATH_VECTOR} items={result.count}")
                return result
            except (VectorNotReady, VectorStoreUnavailable) as e:
                logger.warning(f"Vector path unavailable for product_id={product_id} ({e.kind}): {e.message}")

        result = score_similar(src, await self._fallback_candidates(src), top_k)
        logger.info(f"recommend product_id={product_id} path={PATH_FALLBACK} items={result.count}")
        return result

    async def _fallback_candidates(self, src: Product) -> List[Product]:
        # Category pre-filter keeps the scorer off the whole catalog
        limit: Optional[int] = self.fallback_sample_size or None
        if src.category:
            return await self.catalog.list_by_category(
                src.category, limit=limit, exclude_product_id=src.product_id
            )
        return await self.catalog.list_products(limit=limit)


def build_recommendation_service(db, settings) -> RecommendationService:
    """Wire the facade from settings; no API key => fallback-only facade."""
    query_service = None
    if settings.OPENAI_API_KEY:
        store = VectorStoreRepo(
            db,
            namespace=settings.VECTOR_NAMESPACE,
            collection_name=settings.vector_collection,
            index_name=settings.vector_index,
            num_candidates_factor=settings.vector_num_candidates_factor,
            # query path: fail fast to fallback rather than sleeping through retries
            backoff=BackoffPolicy(max_attempts=1),
        )
        tracker = SyncStateTracker(SyncRecordRepo(db, settings.sync_records_collection))
        query_service = SimilarityQueryService(store, tracker, score_kind=settings.vector_score_kind)
    return RecommendationService(
        ProductRepo(db, settings.products_collection),
        query_service,
        fallback_sample_size=settings.fallback_sample_size,
    )
