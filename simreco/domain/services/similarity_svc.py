# simreco/domain/services/similarity_svc.py
from __future__ import annotations
from typing import List
import logging

from pymongo.errors import PyMongoError

from simreco.domain.errors import VectorNotReady, VectorStoreUnavailable
from simreco.domain.models.product import RecoItem, RecoResult
from simreco.domain.models.sync import SyncStatus
from simreco.domain.services.fallback_svc import rank

logger = logging.getLogger(__name__)

def normalize_score(raw: float, kind: str = "similarity") -> float:
    """
    Map a store score into [0, 1], 1 = identical.
      - "similarity": already a similarity (Atlas cosine/euclidean scores are in [0, 1]); clamped.
      - "distance":   1 / (1 + distance), monotonically decreasing in distance.
    """
    raw = float(raw)
    if kind == "distance":
        return 1.0 / (1.0 + max(0.0, raw))
    return min(1.0, max(0.0, raw))


class SimilarityQueryService:
    """Top-K neighbours of a synced product, read from the vector store."""

    def __init__(self, store, tracker, *, score_kind: str = "similarity"):
        self.store = store
        self.tracker = tracker
        self.score_kind = score_kind

    async def query_similar(self, product_id: str, top_k: int, exclude_self: bool = True) -> RecoResult:
        try:
            record = await self.tracker.get(product_id)
        except PyMongoError as e:
            raise VectorStoreUnavailable("sync_record", e) from e

        if record is None or record.status != SyncStatus.SYNCED:
            raise VectorNotReady(product_id, record.status.value if record else None)

        vec = await self.store.get_vector(record.vector_key)
        if not vec:
            # Store lost a synced vector: flag the record so the next incremental run re-embeds it
            logger.warning(f"Vector missing for synced product_id={product_id} key={record.vector_key}, marking pending")
            try:
                await self.tracker.mark_pending([product_id])
            except PyMongoError as e:
                logger.warning(f"Could not mark product_id={product_id} pending: {e}")
            raise VectorNotReady(product_id, "missing_vector")

        limit = top_k + 1 if exclude_self else top_k
        hits = await self.store.query(vec, limit)

        self_keys = {product_id, record.vector_key}
        seen: set = set()
        items: List[RecoItem] = []
        for hit in hits:
            key = hit.get("key")
            if key is None or "score" not in hit:
                logger.warning(f"Ignoring malformed vector hit: {hit}")
                continue
            if (exclude_self and key in self_keys) or key in seen:
                continue
            seen.add(key)
            items.append(RecoItem(product_id=key, score=normalize_score(hit["score"], self.score_kind)))

        logger.debug(f"Vector query product_id={product_id} hits={len(hits)} kept={len(items)}")
        return RecoResult.from_items(product_id, rank(items, top_k))
