# simreco/domain/repositories/vector_store_repo.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import ConnectionFailure, PyMongoError

from simreco.domain.errors import VectorStoreUnavailable
from simreco.utils.backoff import BackoffPolicy, RetryExhausted

logger = logging.getLogger(__name__)


class VectorStoreRepo:
    """
    MongoDB Atlas as the external vector store.
    One document per (namespace, key): { namespace, key, vector, metadata, updated_at }.
    The Atlas vector index must declare `vector` (knnVector) and `namespace` (filter).
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        *,
        namespace: str,
        collection_name: str = "product_vectors",
        index_name: str = "vector_index",
        num_candidates_factor: int = 10,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.col: AsyncIOMotorCollection = db[collection_name]
        self.namespace = namespace
        self.index_name = index_name
        self.num_candidates_factor = max(1, num_candidates_factor)
        self.backoff = backoff or BackoffPolicy()

    async def _call(self, operation: str, fn):
        """Retry connection-level failures; any pymongo error ends as VectorStoreUnavailable."""
        try:
            return await self.backoff.run(fn, retry_on=(ConnectionFailure,), label=f"vector_store.{operation}")
        except RetryExhausted as e:
            raise VectorStoreUnavailable(operation, e.last_error, transient=True) from e
        except PyMongoError as e:
            raise VectorStoreUnavailable(operation, e) from e

    # ---------- Writes ----------
    async def upsert(self, key: str, vector: Sequence[float], metadata: Dict[str, Any], *, namespace: Optional[str] = None) -> None:
        ns = namespace or self.namespace
        doc = {
            "namespace": ns,
            "key": key,
            "vector": list(vector),
            "metadata": metadata,
            "updated_at": datetime.now(timezone.utc),
        }
        await self._call("upsert", lambda: self.col.replace_one({"namespace": ns, "key": key}, doc, upsert=True))

    async def delete(self, key: str, *, namespace: Optional[str] = None) -> None:
        """Idempotent: deleting an absent key is a success."""
        ns = namespace or self.namespace
        await self._call("delete", lambda: self.col.delete_one({"namespace": ns, "key": key}))

    # ---------- Reads ----------
    async def get_vector(self, key: str, *, namespace: Optional[str] = None) -> Optional[List[float]]:
        ns = namespace or self.namespace
        doc = await self._call(
            "get_vector",
            lambda: self.col.find_one({"namespace": ns, "key": key}, {"_id": 0, "vector": 1}),
        )
        return doc.get("vector") if doc else None

    def _pipeline(self, vector: Sequence[float], top_k: int, ns: str) -> List[Dict[str, Any]]:
        return [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": "vector",
                    "queryVector": list(vector),
                    "numCandidates": max(100, self.num_candidates_factor * top_k),
                    "limit": top_k,
                    "filter": {"namespace": {"$eq": ns}},
                }
            },
            {"$project": {"_id": 0, "key": 1, "score": {"$meta": "vectorSearchScore"}}},
        ]

    async def query(self, vector: Sequence[float], top_k: int, *, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Nearest neighbours of `vector`.
        Returns [{key, score}] as reported by Atlas (vectorSearchScore).
        """
        if top_k <= 0:
            return []
        ns = namespace or self.namespace
        pipeline = self._pipeline(vector, top_k, ns)

        async def _run():
            cursor = self.col.aggregate(pipeline)
            return [doc async for doc in cursor]

        hits = await self._call("query", _run)
        logger.debug(f"Atlas $vectorSearch returned {len(hits)} hits namespace={ns} k={top_k}")
        return hits
