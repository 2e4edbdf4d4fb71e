# simreco/domain/services/sync_state_svc.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional
import hashlib
import json
import logging

from simreco.domain.models.product import Product
from simreco.domain.models.sync import SyncRecord, SyncStatus

logger = logging.getLogger(__name__)

def content_fingerprint(product: Product) -> str:
    """
    Deterministic hash of the fields that change the embedding text.
    Price and rating are left out: they only feed vector metadata and the
    heuristic scorer, never the vector itself.
    """
    payload = {
        "n": product.name or "",
        "d": product.description or "",
        "c": product.category or "",
        "t": sorted({t.strip() for t in product.tags or [] if t and t.strip()}),
    }
    s = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


class SyncStateTracker:
    """
    Owns SyncRecord mutations. Other components read through `get`.
    The record store is injected (Mongo-backed in production, in-memory in tests).
    """

    def __init__(self, store):
        self.store = store

    async def get(self, product_id: str) -> Optional[SyncRecord]:
        return await self.store.get(product_id)

    @staticmethod
    def _is_stale(product: Product, record: Optional[SyncRecord]) -> bool:
        if record is None:
            return True
        if record.status != SyncStatus.SYNCED:
            return True
        return record.fingerprint != content_fingerprint(product)

    async def needs_sync(self, product: Product) -> bool:
        return self._is_stale(product, await self.store.get(product.product_id))

    async def stale_products(self, products: List[Product]) -> List[Product]:
        """Bulk form of needs_sync (one store round-trip)."""
        records = await self.store.get_many(p.product_id for p in products)
        return [p for p in products if self._is_stale(p, records.get(p.product_id))]

    async def record_success(self, product_id: str, fingerprint: str, vector_key: str) -> SyncRecord:
        record = SyncRecord(
            product_id=product_id,
            fingerprint=fingerprint,
            vector_key=vector_key,
            last_synced_at=datetime.now(timezone.utc),
            status=SyncStatus.SYNCED,
        )
        await self.store.save(record)
        return record

    async def record_failure(self, product_id: str, reason: str) -> None:
        """
        Mark an existing record failed so the next pass retries it.
        A product never synced has no record; it stays absent (still stale).
        """
        n = await self.store.set_status([product_id], SyncStatus.FAILED, error=reason)
        if not n:
            logger.debug(f"[sync_state] failure for untracked product_id={product_id} reason={reason}")

    async def mark_pending(self, product_ids: Iterable[str]) -> int:
        """Flag tracked products whose content changed; their stored vector is stale."""
        return await self.store.set_status(list(product_ids), SyncStatus.PENDING)

    async def prune_deleted(self, current_product_ids: Iterable[str]) -> List[str]:
        """Tracked ids no longer present in the catalog, ascending."""
        current = set(current_product_ids)
        return sorted(pid for pid in await self.store.all_ids() if pid not in current)

    async def forget(self, product_id: str) -> None:
        """Drop the record once its vector is confirmed removed from the store."""
        await self.store.delete(product_id)
