# simreco/domain/services/vector_sync_svc.py
from __future__ import annotations
from dataclasses import dataclass, field
from itertools import islice
from typing import Iterable, Iterator, List, Optional
import asyncio
import logging
import time

from simreco.domain.errors import EmbeddingUnavailable, RecoEngineError, VectorStoreUnavailable
from simreco.domain.models.product import Product
from simreco.domain.models.sync import SyncFailure, SyncMode, SyncReport
from simreco.domain.services.embedding_svc import product_text
from simreco.domain.services.sync_state_svc import content_fingerprint

logger = logging.getLogger(__name__)


def _chunks(seq: Iterable[Product], n: int) -> Iterator[List[Product]]:
    it = iter(seq)
    while True:
        batch = list(islice(it, n))
        if not batch:
            break
        yield batch


def vector_metadata(product: Product) -> dict:
    return {"category": product.category, "price": product.price, "rating": product.rating}


@dataclass
class _BatchOutcome:
    succeeded: List[str] = field(default_factory=list)
    failed: List[SyncFailure] = field(default_factory=list)


@dataclass
class _RunState:
    # First outage seen in this run; batches not started yet fail without calling out
    outage: Optional[RecoEngineError] = None


class VectorSyncEngine:
    """
    Reconciles the catalog against the vector store.

    Flow per run:
      1) List the catalog, de-duplicate ids, find stale products via fingerprints.
      2) Batch eligible products; run batches through a worker pool of `workers`.
      3) Per batch: one embed_batch call (per-item calls if the provider rejects
         the batch input), upsert each vector, record success/failure in the tracker.
         An outage (retries exhausted) fails the batch and every batch not yet
         started, so a down provider or store sees one retry cycle per worker.
      4) Remove vectors of products gone from the catalog.

    Item failures are reported, never raised. Cancelling a run keeps every
    product already recorded; the next run resumes through fingerprints.
    """

    def __init__(self, catalog, embedder, store, tracker, *, batch_size: int = 64, workers: int = 4):
        self.catalog = catalog
        self.embedder = embedder
        self.store = store
        self.tracker = tracker
        self.batch_size = max(1, batch_size)
        self.workers = max(1, workers)

    async def run_sync(self, mode: SyncMode = SyncMode.INCREMENTAL) -> SyncReport:
        mode = SyncMode(mode)
        start_ts = time.perf_counter()

        products = await self.catalog.list_products()
        # No product id may land in two concurrent batches
        seen: set = set()
        unique: List[Product] = []
        for p in products:
            if p.product_id not in seen:
                seen.add(p.product_id)
                unique.append(p)
        if len(unique) != len(products):
            logger.debug(f"[sync] deduplicated products {len(products)} -> {len(unique)}")

        stale = await self.tracker.stale_products(unique) if unique else []
        stale_ids = {p.product_id for p in stale}
        eligible = unique if mode == SyncMode.FULL else stale
        skipped = sorted(p.product_id for p in unique if p.product_id not in stale_ids) if mode == SyncMode.INCREMENTAL else []

        logger.info(
            f"[sync] start mode={mode.value} catalog={len(unique)} eligible={len(eligible)} "
            f"skipped={len(skipped)} batch_size={self.batch_size} workers={self.workers}"
        )

        if stale_ids:
            await self.tracker.mark_pending(sorted(stale_ids))

        batches = list(_chunks(eligible, self.batch_size))
        sem = asyncio.Semaphore(self.workers)
        state = _RunState()

        async def _bounded(index: int, batch: List[Product]) -> _BatchOutcome:
            async with sem:
                return await self._run_batch(index, len(batches), batch, state)

        outcomes = await asyncio.gather(*(_bounded(i, b) for i, b in enumerate(batches, start=1)))

        succeeded = sorted(pid for o in outcomes for pid in o.succeeded)
        failed = sorted((f for o in outcomes for f in o.failed), key=lambda f: f.product_id)

        removed = await self._remove_deleted([p.product_id for p in unique])

        elapsed_ms = (time.perf_counter() - start_ts) * 1000.0
        logger.info(
            f"[sync] done mode={mode.value} succeeded={len(succeeded)} failed={len(failed)} "
            f"skipped={len(skipped)} removed={len(removed)} time_ms={elapsed_ms:.1f}"
        )
        return SyncReport(
            mode=mode,
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            removed=removed,
            elapsed_ms=elapsed_ms,
        )

    async def _run_batch(self, index: int, total: int, batch: List[Product], state: _RunState) -> _BatchOutcome:
        out = _BatchOutcome()
        done: set[str] = set()
        texts = [product_text(p) for p in batch]
        logger.debug(f"[sync] batch={index}/{total} size={len(batch)}")

        async def _fail(pid: str, e: RecoEngineError) -> None:
            await self.tracker.record_failure(pid, e.kind)
            out.failed.append(SyncFailure(product_id=pid, reason=e.kind, message=e.message))
            done.add(pid)

        async def _fail_rest(e: RecoEngineError) -> None:
            # Outage: every further call would burn a full retry cycle
            state.outage = state.outage or e
            logger.warning(
                f"[sync] batch={index}/{total} {e.kind} outage, failing {len(batch) - len(done)} item(s): {e.message}"
            )
            for product in batch:
                if product.product_id not in done:
                    await _fail(product.product_id, e)

        try:
            if state.outage is not None:
                await _fail_rest(state.outage)
                return out

            vectors: Optional[List[List[float]]]
            try:
                vectors = await self.embedder.embed_batch(texts)
            except EmbeddingUnavailable as e:
                if e.transient:
                    await _fail_rest(e)
                    return out
                # Input rejected: isolate the offending item(s) with one call per product
                logger.warning(f"[sync] batch={index}/{total} embed_batch rejected, retrying per item: {e.message}")
                vectors = None

            for i, product in enumerate(batch):
                pid = product.product_id
                try:
                    vec = vectors[i] if vectors is not None else await self.embedder.embed(texts[i])
                    await self.store.upsert(pid, vec, vector_metadata(product))
                except (EmbeddingUnavailable, VectorStoreUnavailable) as e:
                    if e.transient:
                        await _fail_rest(e)
                        break
                    logger.warning(f"[sync] product_id={pid} failed reason={e.kind}: {e.message}")
                    await _fail(pid, e)
                    continue
                await self.tracker.record_success(pid, content_fingerprint(product), pid)
                out.succeeded.append(pid)
                done.add(pid)
        except Exception as e:
            # Unexpected error (e.g. record store down): fail the rest of this batch only
            logger.exception(f"[sync] batch={index}/{total} aborted: {e}")
            for product in batch:
                if product.product_id not in done:
                    out.failed.append(SyncFailure(product_id=product.product_id, reason=type(e).__name__, message=str(e)))
        return out

    async def _remove_deleted(self, current_ids: List[str]) -> List[str]:
        """Delete vectors of products no longer in the catalog. Failures wait for the next run."""
        removed: List[str] = []
        for pid in await self.tracker.prune_deleted(current_ids):
            record = await self.tracker.get(pid)
            key = record.vector_key if record else pid
            try:
                await self.store.delete(key)
            except VectorStoreUnavailable as e:
                logger.warning(f"[sync] delete failed product_id={pid} key={key}, retry next run: {e.message}")
                continue
            await self.tracker.forget(pid)
            removed.append(pid)
        if removed:
            logger.info(f"[sync] removed {len(removed)} vector(s) for deleted products")
        return removed
