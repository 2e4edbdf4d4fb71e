"""Tests for the vector-backed similarity query service."""

import asyncio

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from simreco.domain.errors import VectorNotReady, VectorStoreUnavailable
from simreco.domain.models.sync import SyncMode, SyncRecord, SyncStatus
from simreco.domain.services.similarity_svc import SimilarityQueryService, normalize_score


@pytest.fixture
def synced(engine, vector_store, tracker):
    """Catalog fully synced into the fake store."""
    asyncio.run(engine.run_sync(SyncMode.FULL))
    return SimilarityQueryService(vector_store, tracker)


def test_returns_neighbours_without_self(synced, vector_store):
    result = asyncio.run(synced.query_similar("A", top_k=3))

    ids = [i.product_id for i in result.items]
    assert "A" not in ids
    assert len(ids) == 3
    assert vector_store.queries[-1] == 4  # top_k + 1 to absorb self-exclusion
    scores = [i.score for i in result.items]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in scores)


def test_include_self_when_asked(synced):
    result = asyncio.run(synced.query_similar("A", top_k=2, exclude_self=False))
    assert result.items[0].product_id == "A"
    assert result.items[0].score == pytest.approx(1.0)


def test_ties_are_ordered_by_product_id():
    class TiedStore:
        async def get_vector(self, key, **kw):
            return [1.0, 0.0]

        async def query(self, vector, top_k, **kw):
            return [{"key": "z", "score": 0.9}, {"key": "src", "score": 1.0}, {"key": "b", "score": 0.9}]

    class SyncedTracker:
        async def get(self, pid):
            return SyncRecord(product_id=pid, fingerprint="f", vector_key=pid, status=SyncStatus.SYNCED)

    svc = SimilarityQueryService(TiedStore(), SyncedTracker())
    result = asyncio.run(svc.query_similar("src", top_k=5))
    assert [i.product_id for i in result.items] == ["b", "z"]


def test_unsynced_product_is_not_ready(vector_store, tracker):
    svc = SimilarityQueryService(vector_store, tracker)
    with pytest.raises(VectorNotReady):
        asyncio.run(svc.query_similar("A", top_k=3))


def test_failed_record_is_not_ready(synced, tracker):
    asyncio.run(tracker.record_failure("A", "EmbeddingUnavailable"))
    with pytest.raises(VectorNotReady) as exc_info:
        asyncio.run(synced.query_similar("A", top_k=3))
    assert exc_info.value.details["status"] == "failed"


def test_vector_missing_from_store_is_not_ready(synced, vector_store, record_store):
    vector_store.vectors.pop("A")
    with pytest.raises(VectorNotReady):
        asyncio.run(synced.query_similar("A", top_k=3))
    assert record_store.records["A"].status == SyncStatus.PENDING


def test_lost_vector_is_restored_by_next_incremental_run(synced, engine, vector_store):
    vector_store.vectors.pop("A")
    with pytest.raises(VectorNotReady):
        asyncio.run(synced.query_similar("A", top_k=3))
    upserts_before = vector_store.upserts

    report = asyncio.run(engine.run_sync(SyncMode.INCREMENTAL))

    assert report.succeeded == ["A"]
    assert "A" not in report.skipped
    assert vector_store.upserts == upserts_before + 1
    result = asyncio.run(synced.query_similar("A", top_k=2))
    assert result.count == 2


def test_store_outage_raises_unavailable(synced, vector_store):
    vector_store.fail_all = True
    with pytest.raises(VectorStoreUnavailable):
        asyncio.run(synced.query_similar("A", top_k=3))


def test_record_store_outage_raises_unavailable(vector_store):
    class DownTracker:
        async def get(self, pid):
            raise ServerSelectionTimeoutError("no servers")

    svc = SimilarityQueryService(vector_store, DownTracker())
    with pytest.raises(VectorStoreUnavailable):
        asyncio.run(svc.query_similar("A", top_k=3))


def test_normalize_score():
    assert normalize_score(0.8) == pytest.approx(0.8)
    assert normalize_score(1.3) == 1.0
    assert normalize_score(-0.2) == 0.0
    assert normalize_score(0.0, "distance") == 1.0
    assert normalize_score(1.0, "distance") == pytest.approx(0.5)
    assert normalize_score(3.0, "distance") < normalize_score(1.0, "distance")
