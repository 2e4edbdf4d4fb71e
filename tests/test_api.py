"""HTTP surface tests; dependencies are overridden, lifespan is not started."""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeCatalog, make_product
from simreco.api import deps
from simreco.api.v1.routers import sync as sync_router
from simreco.domain.errors import SyncInProgress
from simreco.domain.models.sync import SyncFailure, SyncMode, SyncReport
from simreco.domain.services.recommendation_svc import RecommendationService
from simreco.main import app


@pytest.fixture
def client(catalog):
    app.dependency_overrides[deps.recommendation_service] = lambda: RecommendationService(catalog, None)
    app.dependency_overrides[deps.mongo_db] = lambda: None
    app.dependency_overrides[deps.redis_dep] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_similar_returns_fallback_result(client):
    resp = client.get("/products/A/similar", params={"limit": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert body["source_product_id"] == "A"
    assert [i["product_id"] for i in body["items"]] == ["B", "D"]
    assert body["count"] == 2


def test_similar_limit_is_capped(client):
    products = [make_product(f"p{i:03d}") for i in range(80)]
    app.dependency_overrides[deps.recommendation_service] = lambda: RecommendationService(FakeCatalog(products), None)

    resp = client.get("/products/p000/similar", params={"limit": 500})

    assert resp.status_code == 200
    assert resp.json()["count"] == 50


def test_similar_unknown_product_is_404(client):
    resp = client.get("/products/missing/similar")

    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"
    assert resp.json()["details"] == {"product_id": "missing"}


def test_similar_rejects_non_positive_limit(client):
    assert client.get("/products/A/similar", params={"limit": 0}).status_code == 422


def test_sync_endpoint_returns_report(client, monkeypatch):
    seen = {}

    async def fake_sync(db, redis, mode):
        seen["mode"] = mode
        return SyncReport(
            mode=mode,
            succeeded=["A"],
            failed=[SyncFailure(product_id="B", reason="EmbeddingUnavailable")],
        )

    monkeypatch.setattr(sync_router, "run_catalog_sync", fake_sync)

    resp = client.post("/products/sync", params={"mode": "full"})

    assert resp.status_code == 200
    body = resp.json()
    assert seen["mode"] == SyncMode.FULL
    assert body["mode"] == "full"
    assert body["failed"][0]["reason"] == "EmbeddingUnavailable"
    assert body["partial_failure"] is True


def test_sync_endpoint_conflict_when_locked(client, monkeypatch):
    async def busy(db, redis, mode):
        raise SyncInProgress("products")

    monkeypatch.setattr(sync_router, "run_catalog_sync", busy)

    resp = client.post("/products/sync")

    assert resp.status_code == 409
    assert resp.json()["error"] == "SyncInProgress"


def test_sync_endpoint_rejects_unknown_mode(client):
    assert client.post("/products/sync", params={"mode": "partial"}).status_code == 422
