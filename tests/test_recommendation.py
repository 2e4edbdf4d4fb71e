"""Tests for the recommendation facade (vector path + heuristic fallback)."""

import asyncio

import pytest

from fakes import FakeCatalog, make_product
from simreco.domain.errors import NotFound
from simreco.domain.models.sync import SyncMode
from simreco.domain.services.fallback_svc import score_similar
from simreco.domain.services.recommendation_svc import RecommendationService
from simreco.domain.services.similarity_svc import SimilarityQueryService


@pytest.fixture
def query_service(vector_store, tracker):
    return SimilarityQueryService(vector_store, tracker)


@pytest.fixture
def facade(catalog, query_service):
    return RecommendationService(catalog, query_service, fallback_sample_size=100)


def test_vector_path_serves_synced_products(facade, engine, vector_store):
    asyncio.run(engine.run_sync(SyncMode.FULL))

    result = asyncio.run(facade.recommend("A", top_k=2))

    assert vector_store.queries  # served by the store
    assert result.count == 2
    assert "A" not in [i.product_id for i in result.items]


def test_store_outage_falls_back_to_same_category(facade, engine, vector_store, catalog_products):
    asyncio.run(engine.run_sync(SyncMode.FULL))
    vector_store.fail_all = True

    result = asyncio.run(facade.recommend("A", top_k=5))

    assert result.count > 0
    assert [i.product_id for i in result.items] == ["B", "D"]  # electronics only, scored
    expected = score_similar(catalog_products[0], [catalog_products[1], catalog_products[3]], 5)
    assert result == expected


def test_unsynced_product_falls_back(facade):
    result = asyncio.run(facade.recommend("C", top_k=3))
    assert [i.product_id for i in result.items] == ["E"]


def test_unknown_product_raises_not_found(facade, vector_store):
    vector_store.fail_all = True
    with pytest.raises(NotFound):
        asyncio.run(facade.recommend("missing", top_k=3))


def test_lonely_category_returns_empty_result():
    catalog = FakeCatalog([make_product("solo", "garden"), make_product("other", "books")])
    facade = RecommendationService(catalog, None)

    result = asyncio.run(facade.recommend("solo", top_k=3))

    assert result.items == [] and result.count == 0


def test_unconfigured_vector_path_uses_fallback_only(catalog):
    facade = RecommendationService(catalog, None)
    result = asyncio.run(facade.recommend("B", top_k=1))
    assert [i.product_id for i in result.items] == ["A"]


def test_uncategorized_product_samples_whole_catalog():
    products = [make_product("u", category=None), make_product("x", "books"), make_product("y", "toys")]
    facade = RecommendationService(FakeCatalog(products), None)

    result = asyncio.run(facade.recommend("u", top_k=5))

    assert sorted(i.product_id for i in result.items) == ["x", "y"]
