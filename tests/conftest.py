"""Shared fixtures for the simreco test suite."""

import os

# Settings require Mongo coordinates; nothing in the suite connects to them
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "simreco_test")

import pytest

from fakes import DIMS, FAST_BACKOFF, FakeCatalog, FakeOpenAI, FakeVectorStore, make_product
from simreco.domain.repositories.sync_record_repo import InMemorySyncRecordRepo
from simreco.domain.services.embedding_svc import EmbeddingClient
from simreco.domain.services.sync_state_svc import SyncStateTracker
from simreco.domain.services.vector_sync_svc import VectorSyncEngine


@pytest.fixture
def catalog_products():
    """A small mixed catalog."""
    return [
        make_product("A", "electronics", 100.0, 4.5, ["audio", "wireless"], name="Wireless headphones"),
        make_product("B", "electronics", 110.0, 4.0, ["audio"], name="Wired headphones"),
        make_product("C", "books", 20.0, 4.8, ["fiction"], name="Mystery novel"),
        make_product("D", "electronics", 300.0, 3.5, ["video"], name="Action camera"),
        make_product("E", "books", 25.0, 4.1, ["fiction", "crime"], name="Crime novel"),
    ]


@pytest.fixture
def catalog(catalog_products):
    return FakeCatalog(catalog_products)


@pytest.fixture
def record_store():
    return InMemorySyncRecordRepo()


@pytest.fixture
def tracker(record_store):
    return SyncStateTracker(record_store)


@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def openai_api():
    return FakeOpenAI()


@pytest.fixture
def embedder(openai_api):
    return EmbeddingClient(openai_api, model="test-embed", dimensions=DIMS, max_chars=2000, backoff=FAST_BACKOFF)


@pytest.fixture
def engine(catalog, embedder, vector_store, tracker):
    return VectorSyncEngine(catalog, embedder, vector_store, tracker, batch_size=2, workers=2)
