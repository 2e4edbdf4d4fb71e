from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]
ScoreKind = Literal["similarity", "distance"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "SimilarityReco"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (catalog + sync records + Atlas vector collection)
    MONGO_URI: str # ✅ declared
    MONGO_DB: str # ✅ declared
    products_collection: str = "products"
    sync_records_collection: str = "sync_records"

    # Redis (optional, only guards sync runs)
    REDIS_URL: Optional[str] = None
    sync_lock_ttl: int = 15 * 60               # seconds; renewed every ttl/3 while a run is active

    # OpenAI embeddings (no key => vector path disabled, fallback only)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    openai_timeout_s: int = 30                 # seconds
    embedding_dimensions: int = 1536           # must match the Atlas vector index
    embedding_max_chars: int = 8000            # text is cut on a word boundary below this
    embedding_batch_size: int = 64             # inputs per embeddings.create() call

    # Retry / backoff (embedding + vector store calls)
    retry_max_attempts: int = 5
    retry_base_delay_s: float = 0.5
    retry_multiplier: float = 2.0
    retry_max_delay_s: float = 20.0
    retry_jitter: float = 0.25                 # +/- fraction of each delay

    # Vector store (Atlas $vectorSearch)
    VECTOR_NAMESPACE: str = "products"
    vector_collection: str = "product_vectors"
    vector_index: str = "vector_index"
    vector_num_candidates_factor: int = 10     # numCandidates = factor * limit
    vector_score_kind: ScoreKind = "similarity"

    # Sync / query
    sync_workers: int = 4                      # concurrent batches
    default_top_k: int = 10
    max_top_k: int = 50
    fallback_sample_size: int = 500            # same-category candidates scored on fallback

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
