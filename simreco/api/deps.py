# simreco/api/deps.py
from fastapi import Depends
from simreco.core.config import get_settings
from simreco.db.mongo import get_db
from simreco.db.redis import get_redis
from simreco.domain.services.recommendation_svc import RecommendationService, build_recommendation_service

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    # Returns the MongoDB database instance (async)
    return db

# Dependency for injecting the Redis client into endpoints/services
def redis_dep():
    return get_redis()

# Dependency for the recommendation facade (vector path + heuristic fallback)
def recommendation_service(db = Depends(mongo_db)) -> RecommendationService:
    return build_recommendation_service(db, get_settings())
