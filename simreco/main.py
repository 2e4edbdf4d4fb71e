from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from simreco.core.config import get_settings
from simreco.core.lifespan import lifespan
from simreco.api.v1.routers.health import router as health_router
from simreco.api.v1.routers.similar import router as similar_router
from simreco.api.v1.routers.sync import router as sync_router
from simreco.core.logging import configure_logging
from simreco.domain.errors import RecoEngineError

import logging

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- Errors -------
@app.exception_handler(RecoEngineError)
async def reco_engine_error_handler(request: Request, exc: RecoEngineError):
    logger.warning(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "message": exc.message, "details": exc.details},
    )

# ------- Routes -------
app.include_router(health_router)
app.include_router(similar_router)           # similar (vector + heuristic fallback)
app.include_router(sync_router)              # catalog → vector store reconciliation
