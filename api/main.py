"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from api.routes import cohorts, contributions, export, health, stats
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import ConnectionPool
from core.exceptions import (
    ConstraintViolationError, MalformedInputError, PersistenceError,
    ProofConflictError, UnknownDataTypeError
)
from core.logging import setup_logging
from ingestion.loaders.factory import create_stores
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="MYRAD Contribution Pipeline API",
    description="Turns verified proofs into anonymized, sellable behavioural records",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)


# Include routers
app.include_router(health.router)
app.include_router(contributions.router)
app.include_router(export.router)
app.include_router(cohorts.router)
app.include_router(stats.router)


# ============================================================================
# Error mapping
# ============================================================================

@app.exception_handler(UnknownDataTypeError)
@app.exception_handler(MalformedInputError)
async def bad_input_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(ProofConflictError)
@app.exception_handler(ConstraintViolationError)
async def conflict_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content=exc.to_dict())


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    return JSONResponse(status_code=503, content=exc.to_dict())


# ============================================================================
# Lifecycle
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Create the pool and stores once; routes receive them via dependencies"""
    logger.info("Starting MYRAD Contribution Pipeline API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    pool = ConnectionPool() if settings.STORAGE_BACKEND == "postgres" else None
    store, fallback_store = create_stores(settings, pool)

    app.state.pool = pool
    app.state.store = store
    app.state.fallback_store = fallback_store
    logger.info(f"Storage backend: {store.name}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down MYRAD Contribution Pipeline API")
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "MYRAD Contribution Pipeline API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "contributions": "/contributions",
            "export": "/export",
            "cohorts": "/cohorts/{cohort_id}/aggregate",
            "stats": "/stats"
        }
    }
