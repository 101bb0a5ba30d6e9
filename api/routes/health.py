"""
Health check endpoint with storage status
"""

from typing import Optional
from fastapi import APIRouter, Depends
from api.dependencies import get_fallback_store, get_store
from core.config import settings
from core.exceptions import PersistenceError
from ingestion.loaders.base import ContributionStore
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    store: ContributionStore = Depends(get_store),
    fallback_store: Optional[ContributionStore] = Depends(get_fallback_store)
):
    """
    Health check endpoint.

    Returns:
    - Storage connectivity status
    - Whether the dev fallback store is active
    """
    db_connected = False

    try:
        db_connected = await store.ping()
    except PersistenceError as e:
        logger.error(f"Storage check failed: {e.message}", extra={"error_context": e.to_dict()})

    fallback_enabled = fallback_store is not None

    return HealthCheckResponse(
        status=HealthCheckResponse.overall_status(db_connected, fallback_enabled),
        timestamp=datetime.utcnow(),
        storage_backend=store.name,
        database_connected=db_connected,
        fallback_enabled=fallback_enabled,
        environment=settings.ENVIRONMENT,
    )
