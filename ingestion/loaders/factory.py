"""
Store selection from configuration
"""

from typing import Optional, Tuple
from core.config import Settings
from core.database import ConnectionPool
from ingestion.loaders.base import ContributionStore
from ingestion.loaders.json_loader import JsonFileLoader
from ingestion.loaders.postgres_loader import PostgresLoader
import logging

logger = logging.getLogger(__name__)


def create_store(settings: Settings, pool: Optional[ConnectionPool] = None) -> ContributionStore:
    """The authoritative store for this deployment"""
    if settings.STORAGE_BACKEND == "json":
        if settings.is_production:
            raise ValueError("The JSON store is for local development only")
        logger.info(f"Using JSON store in {settings.JSON_STORAGE_DIR}")
        return JsonFileLoader(settings.JSON_STORAGE_DIR)

    return PostgresLoader(pool or ConnectionPool())


def create_fallback_store(settings: Settings) -> Optional[ContributionStore]:
    if not settings.JSON_FALLBACK_ENABLED or settings.is_production:
        return None
    if settings.STORAGE_BACKEND == "json":
        return None
    logger.info(f"JSON fallback enabled in {settings.JSON_STORAGE_DIR}")
    return JsonFileLoader(settings.JSON_STORAGE_DIR)


def create_stores(
    settings: Settings,
    pool: Optional[ConnectionPool] = None
) -> Tuple[ContributionStore, Optional[ContributionStore]]:
    return create_store(settings, pool), create_fallback_store(settings)
