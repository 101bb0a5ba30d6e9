"""
Recompute indexed columns from stored sellable_data.

Run after adding or changing a projection rule. Uses the same projector
as the pipeline, so re-running it on an up-to-date store changes nothing.

Usage:
    python scripts/backfill_indexed_fields.py [data_type ...]
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import ConnectionPool
from core.exceptions import PipelineException
from core.logging import setup_logging
from ingestion.loaders.factory import create_store
from ingestion.registry import all_providers, get_provider

setup_logging()
logger = logging.getLogger(__name__)


async def backfill(data_types=None) -> int:
    bundles = [get_provider(t) for t in data_types] if data_types else all_providers()

    pool = ConnectionPool() if settings.STORAGE_BACKEND == "postgres" else None
    store = create_store(settings, pool)

    total = 0
    try:
        for bundle in bundles:
            updated = await store.reindex(bundle.data_type.value)
            logger.info(f"{bundle.data_type.value}: {updated} records reindexed")
            total += updated
    finally:
        await store.close()

    logger.info(f"Backfill complete: {total} records updated")
    return total


if __name__ == "__main__":
    try:
        asyncio.run(backfill(sys.argv[1:]))
    except PipelineException as e:
        logger.error(f"Backfill failed: {e.message}", extra={"error_context": e.to_dict()})
        sys.exit(1)
