"""
Script to run the contribution pipeline over a JSON file of submissions

Usage:
    python scripts/run_pipeline.py submissions.json

The file holds either one submission object or a list of them, each with
dataType, anonymizedData, reclaimProofId and userId.
"""

import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from pydantic import ValidationError
from core.config import settings
from core.database import ConnectionPool
from core.logging import setup_logging
from ingestion.loaders.factory import create_stores
from ingestion.runner import ContributionPipeline
from schemas.contribution import ContributionSubmission

setup_logging()
logger = logging.getLogger(__name__)


def load_submissions(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    return [ContributionSubmission.model_validate(item) for item in data]


async def run_pipeline(path: str) -> int:
    """Process every submission in the file; returns the process exit code"""
    try:
        submissions = load_submissions(path)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Could not read submissions from {path}: {str(e)}")
        return 1

    pool = ConnectionPool() if settings.STORAGE_BACKEND == "postgres" else None
    store, fallback_store = create_stores(settings, pool)

    try:
        pipeline = ContributionPipeline(store, fallback_store)
        result = await pipeline.process_batch(submissions)
        logger.info(
            f"Pipeline completed: {result['status']} - "
            f"Processed={result['records_processed']}, Failed={result['records_failed']}"
        )
        for detail in result.get("error_details", []):
            logger.error(f"Submission {detail['index']} failed: {detail['error_type']}: {detail['error_message']}")
        return 0 if result["status"] == "success" else 1
    finally:
        await store.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/run_pipeline.py <submissions.json>")
        sys.exit(2)
    sys.exit(asyncio.run(run_pipeline(sys.argv[1])))
