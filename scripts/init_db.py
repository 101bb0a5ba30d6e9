import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import ConnectionPool
from core.logging import setup_logging
from models.base import Base
# Import all models to ensure they are registered
from models.zomato_contribution import ZomatoContribution
from models.github_contribution import GithubContribution
from models.netflix_contribution import NetflixContribution
from models.proof_registry import ProofRegistry

setup_logging()
logger = logging.getLogger(__name__)


async def init_database():
    if settings.STORAGE_BACKEND != "postgres":
        logger.info("JSON store needs no schema, nothing to create")
        return

    logger.info("Connecting to database...")
    pool = ConnectionPool(pool_size=1)

    try:
        logger.info("Creating tables...")
        await pool.create_all(Base.metadata)
        logger.info(f"Tables created successfully: {', '.join(sorted(Base.metadata.tables))}")
    finally:
        await pool.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
