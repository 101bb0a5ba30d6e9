"""
Database connection pool management with SQLAlchemy async

The pool is created once by the process entry point (API startup, script
main) and handed to whatever needs a session. Nothing in this module opens
a connection at import time.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.pool import AsyncAdaptedQueuePool
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    Bounded pool of datastore connections.

    - Fixed size (no overflow) so concurrency is capped by configuration
    - Acquisition waits at most `timeout` seconds, then raises
      sqlalchemy.exc.TimeoutError
    - Sessions are scoped per operation via `session()`
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        timeout: Optional[float] = None,
        recycle: Optional[int] = None,
        command_timeout: Optional[float] = None,
        echo: bool = False
    ):
        self.database_url = database_url or settings.DATABASE_URL
        self.pool_size = pool_size or settings.DB_POOL_SIZE
        self.timeout = timeout if timeout is not None else settings.DB_POOL_TIMEOUT

        url = make_url(self.database_url)
        engine_kwargs = {
            "echo": echo,
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": self.pool_size,
            "max_overflow": 0,
            "pool_timeout": self.timeout,
            "pool_recycle": recycle if recycle is not None else settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,
        }
        if url.drivername == "postgresql+asyncpg":
            engine_kwargs["connect_args"] = {
                "command_timeout": command_timeout or settings.DB_COMMAND_TIMEOUT,
                "timeout": self.timeout,
            }

        self.engine: AsyncEngine = create_async_engine(self.database_url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )
        self.dialect_name = self.engine.dialect.name

        logger.info(
            f"Connection pool created for {url.render_as_string(hide_password=True)} "
            f"(size={self.pool_size}, timeout={self.timeout}s)"
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Acquire a session; the connection returns to the pool on exit."""
        async with self.session_maker() as session:
            yield session

    async def create_all(self, metadata) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Connection pool disposed")
