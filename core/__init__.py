"""
Core utilities and configuration for the MYRAD contribution pipeline.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Explicitly owned connection pool and session scoping
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import ConnectionPool
    from core.exceptions import PersistenceError, UnknownDataTypeError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Create the pool once and hand it to the persistence layer
    pool = ConnectionPool()
    async with pool.session() as session:
        # Perform database operations
        pass
    await pool.dispose()
"""

__all__ = [
    "settings",
    "ConnectionPool",
    "setup_logging",
    # Exceptions
    "PipelineException",
    "RetryableError",
    "NonRetryableError",
    "MalformedInputError",
    "UnknownDataTypeError",
    "PersistenceError",
    "DatabaseConnectionError",
    "UpsertError",
    "ProofConflictError",
    "ConstraintViolationError",
]
