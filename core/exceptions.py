"""
Custom exceptions for the contribution pipeline with structured error context.

Each exception carries context information for debugging and monitoring.
None of them should ever carry a raw proof payload or a user identifier in
its context.

Exception Hierarchy:
    PipelineException (base)
    ├── MalformedInputError
    ├── UnknownDataTypeError
    ├── PersistenceError
    │   ├── DatabaseConnectionError
    │   ├── UpsertError
    │   ├── ProofConflictError
    │   └── ConstraintViolationError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (data_type, table, operation)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(PipelineException):
    """
    Mixin for errors a caller may retry with the same proof id.

    The pipeline itself never retries; the upsert makes a retry safe.
    """
    pass


class NonRetryableError(PipelineException):
    """
    Mixin for errors that will fail the same way on every attempt.

    Use this for permanent errors like:
    - Unsupported data types
    - Payloads that are not a JSON object
    - Proof ids already claimed by another provider
    """
    pass


# ============================================================================
# Input Errors
# ============================================================================

class MalformedInputError(NonRetryableError):
    """
    Raised when a submission or its payload cannot be processed at all.

    Context should include:
        - data_type: Declared data type
        - payload_type: Python type name of the received payload
    """
    pass


class UnknownDataTypeError(NonRetryableError):
    """
    Raised when a data type has no registered provider.

    Context should include:
        - data_type: The rejected value
        - supported: Registered data types
    """
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(PipelineException):
    """
    Base exception for storage failures.

    Context should include:
        - operation: UPSERT, SELECT, AGGREGATE, REINDEX
        - table_name / storage_path: Target of the operation
        - reclaim_proof_id: Proof being written (if applicable)
    """
    pass


class DatabaseConnectionError(RetryableError, PersistenceError):
    """Datastore unreachable or pool acquisition timed out."""
    pass


class UpsertError(RetryableError, PersistenceError):
    """The datastore rejected a write."""
    pass


class ProofConflictError(NonRetryableError, PersistenceError):
    """A proof id is already stored under a different data type."""
    pass


class ConstraintViolationError(NonRetryableError, PersistenceError):
    """A write broke a uniqueness or integrity constraint; resending it fails the same way."""
    pass
