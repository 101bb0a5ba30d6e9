from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON, Enum
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class DataType(str, enum.Enum):
    """Supported proof providers"""
    ZOMATO_ORDER_HISTORY = "zomato_order_history"
    GITHUB_PROFILE = "github_profile"
    NETFLIX_WATCH_HISTORY = "netflix_watch_history"


class ContributionStatus(str, enum.Enum):
    """Contribution lifecycle status"""
    NEW = "new"
    VERIFIED = "verified"
    REJECTED = "rejected"


# ============================================================================
# SHARED COLUMNS
# ============================================================================

class ContributionMixin:
    """
    Columns common to every provider table.

    Provider tables add their own indexed columns; every indexed column is
    a projection of `sellable_data` and never holds anything else.
    """

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    reclaim_proof_id = Column(String(255), nullable=False, unique=True, index=True)

    status = Column(Enum(ContributionStatus), default=ContributionStatus.VERIFIED, nullable=False)
    processing_method = Column(String(50), nullable=False, default="pipeline")

    sellable_data = Column(JSONType, nullable=False)
    extra_metadata = Column("metadata", JSONType, nullable=True)  # Behavioral insights side document

    cohort_id = Column(String(64), nullable=True, index=True)
    data_quality_score = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
