"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Generic, TypeVar
from datetime import datetime
from models.base import DataType, ContributionStatus
from schemas.contribution import ProviderStats, SellableRecord

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    request_id: str
    api_latency_ms: int
    data: T

# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    storage_backend: str
    database_connected: bool
    fallback_enabled: bool = False
    environment: str

    @staticmethod
    def overall_status(database_connected: bool, fallback_enabled: bool) -> str:
        if database_connected:
            return "healthy"
        if fallback_enabled:
            return "degraded"
        return "unhealthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "storage_backend": "postgres",
                "database_connected": True,
                "fallback_enabled": False,
                "environment": "production"
            }
        }

# ============================================================================
# Contribution Schemas
# ============================================================================

class IngestResponse(BaseModel):
    """Summary returned after a contribution is stored"""
    success: bool = True
    id: str
    reclaim_proof_id: str
    data_type: DataType
    cohort_id: Optional[str]
    data_quality_score: Optional[int]
    processing_method: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SellableRecord):
        return cls(
            id=record.id,
            reclaim_proof_id=record.reclaim_proof_id,
            data_type=record.data_type,
            cohort_id=record.cohort_id,
            data_quality_score=record.data_quality_score,
            processing_method=record.processing_method,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "success": True,
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "reclaim_proof_id": "rp-001",
                "data_type": "zomato_order_history",
                "cohort_id": "cohort_3f1c9a7be20d4c51",
                "data_quality_score": 15,
                "processing_method": "pipeline",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z"
            }
        }


class ContributionResponse(BaseModel):
    """One stored contribution"""
    id: str
    user_id: str
    reclaim_proof_id: str
    data_type: DataType
    status: ContributionStatus
    processing_method: str
    sellable_data: Dict[str, Any]
    metadata: Optional[Dict[str, Any]]
    indexed_fields: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SellableRecord):
        return cls(**record.model_dump())

    class Config:
        use_enum_values = True


class PaginationMetadata(BaseModel):
    """Offset pagination metadata"""
    total_items: int
    limit: int
    offset: int
    returned: int
    has_next: bool
    has_previous: bool


class ContributionListResponse(BaseModel):
    """Filtered page of contributions"""
    items: List[ContributionResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "pagination": {
                    "total_items": 150,
                    "limit": 100,
                    "offset": 0,
                    "returned": 100,
                    "has_next": True,
                    "has_previous": False
                },
                "filters_applied": {
                    "dataType": "zomato_order_history",
                    "minOrders": 10
                }
            }
        }

# ============================================================================
# Statistics Schemas
# ============================================================================

class StatsResponse(BaseModel):
    """Provider-wide statistics"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    total_contributions: int
    providers: List[ProviderStats]

# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response, the body of PipelineException.to_dict()"""
    error_type: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    original_error: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error_type": "UnknownDataTypeError",
                "message": "Unsupported data type: spotify_history",
                "context": {"data_type": "spotify_history"},
                "timestamp": "2024-01-15T10:30:00Z",
                "original_error": None
            }
        }
