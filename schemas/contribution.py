"""
Pydantic schemas for contributions flowing through the pipeline
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from models.base import DataType, ContributionStatus


class ContributionSubmission(BaseModel):
    """
    Input contract for one verified proof.

    `data_type` stays a plain string so unsupported values reach the
    provider lookup and are rejected there with a typed error.
    """
    data_type: str = Field(..., alias="dataType", min_length=1)
    anonymized_data: Any = Field(..., alias="anonymizedData")
    reclaim_proof_id: str = Field(..., alias="reclaimProofId", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)

    @validator("user_id", "reclaim_proof_id", pre=True)
    def coerce_identifier(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "dataType": "zomato_order_history",
                "anonymizedData": {"total_orders": 42, "total_gmv": 1530.50, "city": "Mumbai"},
                "reclaimProofId": "rp-001",
                "userId": "u-123"
            }
        }


class CohortAssignment(BaseModel):
    """Deterministic k-anonymity cohort for one record"""
    cohort_id: str
    k_anonymity_threshold: int
    attributes: List[str] = Field(default_factory=list)


class BuiltRecord(BaseModel):
    """Builder output before indexing and persistence"""
    sellable_data: Dict[str, Any]
    behavioral_insights: Optional[Dict[str, Any]] = None


class SellableRecord(BaseModel):
    """A persisted (or about to be persisted) contribution"""
    id: str
    user_id: str
    reclaim_proof_id: str
    data_type: DataType
    status: ContributionStatus = ContributionStatus.VERIFIED
    processing_method: str = "pipeline"
    sellable_data: Dict[str, Any]
    metadata: Optional[Dict[str, Any]] = None
    indexed_fields: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @property
    def cohort_id(self) -> Optional[str]:
        return self.indexed_fields.get("cohort_id")

    @property
    def data_quality_score(self) -> Optional[int]:
        return self.indexed_fields.get("data_quality_score")


class ContributionFilters(BaseModel):
    """
    Filters accepted by the query/export facade.

    All filters combine with AND. Provider-specific filters restrict the
    result to providers that define them.
    """
    data_type: Optional[str] = Field(None, alias="dataType")
    user_id: Optional[str] = Field(None, alias="userId")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)

    # Zomato
    min_orders: Optional[int] = Field(None, alias="minOrders", ge=0)
    min_gmv: Optional[float] = Field(None, alias="minGMV", ge=0)
    lifestyle_segment: Optional[str] = Field(None, alias="lifestyleSegment")
    city_cluster: Optional[str] = Field(None, alias="cityCluster")

    # GitHub
    min_followers: Optional[int] = Field(None, alias="minFollowers", ge=0)
    min_contributions: Optional[int] = Field(None, alias="minContributions", ge=0)
    developer_tier: Optional[str] = Field(None, alias="developerTier")

    # Netflix
    min_titles: Optional[int] = Field(None, alias="minTitles", ge=0)
    min_watch_hours: Optional[float] = Field(None, alias="minWatchHours", ge=0)
    engagement_tier: Optional[str] = Field(None, alias="engagementTier")
    subscription_tier: Optional[str] = Field(None, alias="subscriptionTier")

    @validator("start_date", "end_date")
    def naive_utc(cls, v):
        # Stored timestamps are naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    def applied(self) -> Dict[str, Any]:
        """Filters that were actually set, keyed by their public names"""
        return {
            k: v for k, v in self.model_dump(mode="json", by_alias=True, exclude={"limit", "offset"}).items()
            if v is not None
        }

    class Config:
        populate_by_name = True


class CohortAggregate(BaseModel):
    """Aggregate over a cohort that satisfies the k-anonymity threshold"""
    cohort_id: str
    data_type: DataType
    member_count: int
    unique_users: int
    k_anonymity_threshold: int
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)
    suppressed: bool = False

    class Config:
        use_enum_values = True


class SuppressedAggregate(BaseModel):
    """
    Returned instead of an aggregate when the cohort is below the
    k-anonymity threshold. Carries no counts.
    """
    cohort_id: str
    suppressed: bool = True
    reason: str = "insufficient_cohort_size"
    k_anonymity_threshold: int


class ProviderStats(BaseModel):
    """Provider-wide totals"""
    data_type: DataType
    total_contributions: int
    unique_users: int
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)

    class Config:
        use_enum_values = True
