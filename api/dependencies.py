"""
FastAPI dependencies: stores, pipeline, exporter and the shared filter set
"""

from datetime import datetime
from typing import Optional
from fastapi import Depends, Query, Request
from ingestion.exporter import ContributionExporter
from ingestion.loaders.base import ContributionStore
from ingestion.runner import ContributionPipeline
from schemas.contribution import ContributionFilters


def get_store(request: Request) -> ContributionStore:
    """The authoritative store created at startup"""
    return request.app.state.store


def get_fallback_store(request: Request) -> Optional[ContributionStore]:
    return getattr(request.app.state, "fallback_store", None)


def get_pipeline(
    store: ContributionStore = Depends(get_store),
    fallback_store: Optional[ContributionStore] = Depends(get_fallback_store)
) -> ContributionPipeline:
    return ContributionPipeline(store, fallback_store)


def get_exporter(store: ContributionStore = Depends(get_store)) -> ContributionExporter:
    return ContributionExporter(store)


def contribution_filters(
    data_type: Optional[str] = Query(None, alias="dataType", description="Provider data type"),
    user_id: Optional[str] = Query(None, alias="userId", description="Contributor id"),
    start_date: Optional[datetime] = Query(None, alias="startDate", description="Created at or after"),
    end_date: Optional[datetime] = Query(None, alias="endDate", description="Created at or before"),
    limit: int = Query(100, ge=1, le=1000, description="Records per page"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    min_orders: Optional[int] = Query(None, alias="minOrders", ge=0),
    min_gmv: Optional[float] = Query(None, alias="minGMV", ge=0),
    lifestyle_segment: Optional[str] = Query(None, alias="lifestyleSegment"),
    city_cluster: Optional[str] = Query(None, alias="cityCluster"),
    min_followers: Optional[int] = Query(None, alias="minFollowers", ge=0),
    min_contributions: Optional[int] = Query(None, alias="minContributions", ge=0),
    developer_tier: Optional[str] = Query(None, alias="developerTier"),
    min_titles: Optional[int] = Query(None, alias="minTitles", ge=0),
    min_watch_hours: Optional[float] = Query(None, alias="minWatchHours", ge=0),
    engagement_tier: Optional[str] = Query(None, alias="engagementTier"),
    subscription_tier: Optional[str] = Query(None, alias="subscriptionTier"),
) -> ContributionFilters:
    return ContributionFilters(
        data_type=data_type,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
        min_orders=min_orders,
        min_gmv=min_gmv,
        lifestyle_segment=lifestyle_segment,
        city_cluster=city_cluster,
        min_followers=min_followers,
        min_contributions=min_contributions,
        developer_tier=developer_tier,
        min_titles=min_titles,
        min_watch_hours=min_watch_hours,
        engagement_tier=engagement_tier,
        subscription_tier=subscription_tier,
    )
