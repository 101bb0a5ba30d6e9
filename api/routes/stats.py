"""
Provider statistics endpoint
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from api.dependencies import get_exporter
from ingestion.exporter import ContributionExporter
from schemas.api import StatsResponse
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    data_type: Optional[str] = Query(None, alias="dataType", description="Limit to one provider"),
    exporter: ContributionExporter = Depends(get_exporter)
):
    """
    Contribution statistics.

    Returns per provider:
    - Total contributions and unique contributors
    - Averages and sums of the provider's numeric indexed fields
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    logger.info(f"[{request_id}] GET /stats")

    providers = await exporter.stats(data_type)

    return StatsResponse(
        timestamp=datetime.utcnow(),
        total_contributions=sum(p.total_contributions for p in providers),
        providers=providers,
    )
