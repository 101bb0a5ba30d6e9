"""
Cohort aggregate endpoint gated by k-anonymity
"""

from typing import Union
from fastapi import APIRouter, Depends, HTTPException, Request
from api.dependencies import get_exporter
from ingestion.exporter import ContributionExporter
from schemas.api import APIResponse
from schemas.contribution import CohortAggregate, SuppressedAggregate
import time
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Cohorts"])


@router.get(
    "/cohorts/{cohort_id}/aggregate",
    response_model=APIResponse[Union[CohortAggregate, SuppressedAggregate]]
)
async def cohort_aggregate(
    request: Request,
    cohort_id: str,
    exporter: ContributionExporter = Depends(get_exporter)
):
    """
    Aggregate metrics for one cohort.

    Cohorts smaller than the k-anonymity threshold return a suppressed
    result with no counts; unknown cohorts return 404.
    """
    start_time = time.perf_counter()
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")

    result = await exporter.cohort_aggregate(cohort_id)
    if result is None:
        raise HTTPException(status_code=404, detail="No data for cohort")

    logger.info(f"[{request_id}] GET /cohorts/{cohort_id}/aggregate - suppressed={result.suppressed}")

    return APIResponse(
        request_id=request_id,
        api_latency_ms=int((time.perf_counter() - start_time) * 1000),
        data=result,
    )
