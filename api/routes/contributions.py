"""
Contribution ingestion and retrieval endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from api.dependencies import contribution_filters, get_exporter, get_pipeline, get_store
from ingestion.exporter import ContributionExporter
from ingestion.loaders.base import ContributionStore
from ingestion.runner import ContributionPipeline
from schemas.api import (
    ContributionListResponse, ContributionResponse, ErrorResponse, IngestResponse, PaginationMetadata
)
from schemas.contribution import ContributionFilters, ContributionSubmission
import logging
import uuid

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Contributions"])


@router.post(
    "/contributions",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown data type or malformed payload"},
        409: {"model": ErrorResponse, "description": "Proof id owned by another data type, or another constraint violated"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
async def submit_contribution(
    request: Request,
    submission: ContributionSubmission,
    pipeline: ContributionPipeline = Depends(get_pipeline)
):
    """
    Process one verified proof and store its sellable record.

    Resubmitting the same `reclaimProofId` updates the stored record in place.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /contributions - dataType={submission.data_type}")

    record = await pipeline.process(submission)
    return IngestResponse.from_record(record)


@router.get("/contributions", response_model=ContributionListResponse)
async def list_contributions(
    request: Request,
    filters: ContributionFilters = Depends(contribution_filters),
    exporter: ContributionExporter = Depends(get_exporter)
):
    """
    Filtered, paginated contributions, newest first.

    Provider-specific filters (minOrders, minFollowers, minTitles, ...)
    restrict the result to the providers that define them.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    applied = filters.applied()
    logger.info(f"[{request_id}] GET /contributions - filters: {sorted(applied)}")

    records, total = await exporter.query(filters)

    return ContributionListResponse(
        items=[ContributionResponse.from_record(r) for r in records],
        pagination=PaginationMetadata(
            total_items=total,
            limit=filters.limit,
            offset=filters.offset,
            returned=len(records),
            has_next=filters.offset + len(records) < total,
            has_previous=filters.offset > 0,
        ),
        filters_applied=applied,
    )


@router.get("/contributions/{reclaim_proof_id}", response_model=ContributionResponse)
async def get_contribution(
    reclaim_proof_id: str,
    store: ContributionStore = Depends(get_store)
):
    record = await store.get(reclaim_proof_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Contribution not found")
    return ContributionResponse.from_record(record)
