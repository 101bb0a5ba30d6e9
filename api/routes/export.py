"""
Buyer export endpoints
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from api.dependencies import contribution_filters, get_exporter
from ingestion.exporter import ContributionExporter
from schemas.contribution import ContributionFilters
import logging
import uuid

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Export"])


@router.get("/export")
async def export_contributions(
    request: Request,
    export_format: str = Query("json", alias="format", pattern="^(json|csv|jsonl)$"),
    filters: ContributionFilters = Depends(contribution_filters),
    exporter: ContributionExporter = Depends(get_exporter)
):
    """
    Export filtered contributions as a downloadable file.

    - json: array of records with parsed sellable_data and metadata
    - csv: one row per record, nested values as JSON strings
    - jsonl: one sellable_data document per line
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] GET /export - format={export_format}")

    result = await exporter.export(filters, export_format)

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Total-Count": str(result.total),
            "X-Record-Count": str(result.record_count),
        },
    )


@router.get("/export/metadata")
async def export_metadata():
    """Supported formats and filter keys"""
    return ContributionExporter.export_metadata()
