"""Jurisdiction directory endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from mncodes.api.dependencies import get_store
from mncodes.api.schemas import (
    ErrorResponse,
    JurisdictionDetailResponse,
    JurisdictionListResponse,
    JurisdictionSummaryResponse,
    PaginationResponse,
    error_response,
)
from mncodes.storage.store import CodeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jurisdictions", tags=["jurisdictions"])


@router.get(
    "",
    response_model=JurisdictionListResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_jurisdictions(
    jurisdiction_type: str | None = Query(default=None, alias="type"),
    county: str | None = None,
    search: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: CodeStore = Depends(get_store),
):
    """List jurisdictions, filtered by type (county/city/township), county, or name."""
    try:
        records = await store.list_jurisdictions(type=jurisdiction_type, county=county, search=search)
    except Exception:
        logger.exception("Jurisdiction list failed")
        return error_response(500, "Internal server error")

    total = len(records)
    page = records[offset:offset + limit]
    return JurisdictionListResponse(
        jurisdictions=[JurisdictionSummaryResponse.from_record(r) for r in page],
        pagination=PaginationResponse(
            total=total, limit=limit, offset=offset, has_more=offset + limit < total,
        ),
    )


@router.get(
    "/{jurisdiction_id}",
    response_model=JurisdictionDetailResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_jurisdiction(jurisdiction_id: str, store: CodeStore = Depends(get_store)):
    """Contacts, permits, local amendments, and inspection scheduling for one jurisdiction."""
    try:
        detail = await store.get_jurisdiction_detail(jurisdiction_id)
    except Exception:
        logger.exception("Jurisdiction detail failed for %s", jurisdiction_id)
        return error_response(500, "Internal server error")

    if detail is None:
        return error_response(404, "Jurisdiction not found")
    return JurisdictionDetailResponse.from_detail(detail)
