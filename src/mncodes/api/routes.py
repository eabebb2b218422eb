"""Code search route handlers.

POST /api/codes/search — hybrid search with interpretation, amendments, and summary
GET  /api/codes/search — query-string wrapper that rebuilds the POST body
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from mncodes.api.dependencies import get_search_service
from mncodes.api.schemas import (
    ErrorResponse,
    SearchRequestBody,
    SearchResponseBody,
    error_response,
)
from mncodes.pipeline.search import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/codes", tags=["codes"])

QUERY_REQUIRED = "Query is required"
QUERY_PARAM_REQUIRED = 'Query parameter "q" is required'
INTERNAL_ERROR = "Internal server error"

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing query"},
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
}


async def run_search(body: Any, service: SearchService):
    """Validate a raw request body and run the search pipeline."""
    query = body.get("query") if isinstance(body, dict) else None
    if not isinstance(query, str) or not query.strip():
        return error_response(400, QUERY_REQUIRED)

    try:
        request = SearchRequestBody.model_validate(body)
    except ValidationError as e:
        # query is already a valid string; malformed optional sections fall back to defaults
        bad_fields = {err["loc"][0] for err in e.errors() if err["loc"]} - {"query"}
        logger.info("Ignoring malformed search fields: %s", sorted(bad_fields))
        request = SearchRequestBody.model_validate(
            {key: value for key, value in body.items() if key not in bad_fields}
        )

    try:
        result = await service.search(request.to_domain())
    except Exception:
        logger.exception("Search error for query: %s", query[:80])
        return error_response(500, INTERNAL_ERROR)

    return SearchResponseBody.from_domain(result)


@router.post("/search", response_model=SearchResponseBody, responses=_ERROR_RESPONSES)
async def search_codes(request: Request, service: SearchService = Depends(get_search_service)):
    """Search code sections for a free-text query, optionally within a jurisdiction."""
    try:
        body = await request.json()
    except ValueError:
        return error_response(400, QUERY_REQUIRED)
    return await run_search(body, service)


@router.get("/search", response_model=SearchResponseBody, responses=_ERROR_RESPONSES)
async def search_codes_get(
    q: str | None = None,
    jurisdiction: str | None = None,
    summary: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    service: SearchService = Depends(get_search_service),
):
    """Query-string form of the search; ?summary=false skips the AI summary."""
    if not q or not q.strip():
        return error_response(400, QUERY_PARAM_REQUIRED)

    options: dict[str, Any] = {}
    if summary is not None:
        options["include_ai_summary"] = summary
    if limit is not None:
        options["limit"] = limit
    if offset is not None:
        options["offset"] = offset

    body: dict[str, Any] = {"query": q, "jurisdiction": jurisdiction}
    if options:
        body["options"] = options
    return await run_search(body, service)
