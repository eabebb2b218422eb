"""Pydantic request/response models for the mncodes API.

These are the API contract, decoupled from the internal domain dataclasses
in mncodes.core.types. Route handlers convert between the two.
"""

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from mncodes.core.types import (
    CodeSearchResult,
    JurisdictionDetail,
    JurisdictionRecord,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    SearchResponse,
)


class ErrorResponse(BaseModel):
    """Error response body."""

    error: str


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------------------------------------------------------------------------
# Code search
# ---------------------------------------------------------------------------

class SearchFiltersBody(BaseModel):
    code_types: list[str] | None = None
    categories: list[str] | None = None
    include_amendments: bool | None = None


DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class SearchOptionsBody(BaseModel):
    """Paging and summary options; out-of-range paging values are clamped, never rejected."""

    include_ai_summary: bool = True
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    offset: int = Field(default=0, ge=0)

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value):
        try:
            limit = int(value)
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_LIMIT
        if limit < 1:
            return DEFAULT_LIMIT
        return min(limit, MAX_LIMIT)

    @field_validator("offset", mode="before")
    @classmethod
    def _clamp_offset(cls, value):
        try:
            return max(int(value), 0)
        except (TypeError, ValueError, OverflowError):
            return 0


class SearchRequestBody(BaseModel):
    """Request body for POST /api/codes/search."""

    query: str = Field(..., min_length=1, examples=["deck railing height"])
    jurisdiction: str | None = Field(default=None, examples=["Minneapolis"])
    filters: SearchFiltersBody | None = None
    options: SearchOptionsBody | None = None

    def to_domain(self) -> SearchRequest:
        filters = self.filters or SearchFiltersBody()
        options = self.options or SearchOptionsBody()
        return SearchRequest(
            query=self.query,
            jurisdiction=self.jurisdiction,
            filters=SearchFilters(
                code_types=filters.code_types,
                categories=filters.categories,
                include_amendments=filters.include_amendments,
            ),
            options=SearchOptions(
                include_ai_summary=options.include_ai_summary,
                limit=options.limit,
                offset=options.offset,
            ),
        )


class AmendmentResponse(BaseModel):
    jurisdiction: str
    amendment_type: str
    text: str


class SearchResultResponse(BaseModel):
    id: str
    source: str
    section: str
    title: str
    text: str
    summary: str | None = None
    relevance_score: float
    local_amendments: list[AmendmentResponse] = []

    @classmethod
    def from_result(cls, result: CodeSearchResult) -> "SearchResultResponse":
        return cls(
            id=result.id,
            source=result.source,
            section=result.section_number,
            title=result.section_title,
            text=result.full_text,
            summary=result.summary,
            relevance_score=result.relevance_score,
            local_amendments=[
                AmendmentResponse(jurisdiction=a.jurisdiction, amendment_type=a.amendment_type, text=a.text)
                for a in result.local_amendments
            ],
        )


class RelatedSectionResponse(BaseModel):
    id: str
    section: str
    title: str
    relationship: str


class JurisdictionResolvedResponse(BaseModel):
    id: str | None = None
    name: str
    type: str | None = None
    county: str | None = None


class QueryInterpretationResponse(BaseModel):
    intent: str
    entities: list[str]
    jurisdiction_resolved: JurisdictionResolvedResponse


class SearchResponseBody(BaseModel):
    """Response body for /api/codes/search."""

    query_interpretation: QueryInterpretationResponse
    results: list[SearchResultResponse]
    ai_summary: str | None = None
    related_sections: list[RelatedSectionResponse]
    total_count: int
    has_more: bool

    @classmethod
    def from_domain(cls, response: SearchResponse) -> "SearchResponseBody":
        j = response.jurisdiction
        return cls(
            query_interpretation=QueryInterpretationResponse(
                intent=response.analysis.intent,
                entities=response.analysis.entities,
                jurisdiction_resolved=JurisdictionResolvedResponse(
                    id=j.id, name=j.name, type=j.type, county=j.county,
                ),
            ),
            results=[SearchResultResponse.from_result(r) for r in response.results],
            ai_summary=response.ai_summary,
            related_sections=[
                RelatedSectionResponse(id=r.id, section=r.section, title=r.title, relationship=r.relationship)
                for r in response.related_sections
            ],
            total_count=response.total_count,
            has_more=response.has_more,
        )


# ---------------------------------------------------------------------------
# Jurisdiction directory
# ---------------------------------------------------------------------------

class JurisdictionSummaryResponse(BaseModel):
    id: str
    name: str
    type: str | None = None
    county: str | None = None
    population: int | None = None
    has_local_amendments: bool = False
    enforcement_authority: str = "self"
    building_department_phone: str | None = None
    building_department_email: str | None = None
    website_url: str | None = None
    last_verified_date: str | None = None

    @classmethod
    def from_record(cls, record: JurisdictionRecord) -> "JurisdictionSummaryResponse":
        return cls(
            id=record.id,
            name=record.name,
            type=record.type,
            county=record.county,
            population=record.population,
            has_local_amendments=record.has_local_amendments,
            enforcement_authority=record.enforcement_authority,
            building_department_phone=record.building_department_phone,
            building_department_email=record.building_department_email,
            website_url=record.website_url,
            last_verified_date=record.last_verified_date,
        )


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class JurisdictionListResponse(BaseModel):
    jurisdictions: list[JurisdictionSummaryResponse]
    pagination: PaginationResponse


class BuildingDepartmentResponse(BaseModel):
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    permit_portal_url: str | None = None


class PermitSummaryResponse(BaseModel):
    type: str
    category: str
    application: str | None = None
    processing_days: int | None = None


class AmendmentSummaryResponse(BaseModel):
    id: str
    title: str | None = None
    type: str
    description: str
    effective_date: str | None = None


class InspectionSchedulingResponse(BaseModel):
    scheduling_method: str | None = None
    scheduling_url: str | None = None
    scheduling_phone: str | None = None
    advance_notice_hours: int | None = None


class JurisdictionDetailResponse(BaseModel):
    id: str
    name: str
    type: str | None = None
    county: str | None = None
    population: int | None = None
    has_local_amendments: bool = False
    enforcement_authority: str = "self"
    building_department: BuildingDepartmentResponse
    permits: list[PermitSummaryResponse] = []
    local_amendments: list[AmendmentSummaryResponse] = []
    inspections: InspectionSchedulingResponse
    last_verified_date: str | None = None

    @classmethod
    def from_detail(cls, detail: JurisdictionDetail) -> "JurisdictionDetailResponse":
        j = detail.jurisdiction
        return cls(
            id=j.id,
            name=j.name,
            type=j.type,
            county=j.county,
            population=j.population,
            has_local_amendments=j.has_local_amendments,
            enforcement_authority=j.enforcement_authority,
            building_department=BuildingDepartmentResponse(
                name=j.building_department_name,
                address=j.building_department_address,
                phone=j.building_department_phone,
                email=j.building_department_email,
                website=j.website_url,
                permit_portal_url=j.permit_portal_url,
            ),
            permits=[
                PermitSummaryResponse(
                    type=p.permit_name,
                    category=p.permit_category,
                    application=p.application_method,
                    processing_days=p.typical_processing_days,
                )
                for p in detail.permits
            ],
            local_amendments=[
                AmendmentSummaryResponse(
                    id=a.id,
                    title=a.title,
                    type=a.amendment_type,
                    description=a.description,
                    effective_date=a.effective_date,
                )
                for a in detail.local_amendments
            ],
            inspections=InspectionSchedulingResponse(
                scheduling_method=detail.inspections.scheduling_method,
                scheduling_url=detail.inspections.scheduling_url,
                scheduling_phone=detail.inspections.scheduling_phone,
                advance_notice_hours=detail.inspections.advance_notice_hours,
            ),
            last_verified_date=j.last_verified_date,
        )
