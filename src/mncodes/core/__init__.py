"""Core domain types shared across all mncodes modules."""

from mncodes.core.types import (
    ALL_MINNESOTA,
    QUERY_INTENTS,
    AmendmentRecord,
    AmendmentRef,
    CodeSearchResult,
    CodeSectionRecord,
    JurisdictionDetail,
    JurisdictionRecord,
    QueryAnalysis,
    RelatedSection,
    ResolvedJurisdiction,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "ALL_MINNESOTA",
    "QUERY_INTENTS",
    "AmendmentRecord",
    "AmendmentRef",
    "CodeSearchResult",
    "CodeSectionRecord",
    "JurisdictionDetail",
    "JurisdictionRecord",
    "QueryAnalysis",
    "RelatedSection",
    "ResolvedJurisdiction",
    "SearchFilters",
    "SearchOptions",
    "SearchRequest",
    "SearchResponse",
]
