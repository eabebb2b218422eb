"""Domain types for the mncodes building-code search service.

All shared dataclasses live here to prevent circular imports and to give
the datastore boundary explicit record shapes. ORM rows are converted into
these records inside the storage layer; nothing above it sees a row.
"""

from dataclasses import dataclass, field

QUERY_INTENTS = ("requirement_lookup", "definition", "comparison", "permit_check", "general")

ALL_MINNESOTA = "All Minnesota"


# ---------------------------------------------------------------------------
# Datastore records
# ---------------------------------------------------------------------------

@dataclass
class JurisdictionRecord:
    """A state, county, city, or township as stored in the jurisdictions table."""

    id: str
    name: str
    type: str | None = None
    county: str | None = None
    population: int | None = None
    has_local_amendments: bool = False
    enforcement_authority: str = "self"
    building_department_name: str | None = None
    building_department_phone: str | None = None
    building_department_email: str | None = None
    building_department_address: str | None = None
    website_url: str | None = None
    permit_portal_url: str | None = None
    last_verified_date: str | None = None


@dataclass
class CodeSectionRecord:
    """One numbered provision of a model code, joined to its base code."""

    id: str
    section_number: str
    section_title: str
    full_text: str
    summary: str | None = None
    category: str | None = None
    base_code_name: str | None = None
    base_code_abbreviation: str | None = None
    base_code_year: int | None = None


@dataclass
class AmendmentRecord:
    """A local amendment row with its jurisdiction name resolved."""

    code_section_id: str
    jurisdiction: str
    amendment_type: str
    text: str


@dataclass
class PermitTypeRecord:
    permit_name: str
    permit_category: str
    application_method: str | None = None
    typical_processing_days: int | None = None


@dataclass
class AmendmentSummary:
    id: str
    title: str | None
    amendment_type: str
    description: str
    effective_date: str | None = None


@dataclass
class InspectionScheduling:
    scheduling_method: str | None = None
    scheduling_url: str | None = None
    scheduling_phone: str | None = None
    advance_notice_hours: int | None = None


@dataclass
class JurisdictionDetail:
    """Full directory entry for one jurisdiction."""

    jurisdiction: JurisdictionRecord
    permits: list[PermitTypeRecord] = field(default_factory=list)
    local_amendments: list[AmendmentSummary] = field(default_factory=list)
    inspections: InspectionScheduling = field(default_factory=InspectionScheduling)


# ---------------------------------------------------------------------------
# Search types
# ---------------------------------------------------------------------------

@dataclass
class AmendmentRef:
    """Amendment text attached to a search result."""

    jurisdiction: str
    amendment_type: str
    text: str


@dataclass
class CodeSearchResult:
    """A scored candidate code section."""

    id: str
    section_number: str
    section_title: str
    full_text: str
    summary: str | None = None
    category: str | None = None
    base_code_name: str | None = None
    base_code_abbreviation: str | None = None
    base_code_year: int | None = None
    relevance_score: float = 0.0
    local_amendments: list[AmendmentRef] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: CodeSectionRecord, score: float) -> "CodeSearchResult":
        return cls(
            id=record.id,
            section_number=record.section_number,
            section_title=record.section_title,
            full_text=record.full_text,
            summary=record.summary,
            category=record.category,
            base_code_name=record.base_code_name,
            base_code_abbreviation=record.base_code_abbreviation,
            base_code_year=record.base_code_year,
            relevance_score=score,
        )

    @property
    def source(self) -> str:
        """Display label for the model code, e.g. "IRC 2020"."""
        label = self.base_code_abbreviation or self.base_code_name or "Code"
        if self.base_code_year:
            return f"{label} {self.base_code_year}"
        return label


@dataclass
class RelatedSection:
    id: str
    section: str
    title: str
    relationship: str = "related"


@dataclass
class ResolvedJurisdiction:
    """The jurisdiction a search was scoped to (or the statewide default)."""

    id: str | None = None
    name: str = ALL_MINNESOTA
    type: str | None = None
    county: str | None = None


@dataclass
class QueryAnalysis:
    """Intent and key terms extracted from a free-text query."""

    intent: str
    entities: list[str]
    suggested_filters: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class SearchFilters:
    code_types: list[str] | None = None
    categories: list[str] | None = None
    include_amendments: bool | None = None


@dataclass
class SearchOptions:
    include_ai_summary: bool = True
    limit: int = 20
    offset: int = 0


@dataclass
class SearchRequest:
    query: str
    jurisdiction: str | None = None
    filters: SearchFilters = field(default_factory=SearchFilters)
    options: SearchOptions = field(default_factory=SearchOptions)


@dataclass
class SearchResponse:
    """Everything the search endpoint returns, before JSON shaping."""

    analysis: QueryAnalysis
    jurisdiction: ResolvedJurisdiction
    results: list[CodeSearchResult]
    ai_summary: str | None
    related_sections: list[RelatedSection]
    total_count: int
    has_more: bool
