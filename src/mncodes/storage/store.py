"""Read-only datastore handle for code sections, amendments, and jurisdictions.

CodeStore is constructed with a session factory and injected into the
search service and API routes. Every query opens its own short-lived
session and returns typed records from mncodes.core.types; ORM rows never
leave this module.
"""

import logging
from datetime import date

from sqlalchemy import func, or_, select, text
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import aliased

from mncodes.core.types import (
    AmendmentRecord,
    AmendmentSummary,
    CodeSectionRecord,
    InspectionScheduling,
    JurisdictionDetail,
    JurisdictionRecord,
    PermitTypeRecord,
)
from mncodes.storage.models import (
    BaseCode,
    CodeSection,
    InspectionType,
    Jurisdiction,
    LocalAmendment,
    PermitType,
)

logger = logging.getLogger(__name__)


def like_pattern(term: str) -> str:
    """Build a %term% pattern with LIKE wildcards in the term escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _jurisdiction_record(row: Jurisdiction, county_name: str | None) -> JurisdictionRecord:
    return JurisdictionRecord(
        id=row.id,
        name=row.name,
        type=row.type,
        county=county_name,
        population=row.population,
        has_local_amendments=bool(row.has_local_amendments),
        enforcement_authority=row.enforcement_authority or "self",
        building_department_name=row.building_department_name,
        building_department_phone=row.building_department_phone,
        building_department_email=row.building_department_email,
        building_department_address=row.building_department_address,
        website_url=row.website_url,
        permit_portal_url=row.permit_portal_url,
        last_verified_date=_iso(row.last_verified_date),
    )


def _section_record(row) -> CodeSectionRecord:
    section = row.CodeSection
    return CodeSectionRecord(
        id=section.id,
        section_number=section.section_number,
        section_title=section.section_title or "",
        full_text=section.full_text,
        summary=section.summary,
        category=section.category,
        base_code_name=row.code_name,
        base_code_abbreviation=row.code_abbreviation,
        base_code_year=row.code_year,
    )


def _section_select(*extra):
    return select(
        CodeSection,
        BaseCode.code_name,
        BaseCode.code_abbreviation,
        BaseCode.code_year,
        *extra,
    ).outerjoin(BaseCode, CodeSection.base_code_id == BaseCode.id)


class CodeStore:
    """Typed read access to the building-code tables."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def ping(self) -> None:
        """Round-trip a trivial query; raises if the database is unreachable."""
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    # ------------------------------------------------------------------
    # Jurisdictions
    # ------------------------------------------------------------------

    async def resolve_jurisdiction(self, term: str) -> JurisdictionRecord | None:
        """Fuzzy lookup: name contains the term, or the id equals it."""
        county = aliased(Jurisdiction)
        stmt = (
            select(Jurisdiction, county.name.label("county_name"))
            .outerjoin(county, Jurisdiction.county_id == county.id)
            .where(or_(
                Jurisdiction.name.ilike(like_pattern(term), escape="\\"),
                Jurisdiction.id == term,
            ))
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return _jurisdiction_record(row.Jurisdiction, row.county_name)

    async def list_jurisdictions(
        self,
        type: str | None = None,
        county: str | None = None,
        search: str | None = None,
    ) -> list[JurisdictionRecord]:
        county_alias = aliased(Jurisdiction)
        stmt = (
            select(Jurisdiction, county_alias.name.label("county_name"))
            .outerjoin(county_alias, Jurisdiction.county_id == county_alias.id)
            .order_by(Jurisdiction.name)
        )
        if type:
            stmt = stmt.where(Jurisdiction.type == type)
        if county:
            stmt = stmt.where(func.lower(county_alias.name) == county.lower())
        if search:
            pattern = like_pattern(search)
            stmt = stmt.where(or_(
                Jurisdiction.name.ilike(pattern, escape="\\"),
                county_alias.name.ilike(pattern, escape="\\"),
            ))
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_jurisdiction_record(row.Jurisdiction, row.county_name) for row in rows]

    async def get_jurisdiction_detail(self, jurisdiction_id: str) -> JurisdictionDetail | None:
        county = aliased(Jurisdiction)
        async with self._session_factory() as session:
            row = (await session.execute(
                select(Jurisdiction, county.name.label("county_name"))
                .outerjoin(county, Jurisdiction.county_id == county.id)
                .where(Jurisdiction.id == jurisdiction_id)
            )).first()
            if row is None:
                return None

            permits = (await session.execute(
                select(PermitType)
                .where(PermitType.jurisdiction_id == jurisdiction_id)
                .order_by(PermitType.permit_name)
            )).scalars().all()

            amendments = (await session.execute(
                select(LocalAmendment)
                .where(LocalAmendment.jurisdiction_id == jurisdiction_id)
                .order_by(LocalAmendment.effective_date.desc().nulls_last())
            )).scalars().all()

            inspection = (await session.execute(
                select(InspectionType)
                .where(
                    InspectionType.jurisdiction_id == jurisdiction_id,
                    InspectionType.scheduling_method.is_not(None),
                )
                .order_by(InspectionType.typical_sequence_order)
                .limit(1)
            )).scalars().first()

        return JurisdictionDetail(
            jurisdiction=_jurisdiction_record(row.Jurisdiction, row.county_name),
            permits=[
                PermitTypeRecord(
                    permit_name=p.permit_name,
                    permit_category=p.permit_category,
                    application_method=p.application_method,
                    typical_processing_days=p.typical_processing_days,
                )
                for p in permits
            ],
            local_amendments=[
                AmendmentSummary(
                    id=a.id,
                    title=a.amendment_title,
                    amendment_type=a.amendment_type,
                    description=a.amendment_text,
                    effective_date=_iso(a.effective_date),
                )
                for a in amendments
            ],
            inspections=InspectionScheduling(
                scheduling_method=inspection.scheduling_method,
                scheduling_url=inspection.scheduling_url,
                scheduling_phone=inspection.scheduling_phone,
                advance_notice_hours=inspection.advance_notice_hours,
            ) if inspection else InspectionScheduling(),
        )

    # ------------------------------------------------------------------
    # Code sections
    # ------------------------------------------------------------------

    async def find_sections_matching(
        self,
        term: str,
        limit: int,
        code_types: list[str] | None = None,
        categories: list[str] | None = None,
    ) -> list[CodeSectionRecord]:
        """Case-insensitive substring match on title, full text, and summary."""
        pattern = like_pattern(term)
        stmt = _section_select().where(or_(
            CodeSection.section_title.ilike(pattern, escape="\\"),
            CodeSection.full_text.ilike(pattern, escape="\\"),
            CodeSection.summary.ilike(pattern, escape="\\"),
        ))
        if code_types:
            stmt = stmt.where(BaseCode.code_abbreviation.in_(code_types))
        if categories:
            stmt = stmt.where(CodeSection.category.in_(categories))
        stmt = stmt.order_by(BaseCode.code_abbreviation, CodeSection.section_number).limit(limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_section_record(row) for row in rows]

    async def match_sections_by_embedding(
        self,
        embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[tuple[CodeSectionRecord, float]]:
        """Sections whose stored vector has cosine similarity above threshold."""
        distance = CodeSection.embedding.cosine_distance(embedding)
        similarity = (1 - distance).label("similarity")
        stmt = (
            _section_select(similarity)
            .where(CodeSection.embedding.is_not(None))
            .where(1 - distance > threshold)
            .order_by(distance)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [(_section_record(row), float(row.similarity)) for row in rows]

    async def find_amendments(
        self,
        jurisdiction_id: str,
        section_ids: list[str],
    ) -> list[AmendmentRecord]:
        if not section_ids:
            return []
        stmt = (
            select(
                LocalAmendment.code_section_id,
                LocalAmendment.amendment_type,
                LocalAmendment.amendment_text,
                Jurisdiction.name.label("jurisdiction_name"),
            )
            .join(Jurisdiction, LocalAmendment.jurisdiction_id == Jurisdiction.id)
            .where(
                LocalAmendment.jurisdiction_id == jurisdiction_id,
                LocalAmendment.code_section_id.in_(section_ids),
            )
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [
            AmendmentRecord(
                code_section_id=row.code_section_id,
                jurisdiction=row.jurisdiction_name or "Unknown",
                amendment_type=row.amendment_type,
                text=row.amendment_text,
            )
            for row in rows
        ]

    async def find_sections_in_categories(
        self,
        categories: list[str],
        exclude_ids: list[str],
        limit: int,
    ) -> list[CodeSectionRecord]:
        stmt = _section_select().where(CodeSection.category.in_(categories))
        if exclude_ids:
            stmt = stmt.where(CodeSection.id.not_in(exclude_ids))
        stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_section_record(row) for row in rows]

    async def get_section(self, section_id: str) -> CodeSectionRecord | None:
        async with self._session_factory() as session:
            row = (await session.execute(
                _section_select().where(CodeSection.id == section_id)
            )).first()
        return _section_record(row) if row else None
