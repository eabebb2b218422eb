"""SQLAlchemy ORM models for the building-code datastore.

Rows are written by ingestion tooling outside this service; the search
core only reads them.
"""

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, relationship

EMBEDDING_DIM = 1536


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Jurisdiction(Base):
    """A governing body that enforces the code and may amend it locally."""

    __tablename__ = "jurisdictions"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String(200), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # state, county, city, township
    fips_code = Column(String(20))
    parent_jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"))
    county_id = Column(String(64), ForeignKey("jurisdictions.id"))
    latitude = Column(Float)
    longitude = Column(Float)
    building_department_name = Column(String(200))
    building_department_phone = Column(String(100))
    building_department_email = Column(String(200))
    building_department_address = Column(String(500))
    website_url = Column(String(500))
    permit_portal_url = Column(String(500))
    population = Column(Integer)
    has_local_amendments = Column(Boolean, nullable=False, default=False)
    enforcement_authority = Column(String(20), nullable=False, default="self")
    last_verified_date = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    county = relationship("Jurisdiction", remote_side=[id], foreign_keys=[county_id])


class BaseCode(Base):
    """A named, versioned model code (e.g. IRC 2020) as adopted in Minnesota."""

    __tablename__ = "base_codes"

    id = Column(String(64), primary_key=True, default=_new_id)
    code_name = Column(String(200), nullable=False)
    code_abbreviation = Column(String(20), nullable=False)
    code_year = Column(Integer, nullable=False)
    code_organization = Column(String(100))
    effective_date = Column(Date)
    mn_rules_chapter = Column(String(50))
    full_text_url = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CodeSection(Base):
    """A single numbered provision of a base code."""

    __tablename__ = "code_sections"

    id = Column(String(64), primary_key=True, default=_new_id)
    base_code_id = Column(String(64), ForeignKey("base_codes.id"), nullable=False, index=True)
    chapter = Column(String(100))
    section_number = Column(String(50), nullable=False)
    section_title = Column(String(500))
    full_text = Column(Text, nullable=False)
    summary = Column(Text)
    category = Column(String(100), index=True)
    subcategory = Column(String(100))
    tags = Column(ARRAY(String), default=[])
    embedding = Column(Vector(EMBEDDING_DIM))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    base_code = relationship("BaseCode")


class LocalAmendment(Base):
    """A jurisdiction-specific change to a code section or whole base code."""

    __tablename__ = "local_amendments"

    id = Column(String(64), primary_key=True, default=_new_id)
    jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"), nullable=False, index=True)
    base_code_id = Column(String(64), ForeignKey("base_codes.id"))
    code_section_id = Column(String(64), ForeignKey("code_sections.id"), index=True)
    amendment_type = Column(String(20), nullable=False)  # addition, modification, deletion, stricter
    amendment_title = Column(String(500))
    amendment_text = Column(Text, nullable=False)
    original_text = Column(Text)
    effective_date = Column(Date)
    expiration_date = Column(Date)
    ordinance_number = Column(String(100))
    ordinance_url = Column(String(500))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    jurisdiction = relationship("Jurisdiction")


class PermitType(Base):
    __tablename__ = "permit_types"

    id = Column(String(64), primary_key=True, default=_new_id)
    jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"), nullable=False, index=True)
    permit_name = Column(String(200), nullable=False)
    permit_code = Column(String(50))
    permit_category = Column(String(30), nullable=False)
    description = Column(Text)
    when_required = Column(Text)
    exemptions = Column(Text)
    contractor_license_required = Column(Boolean, nullable=False, default=False)
    homeowner_can_pull = Column(Boolean, nullable=False, default=True)
    application_method = Column(String(20))  # online, in_person, mail, either
    application_url = Column(String(500))
    typical_processing_days = Column(Integer)
    expedited_available = Column(Boolean, nullable=False, default=False)
    permit_validity_days = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PermitFeeSchedule(Base):
    __tablename__ = "permit_fee_schedules"

    id = Column(String(64), primary_key=True, default=_new_id)
    permit_type_id = Column(String(64), ForeignKey("permit_types.id"), nullable=False, index=True)
    jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"), nullable=False, index=True)
    fee_type = Column(String(20), nullable=False)  # flat, valuation_based, per_unit, tiered, calculated
    flat_fee = Column(Float)
    valuation_min = Column(Float)
    valuation_max = Column(Float)
    base_fee = Column(Float)
    per_thousand_rate = Column(Float)
    unit_type = Column(String(50))
    per_unit_fee = Column(Float)
    plan_review_fee = Column(Float)
    plan_review_percentage = Column(Float)
    fee_schedule_url = Column(String(500))
    effective_date = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InspectionType(Base):
    __tablename__ = "inspection_types"

    id = Column(String(64), primary_key=True, default=_new_id)
    jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"), nullable=False, index=True)
    permit_type_id = Column(String(64), ForeignKey("permit_types.id"))
    inspection_name = Column(String(200), nullable=False)
    inspection_code = Column(String(50))
    phase = Column(String(30))  # pre_construction, foundation, rough, insulation, final
    typical_sequence_order = Column(Integer)
    description = Column(Text)
    checklist_items = Column(ARRAY(String), default=[])
    common_failures = Column(ARRAY(String), default=[])
    scheduling_method = Column(String(20))
    scheduling_url = Column(String(500))
    scheduling_phone = Column(String(100))
    advance_notice_hours = Column(Integer)
    inspection_window = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PermitRequirement(Base):
    __tablename__ = "permit_requirements"

    id = Column(String(64), primary_key=True, default=_new_id)
    jurisdiction_id = Column(String(64), ForeignKey("jurisdictions.id"), nullable=False, index=True)
    permit_type_id = Column(String(64), ForeignKey("permit_types.id"), nullable=False)
    scope_category = Column(String(100))
    scope_item = Column(String(200))
    trigger_condition = Column(Text)
    threshold_value = Column(Float)
    threshold_unit = Column(String(50))
    permit_required = Column(Boolean, nullable=False, default=True)
    notes = Column(Text)
    code_reference = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
