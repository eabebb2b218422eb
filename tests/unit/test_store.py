"""Tests for CodeStore row mapping and query construction (session mocked)."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from mncodes.storage.store import CodeStore, like_pattern


def _session_factory(result):
    session = AsyncMock()
    session.execute.return_value = result
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=session)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=ctx), session


def _compiled(session):
    stmt = session.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect())


def _jurisdiction_row(**kwargs):
    defaults = {
        "id": "minneapolis",
        "name": "Minneapolis",
        "type": "city",
        "population": 425000,
        "has_local_amendments": True,
        "enforcement_authority": None,
        "building_department_name": "CPED",
        "building_department_phone": "612-673-3000",
        "building_department_email": None,
        "building_department_address": None,
        "website_url": None,
        "permit_portal_url": None,
        "last_verified_date": date(2026, 1, 15),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _section_row(**kwargs):
    section = SimpleNamespace(
        id=kwargs.get("id", "sec-r312-1"),
        section_number="R312.1",
        section_title=kwargs.get("section_title", "Guards Required"),
        full_text="Guards shall be provided.",
        summary=None,
        category="Guards",
    )
    return SimpleNamespace(CodeSection=section, code_name="International Residential Code",
                           code_abbreviation="IRC", code_year=2020)


class TestLikePattern:
    def test_wraps_term(self):
        assert like_pattern("deck") == "%deck%"

    def test_escapes_wildcards(self):
        assert like_pattern("50%_off\\") == "%50\\%\\_off\\\\%"


class TestResolveJurisdiction:
    async def test_not_found(self):
        result = MagicMock()
        result.first.return_value = None
        factory, _ = _session_factory(result)

        assert await CodeStore(factory).resolve_jurisdiction("Atlantis") is None

    async def test_maps_row(self):
        result = MagicMock()
        result.first.return_value = SimpleNamespace(Jurisdiction=_jurisdiction_row(), county_name="Hennepin")
        factory, session = _session_factory(result)

        record = await CodeStore(factory).resolve_jurisdiction("minnea")

        assert record.id == "minneapolis"
        assert record.county == "Hennepin"
        assert record.enforcement_authority == "self"
        assert record.last_verified_date == "2026-01-15"
        compiled = _compiled(session)
        assert "ILIKE" in str(compiled)
        assert "%minnea%" in compiled.params.values()


class TestFindSectionsMatching:
    async def test_maps_rows_with_base_code(self):
        result = MagicMock()
        result.all.return_value = [_section_row(), _section_row(id="sec-2", section_title=None)]
        factory, _ = _session_factory(result)

        records = await CodeStore(factory).find_sections_matching("guard", 10)

        assert [r.id for r in records] == ["sec-r312-1", "sec-2"]
        assert records[0].base_code_abbreviation == "IRC"
        assert records[0].base_code_year == 2020
        assert records[1].section_title == ""

    async def test_filters_in_query(self):
        result = MagicMock()
        result.all.return_value = []
        factory, session = _session_factory(result)

        await CodeStore(factory).find_sections_matching("deck", 10, code_types=["IRC"], categories=["Guards"])

        sql = str(_compiled(session))
        assert "base_codes.code_abbreviation IN" in sql
        assert "code_sections.category IN" in sql
        assert "LIMIT" in sql


class TestFindAmendments:
    async def test_no_ids_skips_query(self):
        factory, session = _session_factory(MagicMock())
        assert await CodeStore(factory).find_amendments("minneapolis", []) == []
        factory.assert_not_called()

    async def test_maps_rows(self):
        result = MagicMock()
        result.all.return_value = [
            SimpleNamespace(code_section_id="a", amendment_type="modification",
                            amendment_text="Guards at 24 inches.", jurisdiction_name=None),
        ]
        factory, _ = _session_factory(result)

        [amendment] = await CodeStore(factory).find_amendments("minneapolis", ["a"])

        assert amendment.code_section_id == "a"
        assert amendment.jurisdiction == "Unknown"
        assert amendment.text == "Guards at 24 inches."


class TestGetSection:
    async def test_missing(self):
        result = MagicMock()
        result.first.return_value = None
        factory, _ = _session_factory(result)
        assert await CodeStore(factory).get_section("nope") is None
