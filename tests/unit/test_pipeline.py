"""Tests for the search pipeline orchestration."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mncodes.core.types import (
    ALL_MINNESOTA,
    AmendmentRecord,
    CodeSearchResult,
    CodeSectionRecord,
    JurisdictionRecord,
    ResolvedJurisdiction,
    SearchFilters,
    SearchOptions,
    SearchRequest,
)
from mncodes.pipeline.search import SearchService, paginate


def _make_record(**kwargs) -> CodeSectionRecord:
    defaults = {
        "id": "sec-r312-1",
        "section_number": "R312.1",
        "section_title": "Guards Required",
        "full_text": "Guards shall be provided on open-sided walking surfaces more than 30 inches above grade.",
        "category": "Guards",
        "base_code_abbreviation": "IRC",
        "base_code_year": 2020,
    }
    defaults.update(kwargs)
    return CodeSectionRecord(**defaults)


def _minneapolis() -> JurisdictionRecord:
    return JurisdictionRecord(id="minneapolis", name="Minneapolis", type="city", county="Hennepin")


def _request(query="deck railing height", jurisdiction=None, **options) -> SearchRequest:
    return SearchRequest(query=query, jurisdiction=jurisdiction, options=SearchOptions(**options))


class TestPaginate:
    def test_last_partial_page(self):
        results = [MagicMock(spec=CodeSearchResult) for _ in range(12)]
        page, has_more = paginate(results, offset=10, limit=5)
        assert page == results[10:12]
        assert has_more is False

    def test_first_page_has_more(self):
        results = [MagicMock(spec=CodeSearchResult) for _ in range(12)]
        page, has_more = paginate(results, offset=0, limit=5)
        assert len(page) == 5
        assert has_more is True

    def test_offset_past_end(self):
        assert paginate([], offset=10, limit=5) == ([], False)


class TestValidation:
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query_raises(self, store, llm, query):
        with pytest.raises(ValueError, match="Query is required"):
            await SearchService(store, llm).search(_request(query=query))
        llm.complete.assert_not_called()


class TestResolveJurisdiction:
    async def test_none_is_statewide(self, store, llm):
        assert await SearchService(store, llm).resolve_jurisdiction(None) == ResolvedJurisdiction()
        store.resolve_jurisdiction.assert_not_called()

    async def test_slug_is_statewide(self, store, llm):
        resolved = await SearchService(store, llm).resolve_jurisdiction("all-minnesota")
        assert resolved.name == ALL_MINNESOTA
        store.resolve_jurisdiction.assert_not_called()

    async def test_found(self, store, llm):
        store.resolve_jurisdiction.return_value = _minneapolis()
        resolved = await SearchService(store, llm).resolve_jurisdiction("minnea")
        assert resolved == ResolvedJurisdiction(id="minneapolis", name="Minneapolis", type="city", county="Hennepin")
        store.resolve_jurisdiction.assert_awaited_once_with("minnea")

    async def test_not_found_is_statewide(self, store, llm):
        resolved = await SearchService(store, llm).resolve_jurisdiction("Atlantis")
        assert resolved == ResolvedJurisdiction(id=None, name=ALL_MINNESOTA, type=None, county=None)

    async def test_lookup_failure_is_statewide(self, store, llm):
        store.resolve_jurisdiction.side_effect = ConnectionError("refused")
        assert await SearchService(store, llm).resolve_jurisdiction("Duluth") == ResolvedJurisdiction()


class TestSearch:
    async def test_deck_railing_scenario(self, store, llm):
        store.find_sections_matching.return_value = [_make_record(id=f"s{i}") for i in range(25)]

        response = await SearchService(store, llm).search(_request())

        assert store.find_sections_matching.call_args.args == ("deck", 40)
        assert response.analysis.intent == "general"
        assert response.analysis.entities == ["deck", "railing", "height"]
        assert response.jurisdiction == ResolvedJurisdiction()
        assert len(response.results) == 20
        assert response.total_count == 20
        assert response.has_more is False
        assert [r.id for r in response.results] == [f"s{i}" for i in range(20)]
        assert all(r.local_amendments == [] for r in response.results)
        store.find_amendments.assert_not_called()

    async def test_unresolved_jurisdiction_skips_amendments(self, store, llm):
        store.find_sections_matching.return_value = [_make_record()]

        response = await SearchService(store, llm).search(_request(jurisdiction="Atlantis"))

        assert response.jurisdiction.id is None
        assert response.jurisdiction.name == ALL_MINNESOTA
        store.find_amendments.assert_not_called()
        assert response.results[0].local_amendments == []

    async def test_resolved_jurisdiction_attaches_amendments(self, store, llm):
        store.resolve_jurisdiction.return_value = _minneapolis()
        store.find_sections_matching.return_value = [_make_record(id="a"), _make_record(id="b")]
        store.find_amendments.return_value = [
            AmendmentRecord(code_section_id="b", jurisdiction="Minneapolis",
                            amendment_type="modification", text="Guards at 24 inches."),
        ]

        response = await SearchService(store, llm).search(_request(jurisdiction="Minneapolis"))

        store.find_amendments.assert_awaited_once_with("minneapolis", ["a", "b"])
        assert response.jurisdiction.name == "Minneapolis"
        assert response.results[0].local_amendments == []
        assert response.results[1].local_amendments[0].text == "Guards at 24 inches."

    async def test_amendments_disabled_by_filter(self, store, llm):
        store.resolve_jurisdiction.return_value = _minneapolis()
        store.find_sections_matching.return_value = [_make_record()]
        request = _request(jurisdiction="Minneapolis")
        request.filters = SearchFilters(include_amendments=False)

        await SearchService(store, llm).search(request)

        store.find_amendments.assert_not_called()

    async def test_semantic_disabled_by_default(self, store, llm):
        await SearchService(store, llm).search(_request())
        store.match_sections_by_embedding.assert_not_called()

    async def test_semantic_enabled_merges(self, store, llm):
        store.find_sections_matching.return_value = [_make_record(id="a"), _make_record(id="b")]
        store.match_sections_by_embedding.return_value = [
            (_make_record(id="b"), 0.99),
            (_make_record(id="c"), 0.97),
        ]
        embedder = MagicMock(return_value=[0.0, 1.0])
        service = SearchService(store, llm, embedder=embedder, semantic_enabled=True, semantic_threshold=0.8)

        response = await service.search(_request(limit=3))

        store.match_sections_by_embedding.assert_awaited_once_with([0.0, 1.0], 0.8, 6)
        assert [r.id for r in response.results] == ["a", "b", "c"]
        assert response.results[1].relevance_score == 0.99

    async def test_summary_uses_llm(self, store, llm):
        store.find_sections_matching.return_value = [_make_record()]
        llm.complete = AsyncMock(side_effect=[
            json.dumps({"intent": "requirement_lookup", "entities": ["deck railing"]}),
            "• Guards are required above 30 inches.",
        ])

        response = await SearchService(store, llm).search(_request())

        assert response.analysis.intent == "requirement_lookup"
        assert response.ai_summary == "• Guards are required above 30 inches."
        assert llm.complete.call_count == 2

    async def test_summary_not_requested(self, store, llm):
        store.find_sections_matching.return_value = [_make_record()]
        response = await SearchService(store, llm).search(_request(include_ai_summary=False))
        assert response.ai_summary is None
        assert llm.complete.call_count == 1

    async def test_no_results_message_without_summary_call(self, store, llm):
        response = await SearchService(store, llm).search(_request(jurisdiction="Atlantis"))

        assert response.results == []
        assert response.total_count == 0
        assert response.ai_summary.startswith('No relevant code sections found for "deck railing height" in All Minnesota.')
        assert llm.complete.call_count == 1

    async def test_offline_summary_falls_back(self, store, llm):
        store.find_sections_matching.return_value = [_make_record()]
        response = await SearchService(store, llm).search(_request())
        assert response.ai_summary.startswith('For "deck railing height" in All Minnesota:')

    async def test_related_sections(self, store, llm):
        store.find_sections_matching.return_value = [_make_record(id="a", category="Guards")]
        store.find_sections_in_categories.return_value = [
            _make_record(id="r1", section_number="R312.2", section_title="Window Fall Protection"),
        ]

        response = await SearchService(store, llm).search(_request())

        assert [(r.id, r.section, r.relationship) for r in response.related_sections] == [("r1", "R312.2", "related")]

    async def test_store_outage_returns_empty_response(self, store, llm):
        store.resolve_jurisdiction.side_effect = ConnectionError("refused")
        store.find_sections_matching.side_effect = ConnectionError("refused")

        response = await SearchService(store, llm).search(_request(jurisdiction="Duluth"))

        assert response.results == []
        assert response.related_sections == []
        assert response.jurisdiction == ResolvedJurisdiction()

    async def test_pagination_within_merged_list(self, store, llm):
        store.find_sections_matching.return_value = [_make_record(id=f"s{i}") for i in range(10)]

        response = await SearchService(store, llm).search(_request(limit=5, offset=2, include_ai_summary=False))

        assert [r.id for r in response.results] == ["s2", "s3", "s4"]
        assert response.total_count == 5
        assert response.has_more is False
