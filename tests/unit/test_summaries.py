"""Tests for search-result and section summaries."""

from unittest.mock import AsyncMock

from mncodes.core.types import AmendmentRef, CodeSearchResult
from mncodes.retrieval.llm import LLMError
from mncodes.retrieval.summaries import (
    SECTION_SUMMARY_MAX_TOKENS,
    SUMMARY_MAX_TOKENS,
    UNABLE_TO_SUMMARIZE,
    fallback_summary,
    generate_search_summary,
    generate_section_summary,
    no_results_message,
)


def _make_result(**kwargs) -> CodeSearchResult:
    defaults = {
        "id": "sec-r312-1",
        "section_number": "R312.1",
        "section_title": "Guards Required",
        "full_text": "Guards shall be provided on open-sided walking surfaces more than 30 inches above grade.",
        "base_code_abbreviation": "IRC",
        "base_code_year": 2020,
        "relevance_score": 1.0,
    }
    defaults.update(kwargs)
    return CodeSearchResult(**defaults)


class TestNoResults:
    async def test_fixed_message_without_llm_call(self, llm):
        summary = await generate_search_summary("deck railing", "Minneapolis", [], llm)

        assert summary == no_results_message("deck railing", "Minneapolis")
        assert summary.startswith('No relevant code sections found for "deck railing" in Minneapolis.')
        assert "Try broadening your search terms" in summary
        llm.complete.assert_not_called()


class TestSearchSummaryPrompt:
    async def test_returns_llm_text(self, llm):
        llm.complete = AsyncMock(return_value="• Guards are required above 30 inches.")
        summary = await generate_search_summary("deck railing", "All Minnesota", [_make_result()], llm)
        assert summary == "• Guards are required above 30 inches."
        assert llm.complete.call_args.kwargs["max_tokens"] == SUMMARY_MAX_TOKENS

    async def test_prompt_includes_query_and_jurisdiction(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        await generate_search_summary("deck railing", "Duluth", [_make_result()], llm)
        prompt = llm.complete.call_args.args[0]
        assert '"deck railing"' in prompt
        assert "Duluth" in prompt
        assert "1. IRC R312.1 - Guards Required" in prompt

    async def test_prompt_clips_long_bodies(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        await generate_search_summary("deck", "Duluth", [_make_result(full_text="x" * 1000)], llm)
        prompt = llm.complete.call_args.args[0]
        assert "x" * 300 + "..." in prompt
        assert "x" * 301 not in prompt

    async def test_prompt_prefers_stored_summary(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        await generate_search_summary("deck", "Duluth", [_make_result(summary="Short version.")], llm)
        assert "Short version...." in llm.complete.call_args.args[0]

    async def test_prompt_uses_top_five_only(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        results = [_make_result(id=f"s{i}", section_number=f"SEC-10{i}") for i in range(7)]
        await generate_search_summary("deck", "Duluth", results, llm)
        prompt = llm.complete.call_args.args[0]
        assert "SEC-104" in prompt
        assert "SEC-105" not in prompt
        assert "SEC-106" not in prompt

    async def test_prompt_flags_amendments(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        result = _make_result(local_amendments=[
            AmendmentRef(jurisdiction="Minneapolis", amendment_type="modification", text="36 inch guards."),
        ])
        await generate_search_summary("deck", "Minneapolis", [result], llm)
        assert "Local amendments in: Minneapolis" in llm.complete.call_args.args[0]

    async def test_missing_abbreviation_labelled_code(self, llm):
        llm.complete = AsyncMock(return_value="ok")
        await generate_search_summary("deck", "Duluth", [_make_result(base_code_abbreviation=None)], llm)
        assert "1. Code R312.1" in llm.complete.call_args.args[0]


class TestSearchSummaryFallback:
    async def test_llm_error_uses_template(self, llm):
        top = _make_result(full_text="y" * 500)
        summary = await generate_search_summary("deck railing", "Minneapolis", [top, _make_result(id="b")], llm)
        assert summary == (
            'For "deck railing" in Minneapolis:\n'
            "• See IRC Section R312.1 - Guards Required\n"
            f"• {'y' * 200}..."
        )

    def test_template_prefers_summary(self):
        summary = fallback_summary("deck", "Duluth", _make_result(summary="Guards at 30 inches."))
        assert summary.endswith("• Guards at 30 inches....")

    async def test_non_text_reply(self, llm):
        llm.complete = AsyncMock(return_value=None)
        assert await generate_search_summary("deck", "Duluth", [_make_result()], llm) == UNABLE_TO_SUMMARIZE

    async def test_empty_reply(self, llm):
        llm.complete = AsyncMock(return_value="")
        assert await generate_search_summary("deck", "Duluth", [_make_result()], llm) == UNABLE_TO_SUMMARIZE


class TestSectionSummary:
    async def test_llm_success(self, llm):
        llm.complete = AsyncMock(return_value="Put guards on decks over 30 inches.")
        summary = await generate_section_summary("R312.1", "Guards Required", "Guards shall be provided.", llm)
        assert summary == "Put guards on decks over 30 inches."
        prompt = llm.complete.call_args.args[0]
        assert "R312.1 - Guards Required" in prompt
        assert llm.complete.call_args.kwargs["max_tokens"] == SECTION_SUMMARY_MAX_TOKENS

    async def test_fallback_first_sentence(self, llm):
        summary = await generate_section_summary(
            "R312.1", "Guards Required", "Guards shall be provided. Height is 36 inches.", llm,
        )
        assert summary == "Guards shall be provided."

    async def test_fallback_clips_long_sentence(self, llm):
        summary = await generate_section_summary("R312.1", "Guards Required", "z" * 400, llm)
        assert summary == "z" * 200 + "..."

    async def test_empty_reply_falls_back(self, llm):
        llm.complete = AsyncMock(return_value="")
        summary = await generate_section_summary("R312.1", "Guards", "Guards shall be provided. More.", llm)
        assert summary == "Guards shall be provided."

    async def test_llm_error_falls_back(self, llm):
        llm.complete = AsyncMock(side_effect=LLMError("timeout"))
        summary = await generate_section_summary("R312.1", "Guards", "Guards shall be provided.", llm)
        assert summary == "Guards shall be provided."
