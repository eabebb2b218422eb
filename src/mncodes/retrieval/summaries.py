"""Plain-language summaries of search results and individual code sections."""

import logging

import mlflow
from mlflow.entities import SpanType

from mncodes.core.types import CodeSearchResult
from mncodes.observability.prompts import render_prompt
from mncodes.retrieval.llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

SUMMARY_MAX_TOKENS = 500
SECTION_SUMMARY_MAX_TOKENS = 150
SUMMARY_RESULT_COUNT = 5
PROMPT_TEXT_CHARS = 300
FALLBACK_TEXT_CHARS = 200

UNABLE_TO_SUMMARIZE = "Unable to generate summary."


def no_results_message(query: str, jurisdiction: str) -> str:
    return (
        f'No relevant code sections found for "{query}" in {jurisdiction}. '
        "Try broadening your search terms or checking a different jurisdiction."
    )


def _format_results(results: list[CodeSearchResult]) -> str:
    """Numbered result blocks for the summary prompt, bodies clipped."""
    blocks = []
    for i, r in enumerate(results, 1):
        lines = [
            f"{i}. {r.base_code_abbreviation or 'Code'} {r.section_number} - {r.section_title}",
            f"{r.summary or r.full_text[:PROMPT_TEXT_CHARS]}...",
        ]
        if r.local_amendments:
            names = ", ".join(a.jurisdiction for a in r.local_amendments)
            lines.append(f"⚠️ Local amendments in: {names}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def fallback_summary(query: str, jurisdiction: str, top: CodeSearchResult) -> str:
    """One-line templated summary built from the top result."""
    body = top.summary or top.full_text[:FALLBACK_TEXT_CHARS]
    return (
        f'For "{query}" in {jurisdiction}:\n'
        f"• See {top.base_code_abbreviation or 'Code'} Section {top.section_number} - {top.section_title}\n"
        f"• {body}..."
    )


@mlflow.trace(name="generate_search_summary", span_type=SpanType.CHAT_MODEL)
async def generate_search_summary(
    query: str,
    jurisdiction: str,
    results: list[CodeSearchResult],
    llm: LLMClient,
) -> str:
    """Bullet-point answer to the query from the top-ranked results.

    With no results, returns a fixed message without calling the model.
    On model failure, returns a templated summary of the top result.
    """
    if not results:
        return no_results_message(query, jurisdiction)

    prompt = render_prompt(
        "search_summary",
        query=query,
        jurisdiction=jurisdiction,
        results=_format_results(results[:SUMMARY_RESULT_COUNT]),
    )
    try:
        content = await llm.complete(prompt, max_tokens=SUMMARY_MAX_TOKENS)
    except LLMError as e:
        logger.warning("Search summary LLM call failed: %s", e)
        return fallback_summary(query, jurisdiction, results[0])

    return content or UNABLE_TO_SUMMARIZE


def _first_sentence(full_text: str) -> str:
    sentence = full_text.split(".")[0]
    if len(sentence) > FALLBACK_TEXT_CHARS:
        return sentence[:FALLBACK_TEXT_CHARS] + "..."
    return sentence + "."


async def generate_section_summary(
    section_number: str,
    section_title: str,
    full_text: str,
    llm: LLMClient,
) -> str:
    """1-2 sentence practical summary of a single code section."""
    prompt = render_prompt(
        "section_summary",
        section_number=section_number,
        section_title=section_title,
        full_text=full_text,
    )
    try:
        content = await llm.complete(prompt, max_tokens=SECTION_SUMMARY_MAX_TOKENS)
        if content:
            return content
    except LLMError as e:
        logger.warning("Section summary LLM call failed for %s: %s", section_number, e)

    return _first_sentence(full_text)
