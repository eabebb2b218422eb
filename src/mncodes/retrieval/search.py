"""Hybrid code search building blocks: lexical + vector retrieval, merge, enrichment.

Each function takes the datastore handle explicitly. Datastore failures are
logged and treated as "no results from this source" so one bad query never
fails the whole search.
"""

import logging

import mlflow
from mlflow.entities import SpanType

from mncodes.core.types import AmendmentRef, CodeSearchResult, RelatedSection, SearchFilters
from mncodes.retrieval.embeddings import Embedder, embed_texts, generate_embedding
from mncodes.storage.store import CodeStore

logger = logging.getLogger(__name__)

# Ordinal score: first lexical hit is 1.0, each later rank drops by this much
LEXICAL_SCORE_STEP = 0.05
MIN_TERM_LENGTH = 3
RELATED_SOURCE_COUNT = 3
RELATED_LIMIT = 5


def search_terms(query: str) -> list[str]:
    """Whitespace tokens of at least MIN_TERM_LENGTH characters."""
    return [t for t in query.split() if len(t) >= MIN_TERM_LENGTH]


@mlflow.trace(name="lexical_search", span_type=SpanType.RETRIEVER)
async def lexical_search(
    store: CodeStore,
    query: str,
    limit: int,
    filters: SearchFilters | None = None,
) -> list[CodeSearchResult]:
    """Substring search on the first usable query term.

    Only the first term is matched; the rest are ignored. Scores are
    positional (1 - 0.05 * rank), not a text-relevance measure, and go
    negative past rank 20.
    """
    terms = search_terms(query)
    if not terms:
        return []

    filters = filters or SearchFilters()
    try:
        records = await store.find_sections_matching(
            terms[0],
            limit,
            code_types=filters.code_types,
            categories=filters.categories,
        )
    except Exception:
        logger.exception("Full-text search failed for term %r", terms[0])
        return []

    return [
        CodeSearchResult.from_record(record, 1 - index * LEXICAL_SCORE_STEP)
        for index, record in enumerate(records[:limit])
    ]


@mlflow.trace(name="semantic_search", span_type=SpanType.RETRIEVER)
async def semantic_search(
    store: CodeStore,
    query: str,
    limit: int,
    threshold: float = 0.7,
    embedder: Embedder = generate_embedding,
) -> list[CodeSearchResult]:
    """Vector-similarity search scored by cosine similarity."""
    try:
        [embedding] = embed_texts([query], embedder)
        matches = await store.match_sections_by_embedding(embedding, threshold, limit)
    except Exception:
        logger.exception("Semantic search failed")
        return []

    return [CodeSearchResult.from_record(record, similarity) for record, similarity in matches]


def merge_results(*result_lists: list[CodeSearchResult], limit: int) -> list[CodeSearchResult]:
    """Concatenate, sort by descending score, drop repeated ids, cap at limit.

    The sort is stable, so ties keep input order and the first copy of a
    duplicate id wins. This is a merge/dedup, not a re-ranking.
    """
    combined = [result for results in result_lists for result in results]
    combined.sort(key=lambda r: r.relevance_score or 0.0, reverse=True)

    seen: set[str] = set()
    merged: list[CodeSearchResult] = []
    for result in combined:
        if result.id in seen:
            continue
        seen.add(result.id)
        merged.append(result)
        if len(merged) >= limit:
            break
    return merged


@mlflow.trace(name="enrich_with_local_amendments", span_type=SpanType.RETRIEVER)
async def enrich_with_local_amendments(
    store: CodeStore,
    results: list[CodeSearchResult],
    jurisdiction_id: str,
) -> None:
    """Attach the jurisdiction's amendments to each result, in place."""
    if not results:
        return

    try:
        amendments = await store.find_amendments(jurisdiction_id, [r.id for r in results])
    except Exception:
        logger.exception("Amendment lookup failed for jurisdiction %s", jurisdiction_id)
        amendments = []

    by_section: dict[str, list[AmendmentRef]] = {}
    for amendment in amendments:
        by_section.setdefault(amendment.code_section_id, []).append(
            AmendmentRef(
                jurisdiction=amendment.jurisdiction,
                amendment_type=amendment.amendment_type,
                text=amendment.text,
            )
        )

    for result in results:
        result.local_amendments = by_section.get(result.id, [])


@mlflow.trace(name="find_related_sections", span_type=SpanType.RETRIEVER)
async def find_related_sections(
    store: CodeStore,
    results: list[CodeSearchResult],
) -> list[RelatedSection]:
    """Other sections sharing a category with the top results."""
    top = results[:RELATED_SOURCE_COUNT]
    categories = list(dict.fromkeys(r.category for r in top if r.category))
    if not categories:
        return []

    try:
        records = await store.find_sections_in_categories(
            categories, [r.id for r in top], RELATED_LIMIT,
        )
    except Exception:
        logger.exception("Related section lookup failed for %s", categories)
        return []

    return [
        RelatedSection(id=r.id, section=r.section_number, title=r.section_title)
        for r in records[:RELATED_LIMIT]
    ]
