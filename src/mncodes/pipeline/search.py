"""Search pipeline — query → interpretation → retrieval → enrichment → summary.

One SearchService.search() call is a stateless, sequential chain of awaited
reads against the datastore plus at most two language model calls:

  1. Validate the query
  2. Parse intent and entities (LLM, keyword fallback)
  3. Resolve the jurisdiction (default: All Minnesota)
  4. Lexical search for 2 x limit candidates
  5. Semantic search, when enabled
  6. Merge down to limit
  7. Attach the jurisdiction's local amendments
  8. Summarize (LLM, templated fallback)
  9. Related sections from the top 3
 10. Shape the paginated response

total_count is the merged-list length, not a corpus count.
"""

import logging
import time

import mlflow
from mlflow.entities import SpanType

from mncodes.core.types import (
    ALL_MINNESOTA,
    CodeSearchResult,
    ResolvedJurisdiction,
    SearchRequest,
    SearchResponse,
)
from mncodes.retrieval.embeddings import Embedder, generate_embedding
from mncodes.retrieval.llm import LLMClient
from mncodes.retrieval.query_parser import parse_search_query
from mncodes.retrieval.search import (
    enrich_with_local_amendments,
    find_related_sections,
    lexical_search,
    merge_results,
    semantic_search,
)
from mncodes.retrieval.summaries import generate_search_summary
from mncodes.storage.store import CodeStore

logger = logging.getLogger(__name__)

CANDIDATE_MULTIPLIER = 2
ALL_MINNESOTA_SLUG = "all-minnesota"


def paginate(results: list[CodeSearchResult], offset: int, limit: int) -> tuple[list[CodeSearchResult], bool]:
    """Slice one page out of the merged list; second value is has_more."""
    return results[offset:offset + limit], len(results) > offset + limit


class SearchService:
    """Hybrid code search over an injected datastore and language model."""

    def __init__(
        self,
        store: CodeStore,
        llm: LLMClient,
        embedder: Embedder = generate_embedding,
        semantic_enabled: bool = False,
        semantic_threshold: float = 0.7,
    ):
        self.store = store
        self.llm = llm
        self.embedder = embedder
        self.semantic_enabled = semantic_enabled
        self.semantic_threshold = semantic_threshold

    async def resolve_jurisdiction(self, jurisdiction: str | None) -> ResolvedJurisdiction:
        """Look up a jurisdiction by name fragment or id, else statewide."""
        if not jurisdiction or jurisdiction.strip().lower() == ALL_MINNESOTA_SLUG:
            return ResolvedJurisdiction()

        try:
            record = await self.store.resolve_jurisdiction(jurisdiction.strip())
        except Exception:
            logger.exception("Jurisdiction lookup failed for %r", jurisdiction)
            return ResolvedJurisdiction()

        if record is None:
            logger.info("Jurisdiction %r not found, searching all of Minnesota", jurisdiction)
            return ResolvedJurisdiction()
        return ResolvedJurisdiction(id=record.id, name=record.name, type=record.type, county=record.county)

    @mlflow.trace(name="code_search", span_type=SpanType.CHAIN)
    async def search(self, request: SearchRequest) -> SearchResponse:
        if not isinstance(request.query, str) or not request.query.strip():
            raise ValueError("Query is required")

        start = time.monotonic()
        query = request.query
        limit = request.options.limit
        offset = request.options.offset
        filters = request.filters

        analysis = await parse_search_query(query, self.llm)
        jurisdiction = await self.resolve_jurisdiction(request.jurisdiction)

        candidate_count = limit * CANDIDATE_MULTIPLIER
        candidate_lists = [await lexical_search(self.store, query, candidate_count, filters)]
        if self.semantic_enabled:
            candidate_lists.append(await semantic_search(
                self.store, query, candidate_count,
                threshold=self.semantic_threshold, embedder=self.embedder,
            ))

        merged = merge_results(*candidate_lists, limit=limit)

        if jurisdiction.id and filters.include_amendments is not False:
            await enrich_with_local_amendments(self.store, merged, jurisdiction.id)

        ai_summary = None
        if request.options.include_ai_summary:
            try:
                ai_summary = await generate_search_summary(
                    query, jurisdiction.name or ALL_MINNESOTA, merged, self.llm,
                )
            except Exception:
                logger.exception("Failed to generate AI summary")

        related = await find_related_sections(self.store, merged)

        page, has_more = paginate(merged, offset, limit)
        logger.info(
            "Search complete: %d merged results",
            len(merged),
            extra={
                "query": query[:80],
                "jurisdiction": jurisdiction.name,
                "result_count": len(merged),
                "duration_ms": round((time.monotonic() - start) * 1000, 1),
            },
        )

        return SearchResponse(
            analysis=analysis,
            jurisdiction=jurisdiction,
            results=page,
            ai_summary=ai_summary,
            related_sections=related,
            total_count=len(merged),
            has_more=has_more,
        )
