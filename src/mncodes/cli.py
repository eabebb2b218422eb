"""mncodes CLI — code search, jurisdiction directory, and section summaries.

    mncodes search deck railing height --jurisdiction Minneapolis
    mncodes jurisdictions --county Hennepin
    mncodes summarize-section <section_id>
    mncodes init-db
"""

import argparse
import asyncio
import sys

from mncodes.api.schemas import SearchResponseBody
from mncodes.config import settings
from mncodes.core.types import SearchFilters, SearchOptions, SearchRequest, SearchResponse
from mncodes.observability.logging import correlation_scope, setup_logging
from mncodes.observability.tracing import init_tracing


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mncodes", description="Minnesota building code search")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search code sections")
    search.add_argument("query", nargs="+", help="Free-text query")
    search.add_argument("--jurisdiction", "-j", help="Jurisdiction name or id")
    search.add_argument("--no-summary", action="store_true", help="Skip the AI summary")
    search.add_argument("--limit", type=int, default=20)
    search.add_argument("--offset", type=int, default=0)
    search.add_argument("--json", action="store_true", help="Print the API response body as JSON")

    juris = sub.add_parser("jurisdictions", help="List jurisdictions")
    juris.add_argument("--type", dest="jurisdiction_type", choices=["state", "county", "city", "township"])
    juris.add_argument("--county")
    juris.add_argument("--search")

    summarize = sub.add_parser("summarize-section", help="Plain-language summary of one section")
    summarize.add_argument("section_id")

    sub.add_parser("init-db", help="Create the vector extension and tables")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    setup_logging(json_format=False, level=settings.log_level)
    init_tracing()

    if args.command == "search":
        request = SearchRequest(
            query=" ".join(args.query),
            jurisdiction=args.jurisdiction,
            filters=SearchFilters(),
            options=SearchOptions(
                include_ai_summary=not args.no_summary,
                limit=args.limit,
                offset=args.offset,
            ),
        )
        asyncio.run(_search(request, as_json=args.json))
    elif args.command == "jurisdictions":
        asyncio.run(_jurisdictions(args.jurisdiction_type, args.county, args.search))
    elif args.command == "summarize-section":
        asyncio.run(_summarize_section(args.section_id))
    elif args.command == "init-db":
        from mncodes.storage.db import init_db

        asyncio.run(init_db())
        print("Database initialized.")


def _store():
    from mncodes.storage.db import get_session_factory
    from mncodes.storage.store import CodeStore

    return CodeStore(get_session_factory())


async def _search(request: SearchRequest, as_json: bool = False) -> None:
    from mncodes.pipeline.search import SearchService
    from mncodes.retrieval.llm import LLMClient

    service = SearchService(
        _store(),
        LLMClient.from_settings(),
        semantic_enabled=settings.semantic_search_enabled,
        semantic_threshold=settings.semantic_match_threshold,
    )
    with correlation_scope():
        response = await service.search(request)

    if as_json:
        print(SearchResponseBody.from_domain(response).model_dump_json(indent=2))
        return
    _print_response(request, response)


def _print_response(request: SearchRequest, response: SearchResponse) -> None:
    print("\nMinnesota Building Code Search")
    print(f"{'=' * 50}")
    print(f"Query:        {request.query}")
    print(f"Jurisdiction: {response.jurisdiction.name}")
    print(f"Intent:       {response.analysis.intent}")
    if response.analysis.entities:
        print(f"Key terms:    {', '.join(response.analysis.entities)}")
    print()

    if response.ai_summary:
        print(f"{'─' * 50}")
        print(response.ai_summary)
        print()

    print(f"{'─' * 50}")
    print(f"Results ({response.total_count} found):")
    for r in response.results:
        print(f"  [{r.relevance_score:.2f}] {r.source} {r.section_number} — {r.section_title}")
        for a in r.local_amendments:
            print(f"         ⚠ {a.jurisdiction} ({a.amendment_type}): {a.text[:100]}")
    if not response.results:
        print("  No matching sections.")

    if response.related_sections:
        print()
        print("Related sections:")
        for rel in response.related_sections:
            print(f"  {rel.section} — {rel.title}")
    if response.has_more:
        print(f"\n(more results: use --offset {request.options.offset + request.options.limit})")


async def _jurisdictions(jurisdiction_type: str | None, county: str | None, search: str | None) -> None:
    records = await _store().list_jurisdictions(type=jurisdiction_type, county=county, search=search)
    if not records:
        print("No jurisdictions match.")
        return
    for j in records:
        flag = " *amended" if j.has_local_amendments else ""
        county_label = f", {j.county} County" if j.county else ""
        print(f"{j.id:<24} {j.name} ({j.type or 'unknown'}{county_label}){flag}")


async def _summarize_section(section_id: str) -> None:
    from mncodes.retrieval.llm import LLMClient
    from mncodes.retrieval.summaries import generate_section_summary

    section = await _store().get_section(section_id)
    if section is None:
        print(f"Section not found: {section_id}")
        sys.exit(1)

    summary = await generate_section_summary(
        section.section_number, section.section_title, section.full_text, LLMClient.from_settings(),
    )
    print(f"{section.base_code_abbreviation or 'Code'} {section.section_number} — {section.section_title}")
    print(summary)
