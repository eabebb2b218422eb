"""FastAPI dependencies — the datastore and LLM handles built in the lifespan.

Tests replace get_store / get_llm through app.dependency_overrides.
"""

from fastapi import Depends, Request

from mncodes.config import settings
from mncodes.pipeline.search import SearchService
from mncodes.retrieval.llm import LLMClient
from mncodes.storage.store import CodeStore


def get_store(request: Request) -> CodeStore:
    return request.app.state.store


def get_llm(request: Request) -> LLMClient:
    return request.app.state.llm


def get_search_service(
    store: CodeStore = Depends(get_store),
    llm: LLMClient = Depends(get_llm),
) -> SearchService:
    return SearchService(
        store,
        llm,
        semantic_enabled=settings.semantic_search_enabled,
        semantic_threshold=settings.semantic_match_threshold,
    )
