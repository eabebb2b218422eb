"""Shared test fixtures."""

from unittest.mock import AsyncMock

import mlflow
import pytest

from mncodes.retrieval.llm import LLMClient, LLMError
from mncodes.storage.store import CodeStore


@pytest.fixture(autouse=True)
def _disable_mlflow_tracing():
    """Disable MLflow tracing during tests — no side effects, no mlruns/ writes."""
    mlflow.tracing.disable()
    yield
    mlflow.tracing.enable()


@pytest.fixture
def store():
    """CodeStore double: every query succeeds with no rows unless a test says otherwise."""
    mock = AsyncMock(spec=CodeStore)
    mock.ping = AsyncMock(return_value=None)
    mock.resolve_jurisdiction = AsyncMock(return_value=None)
    mock.list_jurisdictions = AsyncMock(return_value=[])
    mock.get_jurisdiction_detail = AsyncMock(return_value=None)
    mock.find_sections_matching = AsyncMock(return_value=[])
    mock.match_sections_by_embedding = AsyncMock(return_value=[])
    mock.find_amendments = AsyncMock(return_value=[])
    mock.find_sections_in_categories = AsyncMock(return_value=[])
    mock.get_section = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def llm():
    """Language model double that is offline unless a test sets complete()."""
    mock = AsyncMock(spec=LLMClient)
    mock.complete = AsyncMock(side_effect=LLMError("offline"))
    return mock
