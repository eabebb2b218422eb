"""Query understanding — intent and key terms for a free-text code search.

The language model does the extraction; when it is unavailable or answers
with anything other than the expected JSON, a keyword filter takes over.
parse_search_query never raises.
"""

import json
import logging

import mlflow
from mlflow.entities import SpanType

from mncodes.core.types import QUERY_INTENTS, QueryAnalysis
from mncodes.observability.prompts import render_prompt
from mncodes.retrieval.llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

PARSE_MAX_TOKENS = 200

STOP_WORDS = frozenset({"what", "where", "when", "requirements", "need", "does"})


def _parse_llm_content(content: str) -> dict:
    """Parse LLM response content, stripping markdown fences if present."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return json.loads(content.strip())


def _string_list(value) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"expected a list of strings, got {value!r}")
    return value


def _analysis_from_json(raw: dict) -> QueryAnalysis:
    """Validate the model's JSON against the expected shape."""
    if not isinstance(raw, dict):
        raise ValueError("response is not a JSON object")
    intent = raw.get("intent")
    if intent not in QUERY_INTENTS:
        raise ValueError(f"unknown intent {intent!r}")
    entities = _string_list(raw.get("entities", []))

    suggested: dict[str, list[str]] = {}
    filters = raw.get("suggestedFilters") or {}
    if isinstance(filters, dict):
        for key in ("categories", "codeTypes"):
            if key in filters:
                try:
                    suggested[key] = _string_list(filters[key])
                except ValueError:
                    logger.debug("Dropping malformed suggested filter %s", key)

    return QueryAnalysis(intent=intent, entities=entities, suggested_filters=suggested)


def keyword_fallback(query: str) -> QueryAnalysis:
    """Whitespace tokens longer than 3 chars, minus a few question words."""
    words = query.lower().split()
    entities = [w for w in words if len(w) > 3 and w not in STOP_WORDS]
    return QueryAnalysis(intent="general", entities=entities, suggested_filters={})


@mlflow.trace(name="parse_search_query", span_type=SpanType.PARSER)
async def parse_search_query(query: str, llm: LLMClient) -> QueryAnalysis:
    """Extract intent, entities, and suggested filters from a search query."""
    try:
        content = await llm.complete(render_prompt("query_parse", query=query), max_tokens=PARSE_MAX_TOKENS)
        if content:
            return _analysis_from_json(_parse_llm_content(content))
        logger.warning("Query parser got a non-text reply, using keyword fallback")
    except LLMError as e:
        logger.warning("Query parse LLM call failed: %s", e)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Query parse response was not usable JSON: %s", e)
    except Exception:
        logger.exception("Unexpected query parse failure")

    return keyword_fallback(query)
