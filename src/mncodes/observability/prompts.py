"""Prompt registry — versioned prompt templates for the language model calls.

Templates are rendered with str.format, so literal braces are doubled.
Keeping them here decouples prompt wording from retrieval code and lets the
active version be recorded on traces.
"""

import logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompt versions
# ---------------------------------------------------------------------------

QUERY_PARSE_PROMPT_V1 = """\
Analyze this building code search query and extract key information.

Query: "{query}"

Respond in JSON format:
{{
  "intent": "requirement_lookup" | "definition" | "comparison" | "permit_check" | "general",
  "entities": ["list", "of", "key", "terms"],
  "suggestedFilters": {{
    "categories": ["relevant", "categories"],
    "codeTypes": ["IRC", "IBC", etc if mentioned]
  }}
}}

Categories can include: Egress, Guards, Stairs, Fire Safety, Structural, Electrical, Plumbing, \
HVAC, Energy, Accessibility, Foundation, Roofing, Exterior

Only respond with the JSON, no other text.\
"""

SEARCH_SUMMARY_PROMPT_V1 = """\
You are an expert on Minnesota building codes. A user searched for "{query}" in {jurisdiction}.

Here are the most relevant code sections found:
{results}

Provide a concise, practical summary (3-5 bullet points) that:
1. Directly answers what the user is looking for
2. Highlights the key requirements with specific numbers (dimensions, heights, etc.)
3. Notes any local amendments that might apply
4. Uses plain language a contractor or homeowner would understand

Format your response as bullet points starting with •. Be specific and actionable.\
"""

SECTION_SUMMARY_PROMPT_V1 = """\
Summarize this building code section in 1-2 sentences that a contractor or homeowner would understand.

Section: {section_number} - {section_title}
Text: {full_text}

Focus on the practical requirement - what must be done and any specific measurements or thresholds.\
"""

# Registry: name → (version, prompt_template)
_PROMPT_REGISTRY: dict[str, tuple[str, str]] = {
    "query_parse": ("v1", QUERY_PARSE_PROMPT_V1),
    "search_summary": ("v1", SEARCH_SUMMARY_PROMPT_V1),
    "section_summary": ("v1", SECTION_SUMMARY_PROMPT_V1),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_active_prompt(name: str) -> str:
    """Return the active prompt template for a given prompt name.

    Raises:
        KeyError: If prompt name is not registered.
    """
    if name not in _PROMPT_REGISTRY:
        raise KeyError(f"Unknown prompt: {name!r}. Available: {list(_PROMPT_REGISTRY.keys())}")
    return _PROMPT_REGISTRY[name][1]


def get_prompt_version(name: str) -> str:
    """Return the version tag for a given prompt name."""
    if name not in _PROMPT_REGISTRY:
        raise KeyError(f"Unknown prompt: {name!r}. Available: {list(_PROMPT_REGISTRY.keys())}")
    return _PROMPT_REGISTRY[name][0]


def list_prompts() -> list[dict[str, str]]:
    """List all registered prompts with name and version."""
    return [{"name": name, "version": ver} for name, (ver, _) in _PROMPT_REGISTRY.items()]


def render_prompt(name: str, **values: str) -> str:
    """Fill a registered template."""
    prompt = get_active_prompt(name).format(**values)
    logger.debug("Rendered prompt %s (%s, %d chars)", name, get_prompt_version(name), len(prompt))
    return prompt
