"""Observability — prompt registry, structured logging, and MLflow setup helpers."""

from mncodes.observability.logging import get_correlation_id, setup_logging
from mncodes.observability.prompts import get_active_prompt, render_prompt
from mncodes.observability.tracing import init_tracing

__all__ = ["get_active_prompt", "get_correlation_id", "init_tracing", "render_prompt", "setup_logging"]
