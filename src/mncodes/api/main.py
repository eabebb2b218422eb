"""mncodes API — FastAPI application for Minnesota building code search.

Run:
    uvicorn mncodes.api.main:app --reload
    # or
    mncodes-api
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from mncodes.api.dependencies import get_store
from mncodes.api.jurisdictions import router as jurisdictions_router
from mncodes.api.routes import router
from mncodes.api.schemas import error_response
from mncodes.config import settings
from mncodes.observability.logging import correlation_scope, setup_logging
from mncodes.observability.tracing import check_tracking_store, init_tracing
from mncodes.retrieval.llm import LLMClient
from mncodes.storage.db import dispose_engine, get_session_factory, init_db
from mncodes.storage.store import CodeStore

logger = logging.getLogger(__name__)

DB_INIT_TIMEOUT = 15


def _database_label(url: str) -> str:
    """host[:port]/dbname, without credentials."""
    parsed = urlparse(url)
    host = f"{parsed.hostname}:{parsed.port}" if parsed.port else parsed.hostname
    return f"{host}/{parsed.path.lstrip('/')}"


async def _prepare_database() -> None:
    """Create tables if possible; search endpoints degrade to empty results otherwise."""
    logger.info("Connecting to database at %s", _database_label(settings.database_url))
    try:
        await asyncio.wait_for(init_db(), timeout=DB_INIT_TIMEOUT)
    except asyncio.TimeoutError:
        logger.error("Database initialization timed out after %ds, starting degraded", DB_INIT_TIMEOUT)
    except Exception as e:
        logger.error("Database initialization failed: %s, starting degraded", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the datastore and LLM handles on startup, dispose on shutdown."""
    setup_logging(json_format=settings.log_json, level=settings.log_level)
    init_tracing()
    await _prepare_database()

    app.state.store = CodeStore(get_session_factory())
    app.state.llm = LLMClient.from_settings()
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY not set, summaries and query parsing will use fallbacks")
    logger.info("mncodes API ready")
    yield
    logger.info("Shutting down")
    await dispose_engine()


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Set correlation ID from X-Request-ID header or generate a new one."""

    async def dispatch(self, request: Request, call_next):
        with correlation_scope(request.headers.get("x-request-id")) as cid:
            response = await call_next(request)
            response.headers["x-request-id"] = cid
            return response


app = FastAPI(
    title="mncodes",
    description="Minnesota building code search with jurisdiction-specific amendments "
    "and plain-language summaries.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(jurisdictions_router)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


@app.get("/health")
async def health(store: CodeStore = Depends(get_store)):
    """Database and MLflow tracking store status."""
    checks = {}
    try:
        await store.ping()
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    checks["mlflow"] = check_tracking_store()

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, "checks": checks}


def run():
    """Entry point for mncodes-api console script."""
    uvicorn.run("mncodes.api.main:app", host="0.0.0.0", port=8000, reload=True)
