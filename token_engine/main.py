from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from token_engine.core.config import settings
from token_engine.core.errors import (
    global_exception_handler,
    http_exception_handler,
    token_engine_exception_handler,
)
from token_engine.core.sentry import init_sentry
from token_engine.modules.deployment.router import router as deployment_router
from token_engine.modules.tokens.exceptions import TokenEngineError
from token_engine.modules.tokens.router import router as tokens_router

# Register all models at startup
import token_engine.models  # noqa: F401

# ── Sentry: initialise before the FastAPI app is created ──────────────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting token engine API", env=settings.APP_ENV)
    yield
    logger.info("Shutting down token engine API")


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="Token Engine API",
    description="Token record lifecycle and multi-standard normalization engine.",
    version=settings.APP_VERSION,
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)

app.add_exception_handler(TokenEngineError, token_engine_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, global_exception_handler)


# ── X-API-Version response header ────────────────────────────────────────────


@app.middleware("http")
async def add_version_header(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


# ── Health check (root-level, not under /v1) ─────────────────────────────────


@app.get("/health")
async def health_check() -> dict:
    """Check the database and report overall status."""
    checks: dict[str, dict] = {}
    try:
        from sqlalchemy import text
        from token_engine.core.database import async_session_factory
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as exc:
        checks["database"] = {"status": "unhealthy", "error": str(exc)}

    overall = "healthy" if all(c["status"] == "healthy" for c in checks.values()) else "degraded"
    return {"status": overall, "version": settings.APP_VERSION, "checks": checks}


# ── API v1 ────────────────────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/v1")
api_v1.include_router(tokens_router)
api_v1.include_router(deployment_router)
app.include_router(api_v1)
