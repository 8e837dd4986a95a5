"""FastAPI application for SiteProof: JSON API plus server-rendered pages."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from siteproof.config import get_config
from siteproof.core.logging import configure_logging
from siteproof.db.connection import close_db, get_session, init_db
from siteproof.startup_validation import run_all_validations
from siteproof.web.routes import (
    auth,
    compliance,
    conformance,
    dashboard,
    diagnostics,
    dockets,
    health,
    itp_templates,
    itps,
    lots,
    pages,
    projects,
)

# Initialize structured logging
configure_logging()
logger = structlog.get_logger()

SERVER_ERROR = "Server error occurred"


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    if config.auto_create_tables:
        await init_db()
    async with get_session() as session:
        await run_all_validations(session)
    logger.info("app_started", environment=config.environment)
    yield
    await close_db()
    logger.info("app_stopped")


# Request Logging Middleware
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise

        logger.info("request_completed", status_code=response.status_code)
        response.headers["X-Request-ID"] = request_id
        return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Redirects for 3xx with Location; ``{success: false, error}`` otherwise."""
    if exc.status_code in (301, 302, 303, 307, 308) and exc.headers and "Location" in exc.headers:
        return RedirectResponse(url=exc.headers["Location"], status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log and hide internals behind a generic 500 body."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"success": False, "error": SERVER_ERROR})


def create_app() -> FastAPI:
    app = FastAPI(
        title="SiteProof",
        description="Construction quality assurance: projects, lots, ITPs and conformance records",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # Prometheus Metrics
    Instrumentator().instrument(app).expose(app, include_in_schema=False)

    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(pages.router)
    app.include_router(projects.router)
    app.include_router(lots.router)
    app.include_router(itp_templates.router)
    app.include_router(itps.router)
    app.include_router(conformance.router)
    app.include_router(compliance.router)
    app.include_router(dockets.router)
    # Gated per request by require_diagnostics
    app.include_router(diagnostics.router)

    return app


app = create_app()
