"""
FloodWatch — FastAPI Application Entry Point
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from floodwatch.api.v1 import auth, flood_reports, users
from floodwatch.config import get_settings
from floodwatch.core.exceptions import FloodWatchError, ValidationError
from floodwatch.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize DB tables on startup."""
    from floodwatch.database import init_db

    init_db()
    logger.info(
        "FloodWatch API started", extra={"environment": settings.ENVIRONMENT}
    )
    yield


# ─── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=(
        "FloodWatch.ph — community flood reporting. Account signup/login with "
        "JWT bearer tokens and optional emailed two-factor codes, flood report "
        "submission, listing and owner-or-admin status updates."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ─── CORS / security headers ──────────────────────────────────────────────────

origins = settings.ALLOWED_ORIGINS if settings.is_production else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin"],
    max_age=86400,
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    return response


# ─── Exception handlers ───────────────────────────────────────────────────────


def _error_response(exc: FloodWatchError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status_code,
        content=exc.to_dict(include_detail=not settings.is_production),
        headers=exc.headers,
    )


@app.exception_handler(FloodWatchError)
async def floodwatch_exception_handler(
    request: Request, exc: FloodWatchError
) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        errors.append({"field": field or "body", "message": err.get("msg", "Invalid value")})
    return _error_response(ValidationError(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message, "path": request.url.path},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store failure: %s", exc, extra={"path": request.url.path})
    content: Dict[str, Any] = {"success": False, "message": "Internal server error"}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    if not settings.is_production:
        import traceback

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Internal server error",
                "error": str(exc),
                "traceback": traceback.format_exc(),
            },
        )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


# ─── Health endpoint ──────────────────────────────────────────────────────────

API_PREFIX = "/api"


@app.get(f"{API_PREFIX}/health", tags=["health"])
async def health_check() -> JSONResponse:
    """Reports API and database status; 503 when the database is unreachable."""
    db_ok = False
    try:
        from floodwatch.database import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as exc:
        logger.warning("Health check: database unavailable: %s", exc)

    body = {
        "success": db_ok,
        "message": "API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if db_ok else "disconnected",
    }
    return JSONResponse(status_code=200 if db_ok else 503, content=body)


# ─── Routers ──────────────────────────────────────────────────────────────────

app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(flood_reports.router, prefix=API_PREFIX)
