# telepsy/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv agree
from dotenv import load_dotenv
load_dotenv()

import secrets

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from telepsy.core.config import settings
from telepsy.core.errors import (
    ErrorSeverity,
    InternalError,
    InvalidParameter,
    SchedulingError,
    error_aggregator,
    log_error,
    scheduling_error_handler,
)
from telepsy.core.logging import LoggingMiddleware, get_logger, setup_logging

# Set up structured logging
setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
logger = get_logger(__name__)

from telepsy.db.session import get_session
from telepsy.services.notifications import Notifier, build_publisher

# Routers
from telepsy.api.routes.agenda import router as agenda_router
from telepsy.api.routes.appointments import router as appointments_router
from telepsy.api.routes.availability import router as availability_router
from telepsy.api.routes.slots import router as slots_router

app = FastAPI(title="Telepsy", description="Psychologist availability and appointment scheduling")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

logging_middleware = LoggingMiddleware(
    log_requests=settings.LOG_REQUESTS or settings.is_development,
    log_responses=settings.LOG_RESPONSES or settings.is_development,
    slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
)
error_aggregator.log_threshold = settings.ERROR_AGGREGATION_THRESHOLD

# -------- Error rendering --------
app.add_exception_handler(SchedulingError, scheduling_error_handler)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors]
    return await scheduling_error_handler(
        request,
        InvalidParameter(f"Invalid request: {', '.join(f for f in fields if f) or 'body'}"),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_error(exc, {"endpoint": request.url.path, "method": request.method}, ErrorSeverity.HIGH)
    err = InternalError()
    return JSONResponse(status_code=err.status, content={"code": err.code, "detail": err.detail})


# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    return {"db": "ok"}


@app.get("/errors", include_in_schema=False)
async def errors_summary():
    """Recent aggregated errors for monitoring."""
    return error_aggregator.get_error_summary()


# -------- Global security gate (single place) --------
PUBLIC_EXACT = {
    "/healthz",
    "/readyz",
    "/favicon.ico",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_EXACT


@app.middleware("http")
async def lock_all(request: Request, call_next):
    # Open when no key is configured
    if not settings.TELEPSY_API_KEY or _is_public(request.url.path) or request.method == "OPTIONS":
        return await call_next(request)

    api_key = request.headers.get("X-API-Key", "")
    if not secrets.compare_digest(api_key, settings.TELEPSY_API_KEY):
        log_error(Exception("API key validation failed"),
                  {"endpoint": request.url.path, "has_key": bool(api_key)},
                  ErrorSeverity.MEDIUM)
        return JSONResponse({"code": "UNAUTHORIZED", "detail": "Invalid or missing API key"}, status_code=401)

    return await call_next(request)


# Registered last so it wraps the gate and every request gets a correlation id
app.middleware("http")(logging_middleware)

# -------- Include routers --------
app.include_router(slots_router)
app.include_router(availability_router)
app.include_router(appointments_router)
app.include_router(agenda_router)


# -------- Application startup/shutdown events --------
@app.on_event("startup")
async def startup_event():
    app.state.notifier = Notifier(build_publisher())
    logger.info(
        "application_startup",
        env=settings.APP_ENV,
        timezone=settings.BUSINESS_TIMEZONE,
        publisher=type(app.state.notifier.publisher).__name__,
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("application_shutdown")
