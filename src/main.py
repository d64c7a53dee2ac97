"""Auth Service - FastAPI Application."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.boot import Bootloader, BootMode
from src.config import settings
from src.database import init_db
from src.deps import DbSession
from src.errors import AuthServiceError, InternalError, UnauthorizedError
from src.logger import configure_logging, get_logger, log_exception
from src.rate_limit import login_rate_limiter, register_rate_limiter
from src.routers import auth, users

# Initialize logging early
configure_logging()
logger = get_logger(__name__)

GENERIC_ERROR = "Internal server error"

# Error types whose message already names the field
_SELF_DESCRIBING_ERRORS = {"email_format", "password_too_short", "password_too_long"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - validate config, create schema."""
    # Will sys.exit(1) if critical checks fail
    await Bootloader.validate(mode=BootMode.CRITICAL)
    await init_db()
    logger.info("Application started", version=app.version, environment=settings.environment)
    yield

    login_rate_limiter.close()
    register_rate_limiter.close()
    logger.info("Application shutting down")


app = FastAPI(
    title="Auth Service API",
    description="User registration, login and bearer-token authentication",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Middleware to inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))

    # structlog.contextvars are isolated per async context/task; clear for a clean slate
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round(duration * 1000, 2),
            error=str(exc),
        )
        raise

    duration = time.perf_counter() - start_time
    logger.info(
        "HTTP Request",
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = first.get("msg", "Invalid request")
    if first.get("type") in _SELF_DESCRIBING_ERRORS:
        return message
    fields = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "header")]
    if fields:
        return f"{'.'.join(fields)}: {message}"
    return message


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Map service errors to ``{"error": message}`` with their status code."""
    if isinstance(exc, InternalError):
        log_exception(logger, exc, "Internal error while handling request")
        return _error_response(exc.status_code, GENERIC_ERROR)
    if isinstance(exc, UnauthorizedError):
        return _error_response(exc.status_code, exc.message, {"WWW-Authenticate": "Bearer"})
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("Request validation failed", error=message)
    return _error_response(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log_exception(logger, exc, "Database error while handling request")
    return _error_response(500, GENERIC_ERROR)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to ensure a JSON body without internals."""
    log_exception(logger, exc, "Unhandled exception while handling request")
    return _error_response(500, GENERIC_ERROR)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

app.include_router(auth.router)
app.include_router(users.router)


@app.get("/health")
async def health_check(db: DbSession) -> Response:
    """Check application health status.

    Returns 200 if the database answers, 503 otherwise.
    """
    checks: dict[str, bool] = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as exc:
        log_exception(logger, exc, "Health check: database unavailable", include_traceback=False)
        checks["database"] = False

    healthy = all(checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
            "version": app.version,
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host=settings.host, port=settings.port, log_config=None)
