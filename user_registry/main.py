"""User Registry - FastAPI Application."""

import time
import traceback
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
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_registry import __version__
from user_registry.boot import Bootloader, BootMode
from user_registry.config import settings
from user_registry.logger import configure_logging, get_logger, log_exception
from user_registry.routers import auth, users
from user_registry.schemas import HealthResponse
from user_registry.services.credentials import CredentialStore

# Initialize logging early
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Check the store, sync the schema, and hand the gateway to the routers."""
    # Will sys.exit(1) if config or DB connectivity checks fail
    await Bootloader.validate(mode=BootMode.CRITICAL)
    Bootloader.print_config()

    store = CredentialStore.from_settings(settings)
    try:
        await store.sync_schema()
    except Exception as exc:
        log_exception(logger, exc, "Schema synchronization failed", level="critical")
        await store.dispose()
        raise

    app.state.credential_store = store
    logger.info(
        "Application started",
        version=__version__,
        port=settings.port,
        validation_profile=settings.validation_profile,
    )
    yield
    await store.dispose()
    logger.info("Application shutting down")


app = FastAPI(
    title="User Registry API",
    description="User registration with validated credentials and bcrypt password storage",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Middleware to inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "HTTP Request",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round(duration * 1000, 2),
            error=str(exc),
        )
        raise


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep HTTPException bodies as-is, but name unmatched routes explicitly."""
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        detail = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a plain 400, matching the validation rejections."""
    logger.info("Malformed request body", errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"detail": "Invalid request body"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to ensure JSON response."""
    # Only show exception details in DEBUG mode
    if settings.debug:
        detail = str(exc)
        trace = traceback.format_exc()
    else:
        detail = "Internal server error"
        trace = None

    return JSONResponse(
        status_code=500,
        content={
            "detail": detail,
            "trace": trace,
            "request_id": structlog.contextvars.get_contextvars().get("request_id"),
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "X-Request-ID"],
)

app.include_router(auth.router)
app.include_router(users.router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe; reports whether the request arrived over HTTPS."""
    https = (
        request.url.scheme == "https"
        or request.headers.get("x-forwarded-proto", "").lower() == "https"
    )
    return HealthResponse(status="OK", timestamp=datetime.now(UTC), https=https)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
