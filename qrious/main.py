"""FastAPI application factory for the QRious backend."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from qrious import __version__
from qrious.api.errors import error_response
from qrious.api.health import router as health_router
from qrious.api.middleware import (
    RateLimitMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from qrious.api.routes import router as api_router
from qrious.config.logging import get_logger, setup_logging
from qrious.config.settings import Settings, get_settings
from qrious.core.cache import ResultCache, run_periodically
from qrious.core.rate_limiter import RateLimiter
from qrious.services.url_analysis import UrlAnalysisService

logger = get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Validator ValueErrors carry the original message in ctx
    original = (first.get("ctx") or {}).get("error")
    if original is not None:
        return str(original)
    return first.get("msg", "Invalid request")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting QRious backend", version=__version__, environment=settings.ENVIRONMENT.value)

    tasks = []
    cache = app.state.analysis_service.cache
    if cache is not None:
        tasks.append(asyncio.create_task(
            run_periodically("cache-cleanup", settings.CACHE_CLEANUP_INTERVAL_SECONDS, cache.cleanup)
        ))
    tasks.append(asyncio.create_task(
        run_periodically(
            "rate-limit-cleanup",
            settings.RATE_LIMIT_CLEANUP_INTERVAL_SECONDS,
            app.state.rate_limiter.cleanup
        )
    ))

    yield

    logger.info("Shutting down QRious backend")
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await app.state.analysis_service.close()


def create_app(
    settings: Optional[Settings] = None,
    analysis_service: Optional[UrlAnalysisService] = None
) -> FastAPI:
    """Build the application. Collaborators can be injected for tests."""
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Resolves QR code URLs through their redirects and scores the destination",
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url=None
    )

    if analysis_service is None:
        cache = ResultCache(default_ttl_seconds=settings.cache_ttl_seconds)
        analysis_service = UrlAnalysisService.from_settings(settings, cache=cache)
    rate_limiter = RateLimiter(requests_per_minute=settings.RATE_LIMIT_REQUESTS_PER_MINUTE)

    app.state.settings = settings
    app.state.analysis_service = analysis_service
    app.state.rate_limiter = rate_limiter

    # Last added runs first
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.MAX_REQUEST_BYTES)
    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Validation failed", _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(404, "Not found", "The requested resource was not found", headers=exc.headers)
        return error_response(exc.status_code, str(exc.detail), str(exc.detail), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error", path=request.url.path, exc_info=exc)
        return error_response(500, "Internal server error", "An unexpected error occurred")

    app.include_router(health_router)
    app.include_router(api_router)

    return app


app = create_app()
