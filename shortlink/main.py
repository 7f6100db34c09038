"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Error responses for service exceptions
- Start-up/shutdown of shared resources (Redis client, code generator)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortlink.api import endpoints
from shortlink.api.schemas import ErrorDetail, ErrorResponse
from shortlink.core.exceptions import URLShortenerException
from shortlink.core.rate_limit import limiter
from shortlink.core.resource_manager import get_resolution_cache, initialize_resources, shutdown_resources
from shortlink.core.setting import EnvSettingsOptions, settings
from shortlink.db.session import create_tables
from shortlink.middleware.logging import add_logging_middleware
from shortlink.services.resolution_cache import ResolutionCache

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV_SETTING is EnvSettingsOptions.development:
        # Production schemas are managed by Alembic
        await create_tables()
    await initialize_resources()
    yield
    await shutdown_resources()


app = FastAPI(
    title="Shortlink",
    description="URL shortening service with cached redirects",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(URLShortenerException)
async def shortener_exception_handler(request: Request, exc: URLShortenerException) -> JSONResponse:
    """Render service errors as {"success": false, "error": {code, message}}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    body = ErrorResponse(error=ErrorDetail(code=exc.code, message=str(exc)))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    return {
        "message": "Shortlink",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check(cache: ResolutionCache = Depends(get_resolution_cache)):
    """
    Health check endpoint for monitoring.

    The service stays healthy without Redis (redirects fall back to the
    database); cache status is reported for visibility.
    """
    cache_ok = await cache.ping()
    return {"status": "healthy", "cache": "up" if cache_ok else "down"}


app.include_router(endpoints.router, tags=["URL Shortener"])
