"""Main FastAPI application for the Note Discovery service."""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from .api import (
    search_router,
    credits_router,
    health_router,
    metrics_router,
)
from .config import get_settings
from .core.errors import LedgerContention
from .engine_instance import search_engine
from .models.response import ErrorResponse

settings = get_settings()

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Note Discovery service", version=settings.app_version)

    snapshot = search_engine.load_corpus()
    if snapshot.error is not None:
        logger.warning("Starting with an empty corpus", error=str(snapshot.error))
    else:
        logger.info("Corpus ready", total_items=len(snapshot), warnings=len(snapshot.warnings))

    yield

    # Shutdown
    logger.info("Shutting down Note Discovery service")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Fuzzy search over free notes and premium summaries with credit-gated unlocking",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    """Log every request with a request id bound to all log lines it produces."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
        user_id=request.headers.get(settings.user_id_header),
    )
    start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time_ms=round((time.time() - start_time) * 1000, 2)
    )

    return response


@app.exception_handler(LedgerContention)
async def ledger_contention_handler(request: Request, exc: LedgerContention) -> JSONResponse:
    """Transient lock timeouts are retryable for the client."""
    logger.warning("Ledger contention", url=str(request.url), user_id=exc.user_id)
    return JSONResponse(
        status_code=503,
        headers={"Retry-After": "1"},
        content=ErrorResponse(
            error="Service Unavailable",
            message="Account is busy, please retry"
        ).model_dump(mode="json")
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle global exceptions."""
    logger.error(
        "Unhandled exception",
        method=request.method,
        url=str(request.url),
        error=str(exc),
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal Server Error",
            message="An unexpected error occurred",
            details={"exception": str(exc)} if settings.debug else None
        ).model_dump(mode="json")
    )


# Include API routers
app.include_router(search_router)
app.include_router(credits_router)
app.include_router(health_router)
app.include_router(metrics_router)


# Root endpoint
@app.get("/", summary="Root endpoint", description="Get basic information about the API")
async def root() -> dict:
    """Root endpoint with basic API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Fuzzy search over free notes and premium summaries",
        "docs_url": "/docs",
        "health_url": "/api/v1/health",
        "status": "running"
    }


# API info endpoint
@app.get("/api", summary="API information", description="Get detailed API information")
async def api_info() -> dict:
    """Get detailed API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "endpoints": {
            "search": "/api/v1/search?q=calculus&file_kind=pdf&min_rating=4",
            "suggestions": "/api/v1/suggestions/{query}",
            "subjects": "/api/v1/subjects",
            "item": "/api/v1/items/{item_id}",
            "reload": "/api/v1/corpus/reload",
            "balance": "/api/v1/credits/balance",
            "redeem": "/api/v1/credits/redeem",
            "redemptions": "/api/v1/credits/redemptions",
            "health": "/api/v1/health",
            "metrics": "/api/v1/metrics"
        },
        "features": [
            "Typo-tolerant fuzzy matching over title, description, tags, subject and author",
            "Subject, university, file type and rating filters",
            "Free and premium results ranked together by relevance",
            "Credit-gated premium unlocks, debited once per user and item",
        ],
        "search": {
            "fuzzy_threshold": search_engine.fuzzy_threshold,
            "max_query_length": settings.max_query_length,
            "max_results": settings.max_results
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "note_discovery.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
        log_level=settings.log_level.lower()
    )
