"""Health check and monitoring API endpoints."""

import time
from datetime import datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from ..models.response import HealthResponse
from ..config import get_settings

router = APIRouter(prefix="/api/v1", tags=["health"])
settings = get_settings()

# Import the global search engine instance
from ..engine_instance import search_engine

# Track application start time
app_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the search engine service"
)
def health_check() -> HealthResponse:
    """
    Perform a health check on the search engine service.

    Runs a probe search and inspects the corpus and ledger.
    """
    uptime = time.time() - app_start_time

    dependencies = {
        "search_engine": "healthy",
        "content_source": "healthy",
        "ledger": "healthy"
    }

    try:
        search_engine.search("test", max_results=1, include_suggestions=False)
    except Exception:
        dependencies["search_engine"] = "unhealthy"

    snapshot = search_engine.snapshot()
    if snapshot.error is not None:
        dependencies["content_source"] = "unhealthy"
    elif snapshot.warnings:
        dependencies["content_source"] = "degraded"

    try:
        search_engine.ledger.get_stats()
    except Exception:
        dependencies["ledger"] = "unhealthy"

    # Determine overall status
    if all(status == "healthy" for status in dependencies.values()):
        status = "healthy"
    elif any(status == "unhealthy" for status in dependencies.values()):
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        uptime=uptime,
        dependencies=dependencies
    )


@router.get(
    "/health/ready",
    summary="Readiness check",
    description="Check if the service is ready to accept requests"
)
def readiness_check() -> JSONResponse:
    """
    Check if the service is ready to accept requests.

    The service is ready once a corpus snapshot has loaded without a source error.
    """
    snapshot = search_engine.snapshot()
    if snapshot.error is not None:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "error": snapshot.error.to_dict(),
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    return JSONResponse(
        status_code=200,
        content={
            "status": "ready",
            "timestamp": datetime.utcnow().isoformat(),
            "corpus_stats": snapshot.get_stats()
        }
    )


@router.get(
    "/health/live",
    summary="Liveness check",
    description="Check if the service is alive and responding"
)
async def liveness_check() -> JSONResponse:
    """Check if the service process is alive."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "alive",
            "timestamp": datetime.utcnow().isoformat(),
            "uptime": time.time() - app_start_time
        }
    )


@router.get(
    "/status",
    summary="Service status",
    description="Get detailed status information about the service"
)
def service_status() -> JSONResponse:
    """
    Get detailed status information about the service.

    Includes configuration, engine statistics and corpus statistics.
    """
    try:
        stats = search_engine.get_stats()

        config_info = {
            "fuzzy_threshold": search_engine.fuzzy_threshold,
            "field_weights": settings.field_weights(),
            "max_results": settings.max_results,
            "max_query_length": settings.max_query_length,
            "corpus_ttl_seconds": settings.corpus_ttl_seconds,
            "debug": settings.debug
        }

        return JSONResponse(
            status_code=200,
            content={
                "service": {
                    "name": settings.app_name,
                    "version": settings.app_version,
                    "status": "running",
                    "uptime": time.time() - app_start_time,
                    "start_time": datetime.fromtimestamp(app_start_time).isoformat()
                },
                "configuration": config_info,
                "statistics": stats,
                "timestamp": datetime.utcnow().isoformat()
            }
        )

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get service status: {str(e)}"
        )
