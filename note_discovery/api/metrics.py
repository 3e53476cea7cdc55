"""Metrics and monitoring API endpoints."""

import psutil
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..models.response import MetricsResponse
from ..config import get_settings

router = APIRouter(prefix="/api/v1", tags=["metrics"])
settings = get_settings()

# Import the global search engine instance
from ..engine_instance import search_engine


def _process_memory_mb() -> float:
    return psutil.Process().memory_info().rss / (1024 * 1024)


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get performance metrics",
    description="Get query, corpus and ledger metrics for the service"
)
async def get_metrics() -> MetricsResponse:
    """Get query statistics, corpus size, ledger size and memory usage."""
    stats = search_engine.get_stats()
    corpus_stats = stats.get("corpus_stats") or {}
    ledger_stats = stats.get("ledger_stats") or {}

    return MetricsResponse(
        total_queries=stats["total_queries"],
        average_response_time_ms=stats["average_execution_time_ms"],
        no_match_rate=stats["no_match_rate"],
        corpus_size=corpus_stats.get("total_items", 0),
        corpus_reloads=stats["corpus_reloads"],
        corpus_errors=stats["corpus_errors"],
        ledger_accounts=ledger_stats.get("accounts", 0),
        ledger_redemptions=ledger_stats.get("redemptions", 0),
        memory_usage_mb=_process_memory_mb()
    )


@router.get(
    "/metrics/detailed",
    summary="Get detailed metrics",
    description="Get detailed metrics including system resource usage"
)
async def get_detailed_metrics() -> JSONResponse:
    """
    Get detailed metrics including a breakdown by query outcome.

    Also reports host memory and CPU usage.
    """
    stats = search_engine.get_stats()
    memory_info = psutil.virtual_memory()

    return JSONResponse(
        status_code=200,
        content={
            "query_metrics": {
                "total_queries": stats["total_queries"],
                "matched_queries": stats["matched_queries"],
                "empty_queries": stats["empty_queries"],
                "no_matches": stats["no_matches"],
                "no_match_rate": stats["no_match_rate"],
                "average_response_time_ms": stats["average_execution_time_ms"],
                "total_execution_time_ms": stats["total_execution_time"]
            },
            "corpus_metrics": stats.get("corpus_stats") or {},
            "ledger_metrics": stats.get("ledger_stats") or {},
            "system_metrics": {
                "process_memory_mb": _process_memory_mb(),
                "memory_usage_percent": memory_info.percent,
                "cpu_usage_percent": psutil.cpu_percent(interval=None),
                "available_memory_mb": memory_info.available / (1024 * 1024)
            },
            "timestamp": datetime.utcnow().isoformat()
        }
    )
