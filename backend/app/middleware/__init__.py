"""
Middleware Package

Contains FastAPI middleware for:
- Prometheus metrics collection
- Match pipeline and AI fallback counters
"""

from app.middleware.metrics import (
    PrometheusMiddleware,
    setup_metrics,
    record_match_generation,
    record_ai_fallback,
    REQUEST_LATENCY,
    REQUEST_COUNT,
    ACTIVE_REQUESTS,
    AI_FALLBACKS,
)

__all__ = [
    "PrometheusMiddleware",
    "setup_metrics",
    "record_match_generation",
    "record_ai_fallback",
    "REQUEST_LATENCY",
    "REQUEST_COUNT",
    "ACTIVE_REQUESTS",
    "AI_FALLBACKS",
]
