# dashacycle/utils/metrics.py
from __future__ import annotations

from typing import Final

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest

__all__ = [
    "MET_REQUESTS", "REQ_LATENCY", "MET_WARNINGS", "TREE_BUILDS",
    "CACHE_HITS", "CACHE_MISSES", "GAUGE_APP_UP",
    "CONTENT_TYPE_LATEST", "REGISTRY", "generate_latest", "seed_routes",
]

MET_REQUESTS: Final = Counter("dasha_api_requests_total", "API requests", ["route"])
REQ_LATENCY: Final = Histogram("dasha_request_seconds", "API request latency", ["route"])
MET_WARNINGS: Final = Counter("dasha_warning_total", "Non-fatal warnings", ["kind"])
TREE_BUILDS: Final = Counter("dasha_tree_builds_total", "Period trees built", ["system"])
CACHE_HITS: Final = Counter("dasha_cache_hits_total", "Tree cache hits", ["cache"])
CACHE_MISSES: Final = Counter("dasha_cache_misses_total", "Tree cache misses", ["cache"])
GAUGE_APP_UP: Final = Gauge("dasha_app_up", "1 if app is running")


def seed_routes(*routes: str) -> None:
    """Touch labelled series so they show up in /metrics before first use."""
    for route in routes:
        MET_REQUESTS.labels(route=route).inc(0)
        REQ_LATENCY.labels(route=route).observe(0.0)
