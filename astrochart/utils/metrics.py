# astrochart/utils/metrics.py
from __future__ import annotations

from typing import Final, Iterable

from prometheus_client import Counter, Gauge, Histogram

# Names are scraped by dashboards; keep them stable.
MET_REQUESTS: Final = Counter("astro_api_requests_total", "API requests", ["route"])
MET_ERRORS: Final = Counter("astro_api_errors_total", "Domain errors returned to callers", ["kind"])
MET_WARNINGS: Final = Counter("astro_warning_total", "Non-fatal chart warnings", ["kind"])
MET_CHARTS: Final = Counter("astro_charts_total", "Charts computed", ["house_system"])
GAUGE_APP_UP: Final = Gauge("astro_app_up", "1 if app is running")
REQ_LATENCY: Final = Histogram("astro_request_seconds", "API request latency", ["route"])

SEEDED_ROUTES = (
    "/", "/health", "/healthz", "/metrics",
    "/api/chart", "/api/houses", "/api/timescales", "/api/aspects",
    "/api/ephemeris/availability", "/api/locations", "/api/systems",
)


def seed() -> None:
    """Pre-create label sets so series exist before the first request."""
    for route in SEEDED_ROUTES:
        MET_REQUESTS.labels(route=route).inc(0)
    for kind in ("ephemeris_fallback", "kepler_convergence"):
        MET_WARNINGS.labels(kind=kind).inc(0)
    GAUGE_APP_UP.set(1.0)


def record_chart_warnings(warnings: Iterable[str]) -> None:
    for w in warnings:
        kind = "kepler_convergence" if "Kepler" in w else "ephemeris_fallback"
        MET_WARNINGS.labels(kind=kind).inc()
