"""Prometheus metrics definitions for Dispensa."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "dispensa_http_requests_total",
    "Total number of HTTP requests processed by the Dispensa API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "dispensa_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Dispensa API",
    ["method", "path"],
)

RECIPE_REQUESTS = Counter(
    "dispensa_recipe_requests_total",
    "Recipe suggestions requested from the AI provider by outcome",
    ["outcome"],
)

BARCODE_LOOKUPS = Counter(
    "dispensa_barcode_lookups_total",
    "Barcode lookups against Open Food Facts by result",
    ["result"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "RECIPE_REQUESTS",
    "BARCODE_LOOKUPS",
]
