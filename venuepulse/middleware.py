"""Prometheus instrumentation for the venue API."""
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from venuepulse.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUEST_SIZE_BYTES,
    HTTP_RESPONSE_SIZE_BYTES,
)

UNMETERED_PATHS = frozenset({"/metrics", "/health", "/ping"})

# Segments under /v1/venues/ that name a route rather than a venue
VENUE_COLLECTION_ROUTES = frozenset({"nearby"})


def endpoint_label(path: str) -> str:
    """Metric label for a request path, with the venue ID templated out.

    /v1/venues/court-42/status -> /v1/venues/{venue_id}/status
    """
    segments = path.strip("/").split("/")
    for i in range(1, len(segments)):
        if segments[i - 1] == "venues" and segments[i] not in VENUE_COLLECTION_ROUTES:
            segments[i] = "{venue_id}"
    return "/" + "/".join(segments)


def _observe_size(histogram, method: str, endpoint: str, header: Optional[str]) -> None:
    if header and header.isdigit():
        histogram.labels(method=method, endpoint=endpoint).observe(int(header))


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records count, latency, in-flight and body sizes per venue endpoint."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in UNMETERED_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = endpoint_label(request.url.path)
        _observe_size(HTTP_REQUEST_SIZE_BYTES, method, endpoint, request.headers.get("content-length"))

        in_flight = HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint)
        in_flight.inc()
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            in_flight.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=str(status_code)
            ).inc()

        _observe_size(HTTP_RESPONSE_SIZE_BYTES, method, endpoint, response.headers.get("content-length"))
        return response
