from __future__ import annotations

"""
Prometheus metrics for the Rosetta service.

- Exposes a /metrics endpoint (text/plain; version=0.0.4).
- Provides HTTP request counters & latency histograms.
- Provides per-endpoint Rosetta call metrics via an explicit observation hook.
- Optional support for multiprocess mode if PROMETHEUS_MULTIPROC_DIR is set.

Usage
-----
from rosetta.metrics import mount_metrics, http_metrics_middleware, rosetta_metrics

app = FastAPI()
mount_metrics(app)                        # adds GET /metrics
app.add_middleware(http_metrics_middleware)

obs = rosetta_metrics.observe("/network/status")
try:
    result = await service.network_status()
    obs.ok()
except RosettaError as e:
    obs.error(str(e.code))
    raise
"""

import os
import time

from fastapi import APIRouter, FastAPI, Request
from prometheus_client import (CONTENT_TYPE_LATEST, REGISTRY,
                               CollectorRegistry, Counter, Histogram,
                               generate_latest)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


def _registry() -> CollectorRegistry:
    mp_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
    if mp_dir:
        # Multiprocess mode: the process manager must clear the dir on boot.
        from prometheus_client import multiprocess

        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return registry
    return REGISTRY


REG = _registry()


# ---- Metric definitions ----------------------------------------------------

HTTP_REQUESTS = Counter(
    "rosetta_http_requests_total",
    "Total HTTP requests by method and path and status.",
    ["method", "path", "status"],
    registry=REG,
)

HTTP_LATENCY = Histogram(
    "rosetta_http_request_duration_seconds",
    "HTTP request duration in seconds by method and path.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
    registry=REG,
)

ROSETTA_CALLS = Counter(
    "rosetta_endpoint_calls_total",
    "Rosetta endpoint calls by endpoint, status and error code.",
    ["endpoint", "status", "code"],
    registry=REG,
)

ROSETTA_LATENCY = Histogram(
    "rosetta_endpoint_duration_seconds",
    "Rosetta endpoint latency in seconds (node queries included).",
    ["endpoint"],
    buckets=(0.001, 0.003, 0.0075, 0.015, 0.03, 0.06, 0.12, 0.25, 0.5, 1, 2, 5),
    registry=REG,
)


# ---- HTTP Middleware -------------------------------------------------------

_KNOWN_PATHS = (
    "/network/list",
    "/network/status",
    "/network/options",
    "/metrics",
    "/healthz",
    "/version",
)


def _short_path(path: str) -> str:
    """Collapse unknown paths into '/other' to keep label cardinality bounded."""
    return path if path in _KNOWN_PATHS else "/other"


class _HttpMetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        method = request.method.upper()
        path = _short_path(request.url.path)

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start
            HTTP_REQUESTS.labels(method=method, path=path, status="500").inc()
            HTTP_LATENCY.labels(method=method, path=path).observe(elapsed)
            raise

        elapsed = time.perf_counter() - start
        HTTP_REQUESTS.labels(
            method=method, path=path, status=str(response.status_code)
        ).inc()
        HTTP_LATENCY.labels(method=method, path=path).observe(elapsed)
        return response


# exported alias for app.add_middleware(...)
http_metrics_middleware = _HttpMetricsMiddleware


# ---- Endpoint observations --------------------------------------------------


class _Observation:
    __slots__ = ("_endpoint", "_start", "_ended")

    def __init__(self, endpoint: str) -> None:
        self._endpoint = endpoint
        self._start = time.perf_counter()
        self._ended = False

    def _finish(self, status: str, code: str) -> None:
        if self._ended:
            return
        self._ended = True
        dt = time.perf_counter() - self._start
        ROSETTA_CALLS.labels(endpoint=self._endpoint, status=status, code=code).inc()
        ROSETTA_LATENCY.labels(endpoint=self._endpoint).observe(dt)

    def ok(self) -> None:
        self._finish("ok", "0")

    def error(self, code: str) -> None:
        """Mark failed completion with the Rosetta error code as label."""
        self._finish("error", code)


class _RosettaMetrics:
    def observe(self, endpoint: str) -> _Observation:
        return _Observation(endpoint)


rosetta_metrics = _RosettaMetrics()


# ---- /metrics endpoint -----------------------------------------------------


def _metrics_handler() -> Response:
    data = generate_latest(REG)
    media_type = (
        CONTENT_TYPE_LATEST.decode()
        if isinstance(CONTENT_TYPE_LATEST, (bytes, bytearray))
        else CONTENT_TYPE_LATEST
    )
    return Response(content=data, media_type=media_type)


def mount_metrics(app: FastAPI) -> None:
    """
    Mount GET /metrics on the provided FastAPI app, ready for Prometheus to scrape.
    """
    router = APIRouter()
    router.add_api_route(
        "/metrics", _metrics_handler, methods=["GET"], include_in_schema=False
    )
    app.include_router(router)


__all__ = [
    "mount_metrics",
    "http_metrics_middleware",
    "rosetta_metrics",
    "HTTP_REQUESTS",
    "HTTP_LATENCY",
    "ROSETTA_CALLS",
    "ROSETTA_LATENCY",
]
