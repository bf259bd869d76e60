from __future__ import annotations

import time
from typing import cast

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.core.middleware.route_label import safe_route_label

metrics_router = APIRouter(tags=["metrics"])

# IMPORTANT (healthcare safety):
# - No topic ids, transaction ids or account ids in labels.
# - Route label MUST be a route template (e.g. /topics/{topic_id}/messages) or a fixed value.

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "route", "status_code"),
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=("method", "route", "status_code"),
    # LLM-backed routes take seconds; buckets stretch further than a plain CRUD API.
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

llm_replies_total = Counter(
    "llm_replies_total",
    "LLM replies by prompt variant and parse outcome",
    labelnames=("variant", "outcome"),
)

ledger_submissions_total = Counter(
    "ledger_submissions_total",
    "Ledger topic submissions by caller and outcome",
    labelnames=("source", "outcome"),
)


def record_llm_reply(*, variant: str, outcome: str) -> None:
    llm_replies_total.labels(variant=variant, outcome=outcome).inc()


def record_ledger_submission(*, source: str, outcome: str) -> None:
    ledger_submissions_total.labels(source=source, outcome=outcome).inc()


class PrometheusMetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route_label = safe_route_label(request)
            code = str(int(status_code))
            http_requests_total.labels(
                method=request.method, route=route_label, status_code=code
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method, route=route_label, status_code=code
            ).observe(time.perf_counter() - started)


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    # Default registry; the service runs as a single process.
    payload = generate_latest()
    return Response(content=cast(bytes, payload), media_type=CONTENT_TYPE_LATEST)
