from __future__ import annotations

from fastapi import FastAPI
from fastapi.openapi.docs import get_redoc_html

from app.api.exception_handlers import register_exception_handlers
from app.api.schemas import HealthOut
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMetricsMiddleware, metrics_router
from app.core.middleware.http_logging import HttpLoggingMiddleware
from app.core.settings import get_settings
from app.submissions.router import router as submissions_router
from app.topics.router import router as topics_router

setup_logging()

REDOC_JS_URL = "https://cdn.jsdelivr.net/npm/redoc@2.1.4/bundles/redoc.standalone.js"


def create_app() -> FastAPI:
    app = FastAPI(
        title="AMOCA Health Data Ledger Gateway",
        description=(
            "Collects free-text health data for an observational study, structures it with an "
            "LLM and publishes the result to a Hedera Consensus Service topic.\n\n"
            "Design principles:\n"
            "- PII-shaped text (emails, phone numbers, SSNs, cards, URLs, addresses, hex keys) "
            "is redacted before it reaches the LLM and again before anything is published.\n"
            "- Redaction is a best-effort regex heuristic, not a validated PII classifier.\n"
            "- Logs and metrics carry metadata only; never narratives, prompts or replies."
        ),
        docs_url="/swagger",
        redoc_url=None,  # custom ReDoc page at /docs
        openapi_tags=[
            {
                "name": "health",
                "description": "Basic uptime check for load balancers and monitoring.",
            },
            {
                "name": "submissions",
                "description": (
                    "Run user input through a named prompt variant and publish completed, "
                    "redacted records to the ledger."
                ),
            },
            {
                "name": "topics",
                "description": "Publish to, list and stream Hedera topics.",
            },
            {
                "name": "metrics",
                "description": "Prometheus-compatible metrics endpoint.",
            },
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/docs", include_in_schema=False)
    async def redoc_docs():
        return get_redoc_html(
            openapi_url=app.openapi_url or "/openapi.json",
            title=f"{app.title} - ReDoc",
            redoc_js_url=REDOC_JS_URL,
        )

    @app.get(
        "/health",
        response_model=HealthOut,
        tags=["health"],
        summary="Health check",
        description=(
            "Lightweight endpoint to verify the API process is running. It does not call the "
            "LLM, the ledger or the mirror node."
        ),
    )
    async def health() -> HealthOut:
        return HealthOut(status="ok", network=get_settings().hedera_network)

    app.include_router(metrics_router)
    app.include_router(submissions_router)
    app.include_router(topics_router)
    return app


app = create_app()
