from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.middleware.route_label import safe_route_label
from app.domain.exceptions import BusinessValidationError, ConfigurationError

logger = logging.getLogger("app.errors")


def _log_metadata(request: Request, *, status_code: int, error: str) -> dict[str, object]:
    # IMPORTANT: metadata only; no bodies, no query values.
    return {
        "request_id": getattr(request.state, "request_id", None),
        "http_method": request.method,
        "request_path": safe_route_label(request),
        "status_code": status_code,
        "outcome": error,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to JSON error responses."""

    @app.exception_handler(BusinessValidationError)
    async def handle_business_validation_error(
        request: Request,
        exc: BusinessValidationError,
    ) -> JSONResponse:
        logger.info(
            "Business validation failed",
            extra=_log_metadata(request, status_code=400, error="business_validation"),
        )
        return JSONResponse(status_code=400, content={"detail": exc.message})

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(
        request: Request,
        exc: ConfigurationError,
    ) -> JSONResponse:
        logger.error(
            "Service misconfigured",
            extra=_log_metadata(request, status_code=500, error="configuration"),
        )
        return JSONResponse(status_code=500, content={"detail": exc.message})
