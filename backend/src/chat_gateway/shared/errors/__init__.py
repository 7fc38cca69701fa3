"""Global exception handlers — map gateway errors to HTTP responses."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse
import structlog

from chat_gateway.application.dtos import ErrorResponse
from chat_gateway.domain.exceptions import (
    AllProvidersExhaustedError,
    GatewayError,
    InvalidRequestError,
    NoProvidersRegisteredError,
)

logger = structlog.get_logger(__name__)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> ORJSONResponse:
    body = ErrorResponse(code=code, message=message, details=details)
    return ORJSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all gateway→HTTP exception mappings."""

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid(request: Request, exc: InvalidRequestError) -> ORJSONResponse:
        details = {"index": exc.index} if exc.index is not None else None
        return error_response(422, exc.code, exc.message, details)

    @app.exception_handler(AllProvidersExhaustedError)
    async def handle_exhausted(
        request: Request, exc: AllProvidersExhaustedError
    ) -> ORJSONResponse:
        logger.error("all_providers_exhausted_http", errors=exc.errors)
        return error_response(502, exc.code, exc.message, {"errors": exc.errors})

    @app.exception_handler(NoProvidersRegisteredError)
    async def handle_no_providers(
        request: Request, exc: NoProvidersRegisteredError
    ) -> ORJSONResponse:
        logger.error("no_providers_http", message=exc.message)
        return error_response(503, exc.code, exc.message)

    @app.exception_handler(GatewayError)
    async def handle_gateway(request: Request, exc: GatewayError) -> ORJSONResponse:
        logger.error("gateway_error_http", code=exc.code, message=exc.message)
        return error_response(500, exc.code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("unhandled_exception", error=str(exc))
        return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")
