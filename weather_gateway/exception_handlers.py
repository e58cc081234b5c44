from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_gateway.errors import ParameterMissingError, ResourceExhaustedError
from weather_gateway.logger import logger


class UTF8JSONResponse(JSONResponse):
    """JSON response that declares its charset; non-ASCII text is sent unescaped."""

    media_type = "application/json; charset=utf-8"


def error_response(status_code: int, message: str) -> UTF8JSONResponse:
    return UTF8JSONResponse(status_code=status_code, content={"error": message})


def _normalize_pydantic_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Make sure Pydantic error dicts are JSON-serializable."""
    normalized: list[dict[str, Any]] = []
    for error in errors:
        e = dict(error)
        ctx = e.get("ctx")
        if isinstance(ctx, dict):
            # Convert any non-serializable ctx values (e.g. exceptions) to strings.
            e["ctx"] = {k: str(v) for k, v in ctx.items()}
        normalized.append(e)
    return normalized


def _build_validation_message(errors: list[dict[str, Any]]) -> str:
    """Turn validation errors into one stable, human-readable message.

    Internal validation details are not exposed to clients; only the offending
    parameter names are.
    """
    missing: list[str] = []
    invalid: list[str] = []
    for error in _normalize_pydantic_errors(errors):
        loc = error.get("loc", ())
        name = str(loc[-1]) if loc else "request"
        target = missing if error.get("type") == "missing" else invalid
        if name not in target:
            target.append(name)

    if missing:
        return f"Missing required parameter(s): {', '.join(missing)}"
    if invalid:
        return f"Invalid parameter(s): {', '.join(invalid)}"
    return "Invalid request parameters"


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle missing or malformed query parameters detected by FastAPI."""
    logger.info(
        "Request validation error "
        f"path={request.url.path} method={request.method} errors={exc.errors()}"
    )
    return error_response(status.HTTP_400_BAD_REQUEST, _build_validation_message(list(exc.errors())))


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors raised while building query models in dependencies."""
    logger.info(
        "Pydantic validation error during request handling "
        f"path={request.url.path} method={request.method} errors={exc.errors()}"
    )
    return error_response(status.HTTP_400_BAD_REQUEST, _build_validation_message(exc.errors()))


async def parameter_missing_exception_handler(request: Request, exc: ParameterMissingError) -> JSONResponse:
    logger.info(f"Missing parameter path={request.url.path} method={request.method} error={exc}")
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def resource_exhausted_exception_handler(request: Request, exc: ResourceExhaustedError) -> JSONResponse:
    """Every provider of a capability without a safe default failed (weather only)."""
    logger.error(
        "Upstream providers exhausted "
        f"path={request.url.path} method={request.method} capability={exc.capability} error={exc}"
    )
    return error_response(status.HTTP_502_BAD_GATEWAY, "Weather data is temporarily unavailable from the upstream provider.")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405...) in the uniform error shape."""
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    response = error_response(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        "Unhandled exception while processing request: "
        f"{repr(exc)} path={request.url.path} method={request.method}"
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred while processing the request.",
    )
