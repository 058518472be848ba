"""Centralized error transformation for API routes.

Maps geosample errors (domain and infrastructure) to status codes and
renders them either as plain text (routes that answer with data files) or
as the JSON envelope `{"error": {"code": <status>, "message": ...}}`.
"""

from enum import StrEnum

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from geosample.domain.shared.error import (
    ConfigurationError,
    DomainError,
    GeoSampleError,
    InfrastructureError,
    MetadataUnavailableError,
)

ERROR_STATUS_MAP: dict[type[GeoSampleError], int] = {
    ConfigurationError: 500,
    MetadataUnavailableError: 500,
}


class ErrorFormat(StrEnum):
    JSON = "json"
    TEXT = "text"


def plain_text_errors(request: Request) -> None:
    """Router dependency: answer errors on this route with a text/plain body."""
    request.state.error_format = ErrorFormat.TEXT


def status_for(error: GeoSampleError) -> int:
    if type(error) in ERROR_STATUS_MAP:
        return ERROR_STATUS_MAP[type(error)]
    if isinstance(error, InfrastructureError):
        return 500
    if isinstance(error, DomainError):
        return 400
    # Fallback for unknown GeoSampleError subclasses
    return 500


def error_response(request: Request, status_code: int, message: str) -> Response:
    if getattr(request.state, "error_format", ErrorFormat.JSON) == ErrorFormat.TEXT:
        return PlainTextResponse(message, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": status_code, "message": message}},
    )


def map_geosample_error(request: Request, error: GeoSampleError) -> Response:
    """Render a geosample error for the route that raised it."""
    return error_response(request, status_for(error), error.message)


def map_validation_error(request: Request, error: RequestValidationError) -> Response:
    """Render a rejected query parameter as a 400."""
    details = error.errors()
    if not details:
        return error_response(request, 400, "Invalid request")
    first = details[0]
    name = first.get("loc", ("", "parameter"))[-1]
    return error_response(request, 400, f"Invalid '{name}' parameter: {first.get('msg', 'invalid')}")
