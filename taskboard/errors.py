"""Structured error types for API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by API handlers."""

    code: str
    message: str
    status_code: int = 400

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ApiError(RuntimeError):
    """Exception carrying a structured error response."""

    code = "BAD_REQUEST"
    status_code = 400

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code or self.code,
            message=message,
            status_code=self.status_code,
        )


class BadRequest(ApiError):
    """Malformed or missing input."""


class Unauthorized(ApiError):
    code = "UNAUTHORIZED"
    status_code = 401


class NotFound(ApiError):
    code = "NOT_FOUND"
    status_code = 404


class ProviderError(ApiError):
    """The identity provider rejected the request."""

    code = "PROVIDER_ERROR"
    status_code = 400


class ProviderUnavailable(ProviderError):
    """The identity provider could not be reached or answered garbage."""

    code = "PROVIDER_UNAVAILABLE"
    status_code = 502


class InternalError(ApiError):
    code = "INTERNAL_ERROR"
    status_code = 500


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return error.to_dict()
