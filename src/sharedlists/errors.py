from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.fields = [FieldError(field=field, message=message)]

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "fields": [f.to_dict() for f in self.fields]}


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Conflict"


class UpstreamError(ApiError):
    status_code = 502
    default_message = "Upstream provider error"
