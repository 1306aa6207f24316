"""
Typed errors shared by the API, the share link services and the population script.

Each error carries the HTTP status it maps to, so handlers in ``main.py`` can
render it without inspecting message text.
"""
from typing import Any, Optional


class HubError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", *, detail: Optional[Any] = None) -> None:
        self.message = message or self.__class__.__name__
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class ValidationError(HubError):
    """Malformed input, or input the caller is not allowed to reference."""
    status_code = 400
    code = "validation_error"


class NotFoundError(HubError):
    status_code = 404
    code = "not_found"


class ForbiddenError(HubError):
    """Caller is authenticated but not the owner."""
    status_code = 403
    code = "forbidden"


class ConflictError(HubError):
    """Mutation conflicts with current state (revoked link, existing account)."""
    status_code = 409
    code = "conflict"


class ExternalDependencyError(HubError):
    """Network failure or timeout talking to storage or a remote API."""
    status_code = 502
    code = "external_dependency_error"


def error_for_status(status_code: int, message: str, detail: Optional[Any] = None) -> HubError:
    """
    Map an HTTP status received from a remote API back onto the error taxonomy.
    """
    if status_code in (400, 422):
        return ValidationError(message, detail=detail)
    if status_code in (401, 403):
        return ForbiddenError(message, detail=detail)
    if status_code == 404:
        return NotFoundError(message, detail=detail)
    if status_code == 409:
        return ConflictError(message, detail=detail)
    return ExternalDependencyError(message, detail=detail)
