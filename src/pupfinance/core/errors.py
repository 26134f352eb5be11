"""Typed errors raised by the services and mapped to HTTP responses in one place."""

from __future__ import annotations

from typing import Any


class PupFinanceError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code: int = 500
    default_detail: str = "Internal Server Error"

    def __init__(self, detail: Any = None) -> None:
        self.detail = detail if detail is not None else self.default_detail
        super().__init__(self.detail)


class ValidationError(PupFinanceError):
    """Malformed input body or claims shape."""

    status_code = 400
    default_detail = "Validation failed"

    def __init__(self, detail: Any = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(detail)
        self.errors = errors or []


class Unauthenticated(PupFinanceError):
    """No verified identity is attached to the request."""

    status_code = 401
    default_detail = "Authentication required"


class MalformedClaimsError(Unauthenticated):
    """A verified token lacks the claims needed to identify the caller."""

    default_detail = "Token is missing a valid subject claim"


class Forbidden(PupFinanceError):
    """Authenticated, but lacking the required permissions or roles."""

    status_code = 403
    default_detail = "Forbidden"


class NotFound(PupFinanceError):
    status_code = 404
    default_detail = "Not found"


class UsernameConflictError(PupFinanceError):
    """A username collided with the unique constraint. Retrying may succeed."""

    status_code = 409
    default_detail = "Username generation conflict. Please try again."


class UpstreamUnavailable(PupFinanceError):
    """Storage or token verification collaborator failed."""

    status_code = 500
    default_detail = "Upstream service unavailable"


class ConfigurationError(RuntimeError):
    """Required configuration is missing; raised at startup only."""


def pydantic_errors(exc: Any) -> list[dict[str, Any]]:
    """Flatten a pydantic ``ValidationError`` into ``{path, message}`` entries."""
    return [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
