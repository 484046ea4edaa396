from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class AuthError(UnauthorizedError):
    """Authentication failed or session is invalid."""


class PermissionError(ForbiddenError):
    """Authorization denied for the admin role."""


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


class StateError(ValueError):
    """A listing state change that the resource declaration does not allow."""


class UnknownFacetError(StateError):
    def __init__(self, resource: str, facet: str) -> None:
        super().__init__(f"Unknown facet {facet!r} for resource {resource!r}")
        self.resource = resource
        self.facet = facet


class ConfirmationRequiredError(ValueError):
    """Delete was requested without an explicit user confirmation."""


def invalid_response(message: str, *, trace_id: str | None = None, status_code: int = 0) -> TransportError:
    """A 2xx answer whose body cannot be read as the expected shape."""
    return TransportError(
        code="INVALID_RESPONSE",
        message=message,
        details=None,
        trace_id=trace_id,
        status_code=status_code,
    )
