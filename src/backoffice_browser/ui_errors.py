from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .exceptions import (
    ApiError,
    ForbiddenError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class BrowserError:
    """Single error shape handed to the rendering layer."""

    kind: ErrorKind
    message: str
    field_errors: dict[str, list[str]] = field(default_factory=dict)
    trace_id: str | None = None
    status_code: int | None = None
    code: str | None = None

    @property
    def is_field_error(self) -> bool:
        return self.kind is ErrorKind.VALIDATION and bool(self.field_errors)


@dataclass(frozen=True)
class UserFacingError:
    message: str
    details: str | None = None
    trace_id: str | None = None

    @property
    def technical_details(self) -> str | None:
        if self.details:
            return self.details
        return None


def to_browser_error(exc: Exception) -> BrowserError:
    if not isinstance(exc, ApiError):
        return BrowserError(kind=ErrorKind.TRANSPORT, message=str(exc) or type(exc).__name__)
    if isinstance(exc, ValidationError):
        kind = ErrorKind.VALIDATION
    elif isinstance(exc, NotFoundError):
        kind = ErrorKind.NOT_FOUND
    elif isinstance(exc, (UnauthorizedError, ForbiddenError)):
        kind = ErrorKind.PERMISSION
    else:
        # TransportError, ServerError and any unexpected status
        kind = ErrorKind.TRANSPORT
    return BrowserError(
        kind=kind,
        message=exc.message,
        field_errors=dict(exc.field_errors),
        trace_id=exc.trace_id,
        status_code=None if isinstance(exc, TransportError) else exc.status_code,
        code=exc.code,
    )


def duplicate_mutation_error(operation: str) -> BrowserError:
    return BrowserError(
        kind=ErrorKind.DUPLICATE,
        message=f"{operation} is already in progress",
        code="DUPLICATE_IN_FLIGHT",
    )


def to_user_facing_error(error: BrowserError) -> UserFacingError:
    primary = error.message.strip() or "Request failed"
    details = error.kind.value
    if error.code:
        details = f"{details}: {error.code}"
    if error.status_code:
        details = f"{details} (HTTP {error.status_code})"
    if error.field_errors:
        flattened = "; ".join(f"{key}: {', '.join(messages)}" for key, messages in error.field_errors.items())
        details = f"{details} {flattened}"
    return UserFacingError(message=primary, details=details, trace_id=error.trace_id)
