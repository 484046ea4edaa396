from __future__ import annotations

from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    ValidationError,
)


def _field_errors(raw: object) -> dict[str, list[str]]:
    if not isinstance(raw, Mapping):
        return {}
    normalized: dict[str, list[str]] = {}
    for key, value in raw.items():
        if isinstance(value, (list, tuple)):
            normalized[str(key)] = [str(item) for item in value]
        elif value is not None:
            normalized[str(key)] = [str(value)]
    return normalized


def _first_field_message(field_errors: dict[str, list[str]]) -> str | None:
    for messages in field_errors.values():
        if messages:
            return messages[0]
    return None


def map_error(status_code: int, payload: Mapping[str, object] | str | None, trace_id: str | None) -> ApiError:
    if isinstance(payload, str):
        payload = {"message": payload}
    payload = payload or {}
    field_errors = _field_errors(payload.get("errors"))
    code = str(payload.get("code") or "HTTP_ERROR")
    message = str(payload.get("message") or _first_field_message(field_errors) or "Request failed")
    details = payload.get("details")
    payload_trace_id = payload.get("trace_id")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id is not None else trace_id
    mapped: type[ApiError]
    if status_code in {401}:
        mapped = AuthError
    elif status_code in {403}:
        mapped = PermissionError
    elif status_code in {404}:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = ApiError
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
        field_errors=field_errors,
    )
