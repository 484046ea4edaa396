from __future__ import annotations

import uuid

IDEMPOTENCY_HEADER = "Idempotency-Key"


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def idempotency_headers(key: str | None = None) -> dict[str, str]:
    """Header for a create call; a fresh key unless a retry supplies one."""
    return {IDEMPOTENCY_HEADER: key or new_idempotency_key()}
