from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Mapping

TRACE_HEADER = "X-Trace-ID"
RESPONSE_TRACE_HEADERS = (TRACE_HEADER, "X-Request-ID")


@dataclass
class TraceContext:
    """Correlation ids for one browser session.

    Requests overlap, so each one gets its own id; ``session_id`` prefixes
    them so a screen's traffic can be grepped together.
    """

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    last_trace_id: str | None = None

    def begin(self) -> str:
        trace_id = f"{self.session_id}-{uuid.uuid4().hex[:12]}"
        self.last_trace_id = trace_id
        return trace_id

    def resolve(
        self,
        sent: str,
        headers: Mapping[str, str] | None = None,
        payload: object = None,
    ) -> str:
        """Prefer the id the server echoed back over the one we sent."""
        resolved = sent
        if headers is not None:
            echoed = next((headers.get(key) for key in RESPONSE_TRACE_HEADERS if headers.get(key)), None)
            resolved = echoed or resolved
        if isinstance(payload, Mapping):
            candidate = payload.get("trace_id")
            if isinstance(candidate, str) and candidate:
                resolved = candidate
        self.last_trace_id = resolved
        return resolved
