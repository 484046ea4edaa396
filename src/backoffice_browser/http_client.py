from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import TransportError, invalid_response
from .tracing import TRACE_HEADER, TraceContext

ResponseHook = Callable[[httpx.Response], None]
RequestHook = Callable[[str, str, dict[str, Any]], None]


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class AsyncHttpClient:
    """Thin async JSON client. Errors are mapped once here, never retried."""

    config: ClientConfig
    trace: TraceContext | None = None
    client: httpx.AsyncClient | None = None
    transport: httpx.AsyncBaseTransport | None = None
    before_request: RequestHook | None = None
    after_response: ResponseHook | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self.config.read_timeout_seconds,
                    connect=self.config.connect_timeout_seconds,
                ),
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_connections,
                ),
                verify=self.config.verify_ssl,
                transport=self.transport,
            )

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> dict[str, Any] | list[Any] | None:
        if self.client is None:
            raise RuntimeError("HTTP client not initialized")
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        if self.trace is None:
            self.trace = TraceContext()
        trace_id = self.trace.begin()
        request_headers[TRACE_HEADER] = trace_id

        normalized_method = method.upper()
        url = self._build_url(path)
        request_context = {
            "headers": request_headers,
            "json_body": json_body,
            "params": params,
        }
        if self.before_request:
            self.before_request(normalized_method, url, request_context)

        started = time.monotonic()
        try:
            response = await self.client.request(
                normalized_method,
                url,
                headers=request_headers,
                json=json_body,
                params=params,
            )
        except httpx.TimeoutException as exc:
            self._record_operation(module, operation, started, "error", trace_id)
            raise TransportError(
                code="TIMEOUT_ERROR",
                message="The request timed out",
                details={"type": type(exc).__name__},
                trace_id=trace_id,
                status_code=0,
            ) from exc
        except httpx.TransportError as exc:
            self._record_operation(module, operation, started, "error", trace_id)
            raise TransportError(
                code="NETWORK_ERROR",
                message=str(exc) or "Could not reach the API",
                details={"type": type(exc).__name__},
                trace_id=trace_id,
                status_code=0,
            ) from exc

        if self.after_response:
            self.after_response(response)
        if response.is_success:
            trace_id = self.trace.resolve(trace_id, response.headers)
            self._record_operation(module, operation, started, "success", trace_id)
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise invalid_response(
                    f"{module} {operation} returned a body that is not JSON",
                    trace_id=trace_id,
                    status_code=response.status_code,
                ) from exc

        payload: Any
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        trace_id = self.trace.resolve(trace_id, response.headers, payload)
        self._record_operation(module, operation, started, "error", trace_id)
        raise map_error(response.status_code, payload if isinstance(payload, (dict, str)) else None, trace_id)

    def _record_operation(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )
