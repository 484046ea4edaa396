from __future__ import annotations

from dataclasses import dataclass

from ..http_client import AsyncHttpClient


@dataclass
class BaseClient:
    http: AsyncHttpClient
    access_token: str | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        return await self.http.request(method, path, headers=merged, **kwargs)
