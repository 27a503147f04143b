"""Shared async HTTP plumbing for the GitLab and Jira providers."""

import logging
from typing import Any, Self

import httpx

from gitjira.errors import UpstreamRequestFailed

logger = logging.getLogger(__name__)


class RestProvider:
    """One ``httpx.AsyncClient`` per provider; one HTTP call per request, no retries."""

    service = "REST"

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        auth: httpx.Auth | tuple[str, str] | None = None,
        timeout: float = 30,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Accept": "application/json", **headers},
            auth=auth,
            timeout=timeout,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        response = await self._client.request(method, path, params=params, json=json)
        if response.is_error:
            logger.error("%s API error %s on %s %s: %s", self.service, response.status_code, method, path, response.text)
            raise UpstreamRequestFailed(self.service, response.status_code, response.text)
        if response.status_code == 204 or not response.content:
            return None
        if "json" not in response.headers.get("content-type", "json"):
            return response.text
        return response.json()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, json=body)

    async def _put(self, path: str, body: Any = None) -> Any:
        return await self._request("PUT", path, json=body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
