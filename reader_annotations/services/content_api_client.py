"""
Content API Client

Async HTTP access to the external Content API that owns underline and idea
records. Every request carries the reader's bearer credential; without one the
client refuses to send anything, so callers can treat annotation as a disabled
feature instead of an error.
"""

import logging
from typing import Any

import httpx

from ..errors import AuthError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)


class ContentApiClient:
    """Thin JSON wrapper around ``httpx.AsyncClient`` with error mapping"""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url (str): Content API root, e.g. ``http://localhost:3000/api``
            token (str | None): Bearer credential of the signed-in reader
            timeout (float): Per-request timeout in seconds
            transport: Optional httpx transport (used by tests to mount a fake API)
        """
        self.token = token
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        if not self.is_authenticated:
            raise AuthError("No credential available")
        return {"Authorization": f"Bearer {self.token}"}

    async def request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> Any:
        """
        Send one authenticated request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to the API root
            json: Optional JSON body

        Returns:
            Any: Decoded JSON, or None for empty responses (e.g. 204)

        Raises:
            AuthError: No credential, or the API rejected it (401/403)
            NotFoundError: The API answered 404
            NetworkError: Transport failure or any other error status
        """
        headers = self._headers()
        try:
            response = await self._http.request(
                method, path.lstrip("/"), json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning(f"Content API {method} {path} failed: {e}")
            raise NetworkError(f"Request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(f"Credential rejected ({response.status_code})")
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {path}", status_code=404)
        if response.is_error:
            logger.warning(
                f"Content API {method} {path} returned {response.status_code}"
            )
            raise NetworkError(
                f"Content API error {response.status_code}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {path}") from e

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: dict[str, Any]) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, json: dict[str, Any]) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)

    async def aclose(self) -> None:
        await self._http.aclose()
