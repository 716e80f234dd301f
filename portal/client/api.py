"""HTTP transport for the client layer.

Every request opens its own aiohttp session. When a token storage is attached
and the caller did not pass an ``Authorization`` header, the stored bearer
token is replayed as ``Authorization: Bearer <token>``.

Failure contract (no retries, no backoff):
  * the server answered with a non-2xx status -> ``ApiError`` carrying the
    server's error payload;
  * no response at all -> the aiohttp / timeout exception propagates as is.
"""
from __future__ import annotations

import json
from typing import Any, Optional, TYPE_CHECKING

import aiohttp

from portal import config
from portal.utils import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .storage import TokenStorage

logger = get_logger(__name__)


class ApiError(Exception):
    """The server rejected a request; ``payload`` is its error body."""

    def __init__(self, status: int, payload: Any):
        self.status = status
        self.payload = payload
        super().__init__(f"HTTP {status}: {error_message(payload)}")


def error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message", payload.get("error"))
        if isinstance(message, str) and message:
            return message
        if message is not None:
            return json.dumps(message, default=str)
        return json.dumps(payload, default=str)
    return str(payload)


def err(error: Any) -> str:
    """Turn a failed call (ApiError, payload dict, transport error) into display text."""
    if isinstance(error, ApiError):
        return error_message(error.payload)
    if isinstance(error, dict):
        return error_message(error)
    text = str(error)
    return text or type(error).__name__


class ApiClient:
    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        storage: Optional["TokenStorage"] = None,
        token_key: str = "token",
        timeout: float = config.CLIENT_REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.token_key = token_key
        self.timeout = timeout

    def _headers(self, headers: Optional[dict]) -> dict:
        merged = {"Accept": "application/json"}
        if headers:
            merged.update(headers)
        if "Authorization" not in merged and self.storage is not None:
            token = self.storage.get_item(self.token_key)
            if token:
                merged["Authorization"] = f"Bearer {token}"
        return merged

    async def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method, url, json=json_body, params=params, headers=self._headers(headers)
            ) as resp:
                text = await resp.text()
                try:
                    data = json.loads(text) if text else {}
                except json.JSONDecodeError:
                    data = None
                if 200 <= resp.status < 300:
                    return data if data is not None else {"raw": text}
                payload = data if data is not None else {"status": resp.status, "error": text}
                logger.warning("API request rejected", method=method, url=url, status=resp.status)
                raise ApiError(resp.status, payload)

    async def get(self, path: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(self, path: str, json: Any = None, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        return await self.request("POST", path, json_body=json, params=params, headers=headers)

    async def put(self, path: str, json: Any = None, params: Optional[dict] = None, headers: Optional[dict] = None) -> Any:
        return await self.request("PUT", path, json_body=json, params=params, headers=headers)


__all__ = ["ApiClient", "ApiError", "err", "error_message"]
