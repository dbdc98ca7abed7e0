from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import NetworkError
from .logger import get_logger

logger = get_logger(__name__)

JSONValue = Any


class HttpClient:
    """Thin async wrapper over ``httpx.AsyncClient``.

    Every non-2xx answer is turned into a typed ``ApiError`` and every
    transport failure into ``NetworkError``. Only idempotent reads are
    retried; mutations are sent exactly once.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=self.config.api_base_url,
            timeout=self.config.timeout_seconds,
            verify=self.config.verify_ssl,
        )
        self._retry_max_attempts = max(1, self.config.retries + 1)
        self._retry_backoff_seconds = max(0.0, self.config.retry_backoff_seconds)

    @property
    def base_url(self) -> str:
        return self.config.api_base_url

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json_body: JSONValue | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> JSONValue:
        response = await self._send(
            method,
            path,
            token=token,
            json_body=json_body,
            params=params,
            files=files,
            headers=headers,
        )
        return self._parse_body(response)

    async def request_bytes(self, method: str, path: str, *, token: str | None = None) -> bytes:
        response = await self._send(method, path, token=token)
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json_body: JSONValue | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        normalized_method = method.upper()
        normalized_path = path if path.startswith("/") else f"/{path}"
        allow_retry = normalized_method in {"GET", "HEAD"}
        attempts = self._retry_max_attempts if allow_retry else 1

        for attempt in range(1, attempts + 1):
            logger.debug("%s %s (attempt %s)", normalized_method, normalized_path, attempt)
            try:
                response = await self._client.request(
                    normalized_method,
                    normalized_path,
                    json=json_body,
                    params=params,
                    files=files,
                    headers=request_headers,
                )
            except httpx.TimeoutException as exc:
                if attempt >= attempts:
                    raise NetworkError(
                        code="TIMEOUT_ERROR",
                        message="Request timed out",
                        details=str(exc),
                    ) from exc
                await self._backoff(attempt)
                continue
            except httpx.TransportError as exc:
                if attempt >= attempts:
                    raise NetworkError(
                        code="NETWORK_ERROR",
                        message="Network error while calling the Shopie API",
                        details=str(exc),
                    ) from exc
                await self._backoff(attempt)
                continue

            if response.status_code >= 400:
                if response.status_code >= 500 and attempt < attempts:
                    await self._backoff(attempt)
                    continue
                error = map_error(response.status_code, self._error_payload(response))
                logger.log(
                    logging.WARNING if response.status_code >= 500 else logging.DEBUG,
                    "%s %s failed with %s",
                    normalized_method,
                    normalized_path,
                    response.status_code,
                )
                raise error
            return response

        raise NetworkError(code="NETWORK_ERROR", message="Network error while calling the Shopie API", details="retry exhausted")

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self._retry_backoff_seconds * attempt)

    @staticmethod
    def _parse_body(response: httpx.Response) -> JSONValue:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            # plain-text acknowledgements such as DELETE confirmations
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                code="MALFORMED_RESPONSE",
                message="The server returned an unreadable response",
                details=response.text[:200],
                status_code=0,
            ) from exc

    @staticmethod
    def _error_payload(response: httpx.Response) -> dict[str, Any] | str | None:
        try:
            payload = response.json()
        except ValueError:
            return response.text
        if isinstance(payload, dict):
            return payload
        return {"details": payload}
