from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from invoicer.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


class BackendClient:
    """Async HTTP client for the billing backend's action API.

    Every call posts ``{"action": ..., "data": ...}`` and receives an envelope
    ``{"success": bool, "data": ..., "error": str}``.
    """

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 30.0,
        use_mock_data: bool = True,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._timeout = timeout
        self.use_mock_data = use_mock_data or not self._base_url
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
            follow_redirects=True,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.use_mock_data or not self._base_url:
            raise RuntimeError("HTTP client requested while running in mock mode")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.use_mock_data:
            raise RuntimeError("Real HTTP call requested while mock mode is enabled")
        client = await self._ensure_client()
        try:
            logger.debug("POST %s payload=%s", path, payload)
            response = await client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.exception("Billing backend returned error %s", exc.response.status_code)
            raise DownstreamServiceError(
                "Billing backend returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach billing backend: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach billing backend", status_code=None, cause=exc
            ) from exc
        except ValueError as exc:
            logger.exception("Billing backend returned a non-JSON body")
            raise DownstreamServiceError(
                "Billing backend returned an invalid response", cause=exc
            ) from exc

    async def call(self, action: str, data: Dict[str, Any] | None = None) -> Any:
        """Invoke a backend action and return the unwrapped ``data`` member."""

        body = await self.post("", {"action": action, "data": data or {}})
        if not isinstance(body, dict):
            raise DownstreamServiceError(f"Unexpected response shape for {action}")
        if not body.get("success"):
            error = body.get("error") or "API request failed"
            logger.warning("Backend action %s failed: %s", action, error)
            raise DownstreamServiceError(f"{action} failed: {error}")
        return body.get("data")

    async def simulate_latency(self) -> None:
        """Allow services to await for latency even when mocking responses."""

        await asyncio.sleep(0)
