"""
HTTP transport for talking to the engine and its segments.

Every store endpoint answers with a JSON object carrying a ``status`` field,
where 0 means success. This module wraps an ``httpx.Client`` and turns any
transport-level problem into a TransportError, leaving the interpretation
of ``status`` to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class StoreResponse:
    """Decoded store response.

    Attributes:
        status: Store status code (0 = success, -1 if absent)
        data: Full JSON body
    """

    status: int
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 0


class StoreTransport:
    """Thin JSON-over-HTTP layer shared by the engine, segments and resolver.

    Example:
        >>> transport = StoreTransport(httpx.Client(timeout=30.0))
        >>> transport.get("http://localhost:3000", "/segments").ok
        True
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def close(self) -> None:
        self._client.close()

    def get(
        self,
        base_url: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> StoreResponse:
        """Issue a GET and decode the JSON status envelope."""
        return self._send("GET", base_url + path, params=params)

    def post(
        self,
        base_url: str,
        path: str,
        body: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> StoreResponse:
        """Issue a POST with a raw text body and decode the JSON status envelope."""
        return self._send("POST", base_url + path, params=params, content=body.encode("utf-8"))

    def _send(self, method: str, url: str, **kwargs: Any) -> StoreResponse:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e
        except ValueError as e:
            raise TransportError(f"{method} {url} returned invalid JSON: {e}", url=url) from e

        if not isinstance(data, dict):
            raise TransportError(f"{method} {url} returned a non-object body", url=url)

        try:
            status = int(data.get("status", -1))
        except (TypeError, ValueError):
            status = -1
        return StoreResponse(status=status, data=data)


def base_url(host: str, port: int) -> str:
    return f"http://{host}:{port}"
