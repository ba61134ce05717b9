"""
Integration test fixtures for the HPCE SDK.

FakeEngine answers the engine's HTTP endpoints in memory and is mounted on
an httpx.MockTransport, so Engine runs unmodified against it.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Tuple

import httpx
import pytest

from hpce_sdk import Engine, RetryPolicy

SERVER_HOST = "engine"
SERVER_PORT = 3000


@dataclass
class FakeEngine:
    """In-memory stand-in for the engine server and its segments."""

    segment_count: int = 2
    item_min: int = 0
    item_max: int = 0xFFFFFFFF
    itemsize_status: int = 0
    segments_status: int = 0
    types: Dict[Tuple[str, str], int] = field(
        default_factory=lambda: {("Person", "subject"): 1, ("Movie", "object"): 2}
    )
    actions: Dict[str, int] = field(default_factory=lambda: {"likes": 5})
    objects: Dict[Tuple[str, str, int], int] = field(
        default_factory=lambda: {
            ("Alice", "subject", 1): 10,
            ("Bob", "subject", 1): 11,
            ("Matrix", "object", 2): 20,
            ("Alien", "object", 2): 21,
        }
    )
    # Bodies received per segment host
    loads: Dict[str, List[str]] = field(default_factory=dict)
    # Remaining failures before a segment accepts a load
    load_failures: Dict[str, int] = field(default_factory=dict)
    # Queued pages for /expr_receivers, returned in order
    receiver_pages: Deque[Dict[str, Any]] = field(default_factory=deque)
    queries: List[Tuple[Dict[str, str], str]] = field(default_factory=list)
    commands: List[str] = field(default_factory=list)
    lookups: List[str] = field(default_factory=list)

    def segment_host(self, n: int) -> str:
        return f"seg{n}"

    def queue_receivers(self, *receivers: Tuple[str, int, int], status: int = 0) -> None:
        self.receiver_pages.append(
            {
                "status": status,
                "receivers": [{"class": c, "type": t, "item": i} for c, t, i in receivers],
            }
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        path = request.url.path
        params = dict(request.url.params)

        if host != SERVER_HOST:
            return self._load(host, path, request.content.decode())

        if path == "/segments":
            return self._json(
                {
                    "status": self.segments_status,
                    "segments": [
                        {"segment": n, "host": self.segment_host(n), "sport": 4000 + n}
                        for n in range(self.segment_count)
                    ],
                }
            )
        if path == "/itemsize":
            return self._json({"status": self.itemsize_status, "min": self.item_min, "max": self.item_max})
        if path == "/convert_type":
            self.lookups.append(path)
            return self._convert(self.types.get((params["name"], params["class"])))
        if path == "/convert_action":
            self.lookups.append(path)
            return self._convert(self.actions.get(params["name"]))
        if path == "/convert_object":
            self.lookups.append(path)
            key = (params["name"], params["class"], int(params["type"]))
            return self._convert(self.objects.get(key))
        if path == "/expr_receivers":
            self.queries.append((params, request.content.decode()))
            if self.receiver_pages:
                return self._json(self.receiver_pages.popleft())
            return self._json({"status": 0, "receivers": []})
        if path in ("/save", "/restore", "/empty"):
            self.commands.append(path)
            return self._json({"status": 0})
        return httpx.Response(404)

    def _load(self, host: str, path: str, body: str) -> httpx.Response:
        assert path == "/load_data"
        remaining = self.load_failures.get(host, 0)
        if remaining:
            self.load_failures[host] = remaining - 1
            return self._json({"status": 1})
        self.loads.setdefault(host, []).append(body)
        return self._json({"status": 0})

    def _convert(self, value: int | None) -> httpx.Response:
        if value is None:
            return self._json({"status": 1})
        return self._json({"status": 0, "id": value})

    @staticmethod
    def _json(data: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, json=data)


@pytest.fixture
def fake_engine():
    """Fresh fake engine with two segments."""
    return FakeEngine()


@pytest.fixture
def http_client(fake_engine):
    client = httpx.Client(transport=httpx.MockTransport(fake_engine.handle))
    yield client
    client.close()


@pytest.fixture
def make_engine(http_client):
    """Factory for engines wired to the fake."""

    def _make(**kwargs: Any) -> Engine:
        kwargs.setdefault("retry", RetryPolicy(interval_seconds=0.0))
        kwargs.setdefault("sleep", lambda _: None)
        return Engine(SERVER_HOST, SERVER_PORT, client=http_client, **kwargs)

    return _make
