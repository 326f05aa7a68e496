"""Shared fixtures: an in-memory website served through httpx.MockTransport."""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx
import pytest

from sitesnap.client import FetchClient


@dataclass
class Route:
    status: int = 200
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


class FakeSite:
    """Routes keyed by ``scheme://host/path``; the query string is ignored."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        url: str,
        body: bytes = b"",
        *,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.routes[url] = Route(status=status, body=body, headers=dict(headers or {}))

    def fail(self, url: str, message: str = "Connection refused") -> None:
        self.routes[url] = Route(error=message)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, stream=httpx.ByteStream(b"not found"))
        if route.error is not None:
            raise httpx.ConnectError(route.error, request=request)
        # a streamed body stays undecoded until the client reads it raw
        return httpx.Response(
            route.status, headers=route.headers, stream=httpx.ByteStream(route.body)
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


def raw_deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def client(site: FakeSite) -> FetchClient:
    return FetchClient(transport=site.transport)
