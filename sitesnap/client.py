"""HTTP fetch capability shared by the snapshot engine and sitemap resolver.

Requests carry a fixed browser-like header set and a cache-busting query
parameter. Responses keep the raw body exactly as received so that
decompression stays under the control of :mod:`sitesnap.codec`::

    client = FetchClient(cache_bust_param="nocache")
    request = client.build_request("https://example.com/about/")
    response = await client.send(request)
    print(response.status, response.header_line("content-type"))
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Tuple

import httpx

from .document import HeaderMap

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS: List[Tuple[str, str]] = [
    (
        "User-Agent",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    ),
    (
        "Accept",
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8",
    ),
    ("Accept-Language", "en-US,en;q=0.9"),
    ("Accept-Encoding", "gzip, deflate, br"),
    ("Connection", "keep-alive"),
    ("Upgrade-Insecure-Requests", "1"),
    ("Sec-Fetch-Dest", "document"),
    ("Sec-Fetch-Mode", "navigate"),
    ("Sec-Fetch-Site", "none"),
    ("Sec-Fetch-User", "?1"),
    ("Cache-Control", "max-age=0"),
]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TransportError(Exception):
    """Raised when a request cannot be completed at the network level."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class HttpStatusError(Exception):
    """Raised when a response carries a status other than 200."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"{url} - {status}")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """An outgoing GET request."""

    method: str
    url: str
    headers: HeaderMap = field(default_factory=dict)

    def header_items(self) -> List[Tuple[str, str]]:
        return [(name, value) for name, values in self.headers.items() for value in values]


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """A received response with its undecoded body."""

    status: int
    headers: HeaderMap = field(default_factory=dict)
    body: bytes = b""

    def header_line(self, name: str) -> str:
        """Return all values of a header joined by ``", "`` (case-insensitive)."""
        wanted = name.lower()
        values: List[str] = []
        for key, items in self.headers.items():
            if key.lower() == wanted:
                values.extend(items)
        return ", ".join(values)


def _header_map(headers: httpx.Headers) -> HeaderMap:
    """Group raw headers by name, keeping the first spelling seen."""
    result: HeaderMap = {}
    spelling = {}
    for raw_key, raw_value in headers.raw:
        key = raw_key.decode(headers.encoding)
        value = raw_value.decode(headers.encoding)
        name = spelling.setdefault(key.lower(), key)
        result.setdefault(name, []).append(value)
    return result


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class FetchClient:
    """Builds browser-like requests and sends them without following redirects."""

    def __init__(
        self,
        *,
        cache_bust_param: str = "nocache",
        cache_bust_value: str = "",
        timeout: float = 30.0,
        verify: bool = True,
        headers: Optional[List[Tuple[str, str]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache_bust_param = cache_bust_param
        self.cache_bust_value = cache_bust_value
        self.timeout = timeout
        self.verify = verify
        self.headers = list(headers if headers is not None else DEFAULT_HEADERS)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def build_request(self, url: str) -> FetchRequest:
        """
        Build a GET request with the browser headers and cache-busting param.

        Raises:
            TransportError: If the URL cannot be parsed.
        """
        try:
            target = httpx.URL(url)
            if self.cache_bust_param:
                target = target.copy_set_param(
                    self.cache_bust_param, self.cache_bust_value
                )
        except httpx.InvalidURL as exc:
            raise TransportError(f"Invalid URL: {exc}", url=url) from exc

        headers: HeaderMap = {}
        for name, value in self.headers:
            headers.setdefault(name, []).append(value)

        return FetchRequest(method="GET", url=str(target), headers=headers)

    def _make_client(self) -> httpx.AsyncClient:
        kwargs = {
            "follow_redirects": False,
            "timeout": self.timeout,
            "verify": self.verify,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[httpx.AsyncClient]:
        """Keep one pooled client open; nested sessions reuse it."""
        if self._client is not None:
            yield self._client
            return

        client = self._make_client()
        self._client = client
        try:
            async with client:
                yield client
        finally:
            self._client = None

    async def send(self, request: FetchRequest) -> FetchResponse:
        """
        Send a request and return the raw response.

        Raises:
            TransportError: On invalid URLs and connection, timeout or protocol
                failures.
        """
        LOGGER.debug("%s %s", request.method, request.url)
        async with self.session() as client:
            try:
                outgoing = client.build_request(
                    request.method, request.url, headers=request.header_items()
                )
                response = await client.send(outgoing, stream=True)
                try:
                    body = b"".join([chunk async for chunk in response.aiter_raw()])
                finally:
                    await response.aclose()
            except httpx.InvalidURL as exc:
                raise TransportError(f"Invalid URL: {exc}", url=request.url) from exc
            except httpx.RequestError as exc:
                raise TransportError(f"Request failed: {exc}", url=request.url) from exc

        return FetchResponse(
            status=response.status_code,
            headers=_header_map(response.headers),
            body=body,
        )

    async def fetch(self, url: str) -> Tuple[FetchRequest, FetchResponse]:
        """Build and send a request for ``url``."""
        request = self.build_request(url)
        return request, await self.send(request)
