"""Sitemap resolution: expand a root sitemap into a flat list of page URLs.

A root document is either a leaf ``urlset`` or a ``sitemapindex`` whose
children are leaf documents. Indices are followed one level deep. Every
fetched document is saved verbatim into the snapshot directory.

Example usage:

    from sitesnap import FetchClient, SitemapResolver, sort_by_lastmod

    resolver = SitemapResolver(FetchClient(), "snapshots", "run-1", "https://example.com")
    urls = resolver.analyze(["sitemap.xml"])
    for entry in sort_by_lastmod(resolver.entries):
        print(entry.lastmod, entry.loc)
"""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from urllib.parse import unquote, urljoin, urlparse

from dateutil import parser as date_parser

from .client import FetchClient
from .codec import decompress
from .document import SitemapEntry, SitemapIndexEntry
from .paths import PathNamer, write_atomic

LOGGER = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
NS = {"s": SITEMAP_NS}
DEFAULT_SITEMAP = "sitemap.xml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SitemapError(Exception):
    """Base class for failures that abort a sitemap resolution."""


class InvalidSitemapExtension(SitemapError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Sitemap path must end with .xml: {path}")


class SitemapFetchFailed(SitemapError):
    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"Failed to fetch {url}: HTTP {status}")


class SitemapParseError(SitemapError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to parse {url}: {reason}")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _tag(name: str) -> str:
    return f"{{{SITEMAP_NS}}}{name}"


def parse_document(url: str, body: bytes) -> ET.Element:
    try:
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise SitemapParseError(url, str(exc)) from exc


def parse_lastmod(url: str, value: str) -> datetime:
    """Parse a ``lastmod`` value into an aware UTC datetime.

    Dates without a zone are taken as UTC. Unparseable values raise
    SitemapParseError instead of producing a placeholder date.
    """
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError) as exc:
        raise SitemapParseError(url, f"invalid lastmod {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_sitemap_index(root: ET.Element) -> List[SitemapIndexEntry]:
    """Return the children of a ``sitemapindex`` root, or [] for any other root."""
    if root.tag != _tag("sitemapindex"):
        return []

    children: List[SitemapIndexEntry] = []
    for element in root.findall("s:sitemap", NS):
        loc = (element.findtext("s:loc", default="", namespaces=NS) or "").strip()
        if loc:
            children.append(SitemapIndexEntry(loc=loc))
    return children


def parse_urlset(url: str, root: ET.Element) -> List[SitemapEntry]:
    """Return the ``<url>`` entries of a ``urlset`` root, in document order."""
    if root.tag != _tag("urlset"):
        return []

    entries: List[SitemapEntry] = []
    for element in root.findall("s:url", NS):
        loc = (element.findtext("s:loc", default="", namespaces=NS) or "").strip()
        if not loc:
            LOGGER.warning("Skipping <url> without <loc> in %s", url)
            continue

        lastmod_text = (
            element.findtext("s:lastmod", default="", namespaces=NS) or ""
        ).strip()
        lastmod = parse_lastmod(url, lastmod_text) if lastmod_text else None

        entries.append(SitemapEntry(loc=unquote(loc), lastmod=lastmod))
    return entries


def sort_by_lastmod(entries: Iterable[SitemapEntry]) -> List[SitemapEntry]:
    """Most recent first; undated entries last, in their original order."""
    return sorted(
        entries,
        key=lambda entry: (
            entry.lastmod is None,
            -entry.lastmod.timestamp() if entry.lastmod is not None else 0.0,
        ),
    )


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class SitemapResolver:
    """Fetches, saves and flattens sitemap documents for one host."""

    def __init__(
        self,
        client: FetchClient,
        output_dir: str,
        snapshot_name: str,
        base_url: str,
    ):
        self.client = client
        self.output_dir = str(output_dir)
        self.snapshot_name = snapshot_name
        self.base_url = base_url
        self.namer = PathNamer()
        self.entries: List[SitemapEntry] = []

    def resolve_url(self, path: str) -> str:
        return urljoin(self.base_url.rstrip("/") + "/", path)

    async def analyze_async(self, paths: Optional[Sequence[str]] = None) -> List[str]:
        """
        Resolve sitemap paths into page URLs.

        Args:
            paths: Sitemap paths or absolute URLs, each ending in ``.xml``.
                Defaults to ``["sitemap.xml"]``.

        Returns:
            Page URLs in discovery order. Duplicates are kept.

        Raises:
            InvalidSitemapExtension: If a path does not end in ``.xml``.
            SitemapFetchFailed: If any document, root or child, is not HTTP 200.
            SitemapParseError: On malformed XML or an unparseable lastmod.
        """
        targets = list(paths) if paths is not None else [DEFAULT_SITEMAP]
        for path in targets:
            if not path.endswith(".xml"):
                raise InvalidSitemapExtension(path)

        self.namer.reset()
        collected: List[SitemapEntry] = []

        async with self.client.session():
            for path in targets:
                collected.extend(await self._resolve(self.resolve_url(path)))

        self.entries = collected
        LOGGER.debug("Resolved %d sitemap entries", len(collected))
        return self.links()

    def analyze(self, paths: Optional[Sequence[str]] = None) -> List[str]:
        """Synchronous wrapper for analyze_async."""
        return asyncio.run(self.analyze_async(paths))

    def links(self) -> List[str]:
        return [entry.loc for entry in self.entries]

    async def _resolve(self, url: str) -> List[SitemapEntry]:
        root = parse_document(url, await self._download(url))
        children = parse_sitemap_index(root)

        if not children:
            # the document itself is the leaf sitemap
            return parse_urlset(url, root)

        entries: List[SitemapEntry] = []
        for child in children:
            child_root = parse_document(child.loc, await self._download(child.loc))
            entries.extend(parse_urlset(child.loc, child_root))
        return entries

    async def _download(self, url: str) -> bytes:
        _, response = await self.client.fetch(url)

        if response.status != 200:
            raise SitemapFetchFailed(url, response.status)

        body = decompress(response.body, response.header_line("content-encoding"))
        self._save(url, body)
        return body

    def _save(self, url: str, body: bytes) -> None:
        parsed = urlparse(url)
        path = parsed.path or "/"
        if path.endswith(".xml"):
            path = path[: -len(".xml")]

        filename = self.namer.next_path(
            self.output_dir, parsed.hostname or "", self.snapshot_name, path, "xml"
        )
        write_atomic(Path(filename), body)
        LOGGER.debug("Saved sitemap %s -> %s", url, filename)
