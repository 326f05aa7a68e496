"""Website snapshot capture for archiving and diffing.

This package captures pages of a website into a numbered file tree, one JSON
sidecar (request and response metadata) plus the decompressed body per page.
It supports:

- Sitemap resolution, including one level of sitemap indices
- Sequential page capture with per-URL error reporting
- Link discovery from captured HTML
- SEO reports and markup normalization over a captured snapshot

Example usage:

    from sitesnap import FetchClient, SitemapResolver, SnapshotEngine

    client = FetchClient()

    # Resolve sitemap.xml into page URLs
    resolver = SitemapResolver(client, "snapshots", "2025-05-27_12-26", "https://example.com")
    urls = resolver.analyze()

    # Capture every page
    engine = SnapshotEngine(client, "snapshots", "2025-05-27_12-26")
    for record in engine.take_snapshots(urls):
        print(record.url, record.error or record.filename)
"""

from __future__ import annotations

from .client import (
    DEFAULT_HEADERS,
    FetchClient,
    FetchRequest,
    FetchResponse,
    HttpStatusError,
    TransportError,
)
from .codec import (
    CodecError,
    CorruptBody,
    UnavailableCodec,
    UnsupportedEncoding,
    decompress,
    extension_for,
)
from .config import Settings, load_settings
from .discover import discover_links
from .document import SeoRecord, SitemapEntry, SitemapIndexEntry, SnapshotRecord
from .paths import PathNamer, get_path_name
from .robots import RobotsFile, download_robots, download_robots_async
from .seo import extract_seo, write_seo_report
from .sitemap import (
    InvalidSitemapExtension,
    SitemapError,
    SitemapFetchFailed,
    SitemapParseError,
    SitemapResolver,
    sort_by_lastmod,
)
from .snapshot import SnapshotEngine

__all__ = [
    # Data types
    "SnapshotRecord",
    "SitemapEntry",
    "SitemapIndexEntry",
    "SeoRecord",
    "RobotsFile",
    # Transport
    "DEFAULT_HEADERS",
    "FetchClient",
    "FetchRequest",
    "FetchResponse",
    "TransportError",
    "HttpStatusError",
    # Codec
    "extension_for",
    "decompress",
    "CodecError",
    "CorruptBody",
    "UnsupportedEncoding",
    "UnavailableCodec",
    # Naming
    "PathNamer",
    "get_path_name",
    # Capture
    "SnapshotEngine",
    # Sitemaps
    "SitemapResolver",
    "sort_by_lastmod",
    "SitemapError",
    "InvalidSitemapExtension",
    "SitemapFetchFailed",
    "SitemapParseError",
    # robots.txt
    "download_robots",
    "download_robots_async",
    # Post-processing
    "discover_links",
    "extract_seo",
    "write_seo_report",
    # Config
    "Settings",
    "load_settings",
]
