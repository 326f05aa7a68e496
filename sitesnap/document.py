"""Data structures produced by snapshot and sitemap runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

HeaderMap = Dict[str, List[str]]


@dataclass(slots=True)
class SnapshotRecord:
    """Outcome of fetching one URL: either a saved capture or an error."""

    url: str
    filename: Optional[str] = None
    status: Optional[int] = None
    request_headers: HeaderMap = field(default_factory=dict)
    response_headers: HeaderMap = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failure(cls, url: str, error: str) -> "SnapshotRecord":
        return cls(url=url, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dict holding only the keys of the populated variant."""
        if self.error is not None:
            return {"url": self.url, "error": self.error}
        return {
            "url": self.url,
            "filename": self.filename,
            "status": self.status,
            "request_headers": self.request_headers,
            "response_headers": self.response_headers,
        }


@dataclass(slots=True)
class SitemapEntry:
    """A ``<url>`` element of a leaf sitemap."""

    loc: str
    lastmod: Optional[datetime] = None


@dataclass(slots=True)
class SitemapIndexEntry:
    """A ``<sitemap>`` element of a sitemap index."""

    loc: str


@dataclass(slots=True)
class SeoRecord:
    """SEO fields read back from one saved HTML page."""

    url: str
    title: str
    description: str
    robots: str
    robots_short: str
    canonical: str
