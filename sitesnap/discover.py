"""Discover same-host page links in the saved HTML of a snapshot."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set
from urllib.parse import parse_qsl, unquote, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .paths import iter_files

LOGGER = logging.getLogger(__name__)

LINK_SELECTORS = ('a[href]', 'link[rel="alternate"]', 'link[rel="next"]')

# Paths ending in a short extension are treated as assets, not pages.
ASSET_EXTENSION = re.compile(r"\.\w{3,4}$")


def collect_candidates(snapshot_dir: Path) -> List[str]:
    """URL-decoded link targets from every non-empty saved HTML page."""
    candidates: List[str] = []
    for path in iter_files(Path(snapshot_dir), ".html", skip_empty=True):
        soup = BeautifulSoup(path.read_bytes(), "html.parser")
        for selector in LINK_SELECTORS:
            for element in soup.select(selector):
                href = element.get("href")
                if href:
                    candidates.append(unquote(str(href)))
    return candidates


def normalize_candidate(
    candidate: str,
    *,
    base_url: str,
    host: str,
    cache_bust_param: str = "nocache",
) -> Optional[str]:
    """
    Resolve a link against the host and reduce it to a page URL.

    Returns None for script links, other hosts, non-web schemes and asset
    paths. Fragments and the cache-busting parameter are stripped.
    """
    if candidate.strip().lower().startswith("javascript:"):
        return None

    href = urljoin(base_url.rstrip("/") + "/", candidate.strip())
    parts = urlsplit(href)

    if parts.scheme not in ("http", "https"):
        return None

    if not parts.netloc:
        LOGGER.error("invalid url - %s", href)
        return None

    if parts.netloc.lower() != host.lower():
        return None

    path = parts.path or "/"
    if ASSET_EXTENSION.search(path):
        return None

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key != cache_bust_param
    ]
    cleaned = urlunsplit((parts.scheme, parts.netloc, path, urlencode(query), ""))
    return unquote(cleaned)


def discover_links(
    snapshot_dir: Path,
    *,
    host: str,
    base_url: str,
    scanned: Iterable[str] = (),
    cache_bust_param: str = "nocache",
) -> List[str]:
    """Return in-scope URLs not yet captured, sorted lexicographically."""
    seen = set(scanned)
    found: Set[str] = set()

    for candidate in sorted(set(collect_candidates(snapshot_dir))):
        url = normalize_candidate(
            candidate,
            base_url=base_url,
            host=host,
            cache_bust_param=cache_bust_param,
        )
        if url is None or url in seen:
            continue
        found.add(url)

    return sorted(found)
