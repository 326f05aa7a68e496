"""robots.txt capture and ``Sitemap:`` directive extraction."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from urllib.parse import urljoin

from .client import FetchClient, HttpStatusError
from .codec import decompress
from .paths import write_atomic

LOGGER = logging.getLogger(__name__)

SITEMAP_DIRECTIVE = re.compile(r"^sitemap: ?(.*)$", re.IGNORECASE | re.MULTILINE)


@dataclass(slots=True)
class RobotsFile:
    """A downloaded robots.txt and the sitemaps it advertises."""

    url: str
    path: Path
    text: str
    sitemaps: List[str] = field(default_factory=list)


def parse_sitemap_directives(text: str) -> List[str]:
    return [match.strip() for match in SITEMAP_DIRECTIVE.findall(text) if match.strip()]


async def download_robots_async(
    client: FetchClient, base_url: str, snapshot_dir: Path
) -> RobotsFile:
    """
    Save ``<base_url>/robots.txt`` as ``<snapshot_dir>/robots.txt``.

    Raises:
        HttpStatusError: If the response status is not 200.
        TransportError: On network failures.
    """
    url = urljoin(base_url.rstrip("/") + "/", "robots.txt")
    _, response = await client.fetch(url)

    if response.status != 200:
        raise HttpStatusError(url, response.status)

    body = decompress(response.body, response.header_line("content-encoding"))
    target = Path(snapshot_dir) / "robots.txt"
    write_atomic(target, body)
    LOGGER.debug("Saved %s -> %s", url, target)

    text = body.decode("utf-8", errors="replace")
    return RobotsFile(
        url=url,
        path=target,
        text=text,
        sitemaps=parse_sitemap_directives(text),
    )


def download_robots(client: FetchClient, base_url: str, snapshot_dir: Path) -> RobotsFile:
    """Synchronous wrapper for download_robots_async."""
    return asyncio.run(download_robots_async(client, base_url, snapshot_dir))
