"""Output and formatting helpers for shell commands."""

from __future__ import annotations

from typing import Iterable, List

from .document import SitemapEntry, SnapshotRecord

LASTMOD_WIDTH = 18


def format_result_line(record: SnapshotRecord) -> str:
    """One line per snapshot result, as printed by the shell."""
    if record.error is None:
        return f"Snapshot taken - {record.url}"
    return f"{record.error} - {record.url}"


def format_lastmod(entry: SitemapEntry) -> str:
    if entry.lastmod is None:
        return ""
    lastmod = entry.lastmod
    return f"{lastmod:%B} {lastmod.day}, {lastmod.year}"


def format_sitemap_listing(entries: Iterable[SitemapEntry]) -> List[str]:
    """Header line followed by one padded ``lastmod  loc`` line per entry.

    Example output:
    sitemap (2)
    May 27, 2025        https://example.com/news/
                        https://example.com/about/
    """
    items = list(entries)
    lines = [f"sitemap ({len(items)})"]
    for entry in items:
        lines.append(f"{format_lastmod(entry):<{LASTMOD_WIDTH}}  {entry.loc}")
    return lines
