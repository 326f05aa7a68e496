"""SEO report over the HTML pages of a snapshot."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup

from .document import SeoRecord
from .paths import iter_files, write_atomic

LOGGER = logging.getLogger(__name__)

MISSING = "N/A"
REPORT_NAME = "seo.txt"
SEPARATOR = "-" * 80


def robots_summary(robots: str) -> str:
    """Short index/follow summary, blank for the default ``index,follow``."""
    index = "noindex" if "noindex" in robots else "index"
    follow = "nofollow" if "nofollow" in robots else "follow"
    summary = f"{index},{follow}"
    return "" if summary == "index,follow" else summary


def _attribute(soup: BeautifulSoup, selector: str, name: str) -> str:
    element = soup.select_one(selector)
    if element is None:
        return MISSING
    value = element.get(name)
    return MISSING if value is None else str(value)


def _page_url(html_path: Path) -> str:
    sidecar = html_path.with_suffix(".json")
    try:
        data = json.loads(sidecar.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        LOGGER.warning("No readable sidecar for %s: %s", html_path, exc)
        return MISSING
    return str(data.get("url") or MISSING)


def extract_page(html_path: Path) -> SeoRecord:
    soup = BeautifulSoup(html_path.read_bytes(), "html.parser")

    title_element = soup.select_one("title")
    title = title_element.get_text().strip() if title_element is not None else MISSING
    robots = _attribute(soup, 'meta[name="robots"]', "content")

    return SeoRecord(
        url=_page_url(html_path),
        title=title,
        description=_attribute(soup, 'meta[name="description"]', "content"),
        robots=robots,
        robots_short=robots_summary(robots),
        canonical=_attribute(soup, 'link[rel="canonical"]', "href"),
    )


def extract_seo(snapshot_dir: Path) -> List[SeoRecord]:
    """Read SEO fields from every non-empty ``.html`` file under the snapshot."""
    return [
        extract_page(path)
        for path in iter_files(Path(snapshot_dir), ".html", skip_empty=True)
    ]


def format_seo_report(records: List[SeoRecord]) -> str:
    lines: List[str] = []
    for record in records:
        lines.append(f"url: {record.url}")
        lines.append(f"canonical: {record.canonical}")
        lines.append(f"title: {record.title}")
        lines.append(f"description: {record.description}")
        lines.append(f"robots-short: {record.robots_short}")
        lines.append(SEPARATOR)
    return "".join(f"{line}\n" for line in lines)


def write_seo_report(
    snapshot_dir: Path, records: Optional[List[SeoRecord]] = None
) -> Path:
    """Write ``seo.txt`` into the snapshot directory and return its path."""
    if records is None:
        records = extract_seo(snapshot_dir)
    target = Path(snapshot_dir) / REPORT_NAME
    write_atomic(target, format_seo_report(records).encode("utf-8"))
    LOGGER.debug("Wrote SEO report for %d pages to %s", len(records), target)
    return target
