"""Mutable state of an interactive shell session."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx

from .client import FetchClient
from .config import Settings
from .sitemap import SitemapResolver
from .snapshot import SnapshotEngine


@dataclass
class ShellSession:
    """Everything the shell commands share between invocations."""

    settings: Settings
    client: FetchClient
    host: Optional[str] = None
    snapshot_name: Optional[str] = None
    snapshot_dir: Optional[Path] = None
    snapshot: Optional[SnapshotEngine] = None
    sitemap: Optional[SitemapResolver] = None
    scanned_urls: List[str] = field(default_factory=list)
    stashed_urls: List[str] = field(default_factory=list)
    stashed_sitemaps: List[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ShellSession":
        return cls(settings=settings, client=settings.build_client(transport))

    @property
    def base_url(self) -> str:
        if self.host is None:
            raise RuntimeError("no host selected")
        return self.settings.base_url(self.host)

    def snapshot_path(self, host: str, name: str) -> Path:
        return self.settings.output_dir / host / name

    def open_snapshot(self, host: str, name: str) -> None:
        """Point the session at ``<output>/<host>/<name>`` with fresh engines."""
        self.host = host
        self.snapshot_name = name
        self.snapshot_dir = self.snapshot_path(host, name)
        self.snapshot = SnapshotEngine(
            self.client, str(self.settings.output_dir), name
        )
        self.sitemap = SitemapResolver(
            self.client, str(self.settings.output_dir), name, self.base_url
        )
