"""Sequential page capture into a numbered, per-host snapshot directory.

Each captured URL produces two sibling files::

    <output>/<domain>/<snapshot>/<NN>-<path>.json   request/response metadata
    <output>/<domain>/<snapshot>/<NN>-<path>.<ext>  decompressed body

Example usage:

    from sitesnap import FetchClient, SnapshotEngine

    engine = SnapshotEngine(FetchClient(), "snapshots", "2025-05-27_12-26")
    for record in engine.take_snapshots(["https://example.com/"]):
        print(record.url, record.error or record.filename)
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence
from urllib.parse import urlparse

from .client import FetchClient, FetchRequest, FetchResponse, HttpStatusError
from .codec import decompress, extension_for
from .document import SnapshotRecord
from .paths import PathNamer, write_atomic

LOGGER = logging.getLogger(__name__)


def build_sidecar(
    url: str, request: FetchRequest, response: FetchResponse, content_file: str
) -> Dict[str, Any]:
    return {
        "url": url,
        "request": {
            "method": request.method,
            "url": request.url,
            "headers": request.headers,
        },
        "response": {
            "status": response.status,
            "headers": response.headers,
            "contentFile": content_file,
        },
    }


class SnapshotEngine:
    """Fetches URLs one at a time and persists each capture to disk."""

    def __init__(self, client: FetchClient, output_dir: str, snapshot_name: str):
        self.client = client
        self.output_dir = str(output_dir)
        self.snapshot_name = snapshot_name
        self.namer = PathNamer()

    async def take_snapshots_async(self, urls: Sequence[str]) -> List[SnapshotRecord]:
        """
        Capture every URL in order.

        Per-URL failures are returned as error records; this never raises for
        a single bad URL.

        Args:
            urls: URLs to capture, in the order they should be numbered.

        Returns:
            One SnapshotRecord per input URL, in input order.
        """
        self.namer.reset()
        results: List[SnapshotRecord] = []

        async with self.client.session():
            for url in urls:
                try:
                    results.append(await self._take_snapshot(url))
                except Exception as exc:
                    LOGGER.debug("Snapshot failed for %s: %s", url, exc)
                    results.append(SnapshotRecord.failure(url, str(exc)))

        return results

    def take_snapshots(self, urls: Sequence[str]) -> List[SnapshotRecord]:
        """Synchronous wrapper for take_snapshots_async."""
        return asyncio.run(self.take_snapshots_async(urls))

    async def _take_snapshot(self, url: str) -> SnapshotRecord:
        request, response = await self.client.fetch(url)

        if response.status != 200:
            raise HttpStatusError(url, response.status)

        extension = extension_for(response.header_line("content-type"))
        content = decompress(response.body, response.header_line("content-encoding"))

        parsed = urlparse(url)
        filename = self.namer.next_path(
            self.output_dir,
            parsed.hostname or "",
            self.snapshot_name,
            parsed.path or "/",
            "json",
        )

        sidecar = Path(filename)
        content_file = f"{sidecar.stem}.{extension}"
        metadata = build_sidecar(url, request, response, content_file)

        write_atomic(
            sidecar,
            json.dumps(metadata, indent=2, ensure_ascii=False).encode("utf-8"),
        )
        write_atomic(sidecar.with_name(content_file), content)
        LOGGER.debug("Saved %s -> %s", url, filename)

        return SnapshotRecord(
            url=url,
            filename=filename,
            status=response.status,
            request_headers=request.headers,
            response_headers=response.headers,
        )
