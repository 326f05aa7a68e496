"""Deterministic on-disk naming for captured documents."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List


def get_path_name(url_path: str) -> str:
    """Flatten a URL path into a single file name segment."""
    path = (url_path or "").strip("/")
    if not path:
        return "index"
    return path.replace("/", "_")


class PathNamer:
    """Hands out numbered file paths, one sequence per domain and snapshot.

    Numbering starts at 1 and is zero-padded to two digits. ``reset`` clears
    every sequence; the snapshot engine calls it at the start of each batch.
    """

    def __init__(self) -> None:
        self._indices: Dict[str, int] = {}

    def reset(self) -> None:
        self._indices = {}

    def next_path(
        self,
        output_dir: str,
        domain: str,
        snapshot_name: str,
        url_path: str,
        extension: str,
    ) -> str:
        path = get_path_name(url_path)
        key = f"{domain}/{snapshot_name}"

        index = self._indices.get(key, 1)
        self._indices[key] = index + 1

        root = str(output_dir).rstrip("/")
        return f"{root}/{domain}/{snapshot_name}/{index:02d}-{path}.{extension}"


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` first, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def iter_files(root: Path, suffix: str, *, skip_empty: bool = False) -> List[Path]:
    """Files under ``root`` whose name ends with ``suffix``, in sorted order."""
    base = Path(root)
    if not base.is_dir():
        return []
    files = [path for path in base.rglob(f"*{suffix}") if path.is_file()]
    if skip_empty:
        files = [path for path in files if path.stat().st_size > 0]
    return sorted(files)
