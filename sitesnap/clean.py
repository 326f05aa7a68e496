"""Markup normalization between snapshots, with ``.bak`` backups."""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .paths import iter_files

LOGGER = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True, slots=True)
class CleanRule:
    name: str
    pattern: re.Pattern
    replacement: str


CLEAN_RULES: List[CleanRule] = [
    CleanRule(
        "clean-cache-enabler",
        re.compile(r"<!-- Cache Enabler by KeyCDN @ .*? -->"),
        "<!-- Cache Enabler by KeyCDN ... -->",
    ),
    CleanRule(
        "clean-seo-framework",
        re.compile(
            r"<!-- / The SEO Framework by Sybre Waaijer \| \d{1,2}\.\d{1,2}ms meta"
            r" \| \d{1,2}\.\d{1,2}ms boot -->"
        ),
        "<!-- / The SEO Framework by Sybre Waaijer | 0.0ms meta | 0.0ms boot -->",
    ),
    CleanRule(
        "clean-wp-postratings",
        re.compile(r'data-nonce="(\w{10})"'),
        'data-nonce="0000000000"',
    ),
    CleanRule(
        "clean-csrf-token",
        re.compile(r'<meta name="csrf-token" content=".*?">'),
        '<meta name="csrf-token" content="token">',
    ),
    CleanRule(
        "clean-gravatar",
        re.compile(r"https://secure.gravatar.com/avatar/(\w{32,64})"),
        "https://secure.gravatar.com/avatar/00000000000000000000000000000000",
    ),
    CleanRule(
        "classicpress-cache-busting",
        re.compile(r"\?ver=(cp_[a-z0-9]{8}|\d{10})"),
        "?ver=redacted",
    ),
]


def apply_rules(text: str, rules: Sequence[CleanRule] = CLEAN_RULES) -> str:
    for rule in rules:
        text = rule.pattern.sub(rule.replacement, text)
    return text


def clean_snapshot(
    snapshot_dir: Path, rules: Sequence[CleanRule] = CLEAN_RULES
) -> List[Path]:
    """
    Rewrite every ``.html`` file with the rules applied.

    A ``.bak`` copy of the original is kept the first time a file changes;
    later runs never overwrite it. Returns the files that changed.
    """
    changed: List[Path] = []
    for path in iter_files(Path(snapshot_dir), ".html"):
        original = path.read_bytes().decode("utf-8", errors="surrogateescape")
        updated = apply_rules(original, rules)
        if updated == original:
            continue

        backup = path.with_name(path.name + BACKUP_SUFFIX)
        if not backup.exists():
            shutil.copy2(path, backup)

        path.write_bytes(updated.encode("utf-8", errors="surrogateescape"))
        changed.append(path)
        LOGGER.debug("Cleaned %s", path)
    return changed


def restore_backups(snapshot_dir: Path) -> List[Path]:
    """Move every ``.bak`` file back over its original; returns restored paths."""
    restored: List[Path] = []
    for backup in iter_files(Path(snapshot_dir), BACKUP_SUFFIX):
        target = backup.with_name(backup.name[: -len(BACKUP_SUFFIX)])
        os.replace(backup, target)
        restored.append(target)
    return restored


def remove_directory(path: Path) -> bool:
    """Remove a directory tree; returns False when there was nothing to remove."""
    target = Path(path)
    if not target.is_dir():
        return False
    shutil.rmtree(target)
    return True
