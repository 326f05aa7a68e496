"""Interactive command shell over a ShellSession."""

from __future__ import annotations

import argparse
import logging
import shlex
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, NamedTuple
from urllib.parse import urljoin

from .clean import clean_snapshot, remove_directory, restore_backups
from .cli_output import format_result_line, format_sitemap_listing
from .cli_parsers import SHELL_USAGE, ShellUsageError, build_shell_parser
from .client import HttpStatusError, TransportError
from .codec import CodecError
from .discover import discover_links
from .robots import download_robots
from .seo import extract_seo, write_seo_report
from .session import ShellSession
from .sitemap import SitemapError, sort_by_lastmod

LOGGER = logging.getLogger(__name__)

SNAPSHOT_NAME_FORMAT = "%Y-%m-%d_%H-%M"
EXIT_WORDS = frozenset({"exit", "quit", "q"})

Handler = Callable[[ShellSession, argparse.Namespace], None]


class Command(NamedTuple):
    handler: Handler
    needs_host: bool = True


# =============================================================================
# HANDLERS
# =============================================================================


def _cmd_help(session: ShellSession, args: argparse.Namespace) -> None:
    LOGGER.info("commands:")
    for usage in SHELL_USAGE:
        LOGGER.info("  %s", usage)


def _cmd_host(session: ShellSession, args: argparse.Namespace) -> None:
    name = args.name or datetime.now().strftime(SNAPSHOT_NAME_FORMAT)
    directory = session.snapshot_path(args.host, name)

    if directory.exists():
        LOGGER.error("snapshot name already exists")
        return

    directory.mkdir(parents=True)
    session.open_snapshot(args.host, name)
    session.scanned_urls = []
    session.stashed_urls = []
    session.stashed_sitemaps = []
    LOGGER.info("Set host %s - %s", args.host, directory)


def _cmd_select(session: ShellSession, args: argparse.Namespace) -> None:
    directory = session.snapshot_path(session.host, args.snapshot)

    if not directory.is_dir():
        LOGGER.error("snapshot dir does not exist")
        return

    session.open_snapshot(session.host, args.snapshot)
    LOGGER.info("Selected %s", directory)


def _cmd_robots(session: ShellSession, args: argparse.Namespace) -> None:
    try:
        robots = download_robots(session.client, session.base_url, session.snapshot_dir)
    except (HttpStatusError, TransportError, CodecError) as exc:
        LOGGER.error("download robots.txt - %s", exc)
        return

    LOGGER.info(robots.text)
    session.stashed_sitemaps = robots.sitemaps
    LOGGER.info("%d sitemaps found", len(robots.sitemaps))


def _cmd_sitemap(session: ShellSession, args: argparse.Namespace) -> None:
    if args.paths:
        session.stashed_sitemaps = list(args.paths)

    try:
        urls = session.sitemap.analyze(session.stashed_sitemaps or None)
    except (SitemapError, TransportError, CodecError) as exc:
        LOGGER.error("%s", exc)
        return

    for line in format_sitemap_listing(sort_by_lastmod(session.sitemap.entries)):
        LOGGER.info(line)

    session.stashed_urls = sorted(set(urls))
    LOGGER.info("%d links stashed", len(session.stashed_urls))


def _cmd_snapshot(session: ShellSession, args: argparse.Namespace) -> None:
    if args.urls:
        base = session.base_url + "/"
        session.stashed_urls = [urljoin(base, url) for url in args.urls]

    results = session.snapshot.take_snapshots(session.stashed_urls)

    for record in results:
        LOGGER.info(format_result_line(record))

    scanned = set(session.scanned_urls)
    session.scanned_urls.extend(
        url for url in session.stashed_urls if url not in scanned
    )
    LOGGER.info("%d pages", len(results))


def _cmd_discover(session: ShellSession, args: argparse.Namespace) -> None:
    session.stashed_urls = discover_links(
        session.snapshot_dir,
        host=session.host,
        base_url=session.base_url,
        scanned=session.scanned_urls,
        cache_bust_param=session.settings.cache_bust_param,
    )
    LOGGER.info("%d links stashed", len(session.stashed_urls))


def _cmd_list(session: ShellSession, args: argparse.Namespace) -> None:
    for url in session.stashed_urls:
        LOGGER.info(url)


def _cmd_import(session: ShellSession, args: argparse.Namespace) -> None:
    source = Path(args.file)
    if not source.is_file():
        LOGGER.error("file not found - %s", source)
        return

    base = session.base_url + "/"
    lines = [line.strip() for line in source.read_text(encoding="utf-8").splitlines()]
    session.stashed_urls = [urljoin(base, line) for line in lines if line]
    LOGGER.info("%d stashed", len(session.stashed_urls))


def _cmd_extract(session: ShellSession, args: argparse.Namespace) -> None:
    records = extract_seo(session.snapshot_dir)
    if not records:
        LOGGER.info("No HTML files found in current snapshot")
    target = write_seo_report(session.snapshot_dir, records)
    LOGGER.info("SEO extracted - %s", target)


def _cmd_clean(session: ShellSession, args: argparse.Namespace) -> None:
    changed = clean_snapshot(session.snapshot_dir)
    LOGGER.info("%d files cleaned", len(changed))


def _cmd_restore(session: ShellSession, args: argparse.Namespace) -> None:
    restored = restore_backups(session.snapshot_dir)
    LOGGER.info("backup restored (%d files)", len(restored))


def _cmd_clear(session: ShellSession, args: argparse.Namespace) -> None:
    if remove_directory(session.settings.output_dir):
        LOGGER.info("snapshots cleared")


COMMANDS: Dict[str, Command] = {
    "help": Command(_cmd_help, needs_host=False),
    "host": Command(_cmd_host, needs_host=False),
    "select": Command(_cmd_select),
    "robots": Command(_cmd_robots),
    "sitemap": Command(_cmd_sitemap),
    "snapshot": Command(_cmd_snapshot),
    "discover": Command(_cmd_discover),
    "list": Command(_cmd_list),
    "import": Command(_cmd_import),
    "extract": Command(_cmd_extract),
    "clean": Command(_cmd_clean),
    "restore": Command(_cmd_restore),
    "clear": Command(_cmd_clear, needs_host=False),
}


# =============================================================================
# DISPATCH
# =============================================================================


def run_command(session: ShellSession, line: str) -> bool:
    """Run one command line. Returns False when the shell should stop."""
    try:
        tokens = shlex.split(line)
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return True

    if not tokens or tokens[0] in EXIT_WORDS:
        return False

    try:
        args = build_shell_parser().parse_args(tokens)
    except ShellUsageError as exc:
        LOGGER.error("%s", str(exc).strip())
        LOGGER.error("Use help to see available commands.")
        return True

    command = COMMANDS[args.command]
    if command.needs_host and session.host is None:
        LOGGER.error("set host first")
        return True

    try:
        command.handler(session, args)
    except OSError as exc:
        LOGGER.error("%s: %s", args.command, exc)

    return True


def run_shell(session: ShellSession, read_line: Callable[[str], str] = input) -> None:
    """Prompt for commands until an exit word, an empty line or EOF."""
    while True:
        try:
            line = read_line("\n> ")
        except EOFError:
            break

        if not run_command(session, line.strip()):
            break
