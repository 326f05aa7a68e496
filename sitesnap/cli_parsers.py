"""Argument parser construction for the entry point and shell commands."""

from __future__ import annotations

import argparse
from typing import List, Optional


class ShellUsageError(Exception):
    """Raised instead of exiting when a shell command line does not parse."""


class ShellArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises on bad input so the shell keeps running."""

    def error(self, message: str):  # type: ignore[override]
        raise ShellUsageError(f"{self.prog}: {message}")

    def exit(self, status: int = 0, message: Optional[str] = None):  # type: ignore[override]
        raise ShellUsageError(message or f"{self.prog}: exited with status {status}")


# Usage lines shown by the ``help`` command, in display order.
SHELL_USAGE: List[str] = [
    "help",
    "host <host> [<name>]",
    "select <snapshot>",
    "robots",
    "sitemap [<paths>...]",
    "snapshot [<urls>...]",
    "discover",
    "list",
    "import <file>",
    "extract seo",
    "clean",
    "restore backup",
    "clear",
    "exit",
]


def build_shell_parser() -> ShellArgumentParser:
    parser = ShellArgumentParser(prog="sitesnap", add_help=False)
    subparsers = parser.add_subparsers(
        dest="command", required=True, parser_class=ShellArgumentParser
    )

    subparsers.add_parser("help", add_help=False)

    host = subparsers.add_parser("host", add_help=False)
    host.add_argument("host")
    host.add_argument("name", nargs="?", default=None)

    select = subparsers.add_parser("select", add_help=False)
    select.add_argument("snapshot")

    subparsers.add_parser("robots", add_help=False)

    sitemap = subparsers.add_parser("sitemap", add_help=False)
    sitemap.add_argument("paths", nargs="*")

    snapshot = subparsers.add_parser("snapshot", add_help=False)
    snapshot.add_argument("urls", nargs="*")

    subparsers.add_parser("discover", add_help=False)
    subparsers.add_parser("list", add_help=False)

    import_parser = subparsers.add_parser("import", add_help=False)
    import_parser.add_argument("file")

    extract = subparsers.add_parser("extract", add_help=False)
    extract.add_argument("what", choices=["seo"])

    subparsers.add_parser("clean", add_help=False)

    restore = subparsers.add_parser("restore", add_help=False)
    restore.add_argument("what", choices=["backup"])

    subparsers.add_parser("clear", add_help=False)

    return parser


def parse_main_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sitesnap",
        description="Capture website snapshots for archiving and diffing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Interactive shell
  sitesnap

  # Capture the pages listed in a sitemap, then keep the shell open
  sitesnap -c "host example.com" -c robots -c sitemap -c snapshot

  # Scripted run writing to a custom directory
  sitesnap -o archive -c "host example.com" -c "snapshot / /about/" --no-interactive
""",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Root directory of the snapshot tree (default: $SITESNAP_OUTPUT_DIR or ./snapshots)",
    )
    parser.add_argument(
        "-c",
        "--command",
        action="append",
        default=[],
        help="Shell command to run before the interactive prompt (repeatable)",
    )
    parser.add_argument(
        "--no-interactive",
        action="store_true",
        help="Exit after running the --command list",
    )
    parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Disable TLS certificate verification",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds (default: $SITESNAP_TIMEOUT or 30)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)
