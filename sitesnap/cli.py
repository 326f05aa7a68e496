"""Command-line entry point for the snapshot shell."""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import CONFIG_DIR, CONFIG_ENV_FILE, load_config
from .cli_parsers import parse_main_args
from .config import load_settings
from .session import ShellSession
from .shell import run_command, run_shell


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the sitesnap shell."""
    args = parse_main_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        settings = load_settings(
            output_dir=args.output,
            verify_tls=False if args.no_verify else None,
            timeout=args.timeout,
        )
        session = ShellSession.create(settings)

        for command in args.command:
            if not run_command(session, command):
                return 0

        if not args.no_interactive:
            run_shell(session)
        return 0
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
