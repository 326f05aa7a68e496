"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "sitesnap"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
) -> Path | None:
    """Load .env configuration with fallback to the user config directory.

    Search order:
    1. .env in the current working directory
    2. ~/.config/sitesnap/.env

    If neither exists, the packaged .env.example is copied to the user config
    directory and loaded. Returns the file that was loaded, if any.
    """
    local_env = cwd / ".env"
    if local_env.is_file():
        load_env(local_env)
        return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    example_file = Path(__file__).parent / ".env.example"
    if not example_file.is_file():
        return None

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example_file, config_env_file)
    except OSError as exc:
        logging.warning("Could not create %s: %s", config_env_file, exc)
        return None

    logging.info(
        "Created config file at %s from .env.example.", config_env_file
    )
    load_env(config_env_file)
    return config_env_file
