"""Runtime settings, read from the environment at call time."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx

from .client import FetchClient

LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass
class Settings:
    """Settings shared by every command of a shell session."""

    output_dir: Path = field(default_factory=lambda: Path("snapshots"))
    scheme: str = "https"
    cache_bust_param: str = "nocache"
    cache_bust_value: str = ""
    verify_tls: bool = True
    timeout: float = 30.0

    def base_url(self, host: str) -> str:
        return f"{self.scheme}://{host}"

    def build_client(
        self, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> FetchClient:
        return FetchClient(
            cache_bust_param=self.cache_bust_param,
            cache_bust_value=self.cache_bust_value,
            timeout=self.timeout,
            verify=self.verify_tls,
            transport=transport,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(
    *,
    output_dir: Optional[str] = None,
    verify_tls: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> Settings:
    """Build Settings from ``SITESNAP_*`` variables; arguments take precedence."""
    settings = Settings(
        output_dir=Path(os.getenv("SITESNAP_OUTPUT_DIR") or "snapshots"),
        scheme=os.getenv("SITESNAP_SCHEME") or "https",
        cache_bust_param=os.getenv("SITESNAP_CACHE_BUST_PARAM", "nocache"),
        cache_bust_value=os.getenv("SITESNAP_CACHE_BUST_VALUE", ""),
        verify_tls=_env_bool("SITESNAP_VERIFY_TLS", True),
        timeout=_env_float("SITESNAP_TIMEOUT", 30.0),
    )

    if output_dir is not None:
        settings.output_dir = Path(output_dir)
    if verify_tls is not None:
        settings.verify_tls = verify_tls
    if timeout is not None:
        settings.timeout = timeout

    if not settings.verify_tls:
        LOGGER.warning("TLS certificate verification is disabled")

    return settings
