"""
Runtime configuration for nexum.

Values come from explicit arguments first, then the process environment.
A ``.env`` file at ``~/.nexum/.env`` (or ``$NEXUM_ENV_FILE``) is loaded once
without overriding variables that are already set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


NEXUM_DIR = Path.home() / ".nexum"
NEXUM_ENV = NEXUM_DIR / ".env"

DEFAULT_GATEWAY_URL = "https://devnet-gateway.multiversx.com"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TX_TIMEOUT = 10.0
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_ELASTIC_INDEX = "events"
DEFAULT_REDIS_PREFIX = "nexum:cache:"


def load_env(env_path: Optional[Path] = None) -> Optional[Path]:
    """
    Load a .env file into the process environment.

    Args:
        env_path: Explicit path (default: $NEXUM_ENV_FILE or ~/.nexum/.env)

    Returns:
        The path that was loaded, or None if no file exists
    """
    if env_path is None:
        override = os.environ.get("NEXUM_ENV_FILE")
        env_path = Path(override) if override else NEXUM_ENV
    if not env_path.exists():
        return None
    load_dotenv(env_path, override=False)
    return env_path


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    gateway_url: str = DEFAULT_GATEWAY_URL
    private_key: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    tx_timeout: float = DEFAULT_TX_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    elastic_index: str = DEFAULT_ELASTIC_INDEX
    redis_url: Optional[str] = None

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Settings":
        load_env(env_path)
        return cls(
            gateway_url=os.environ.get("NEXUM_GATEWAY_URL", DEFAULT_GATEWAY_URL).rstrip("/"),
            private_key=os.environ.get("NEXUM_PRIVATE_KEY") or None,
            poll_interval=_float_env("NEXUM_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            tx_timeout=_float_env("NEXUM_TX_TIMEOUT", DEFAULT_TX_TIMEOUT),
            http_timeout=_float_env("NEXUM_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            elastic_index=os.environ.get("NEXUM_ELASTIC_INDEX", DEFAULT_ELASTIC_INDEX),
            redis_url=os.environ.get("NEXUM_REDIS_URL") or None,
        )
