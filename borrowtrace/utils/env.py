from __future__ import annotations

"""Helpers for loading environment configuration."""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from borrowtrace import config

_ENV_LOADED = False

_LOGGER = logging.getLogger(__name__)


def load_dotenv(dotenv_path: Union[str, Path] = ".env") -> None:
    """Load environment variables from a simple ``.env`` file if present."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    path = Path(dotenv_path)
    if path.exists():
        for line in path.read_text().splitlines():
            parsed = _parse_line(line)
            if parsed:
                key, value = parsed
                os.environ.setdefault(key, value)

    _ENV_LOADED = True


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    if "=" not in stripped:
        return None

    key, value = stripped.split("=", 1)
    return (key.strip(), value.strip())


def _truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    lowered = value.strip().lower()
    return lowered in {"1", "true", "yes", "on"}


# --- Tracker controls --------------------------------------------------------

def tracking_enabled() -> bool:
    """Return True unless ``BORROWTRACE_TRACK`` explicitly disables tracking.

    Disabled tracking still hands out entity ids so instrumented code keeps
    working, but nothing is recorded or added to the graph.
    """

    load_dotenv()
    value = os.environ.get(config.ENV_TRACK)
    if value is None or not value.strip():
        return True
    return _truthy(value)


def lock_timeout_seconds() -> float:
    """Return the bounded wait used for non-blocking snapshot helpers."""

    load_dotenv()
    raw = os.environ.get(config.ENV_LOCK_TIMEOUT, "").strip()
    if not raw:
        return config.DEFAULT_LOCK_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        _LOGGER.warning(
            "Ignoring non-numeric %s=%r", config.ENV_LOCK_TIMEOUT, raw
        )
        return config.DEFAULT_LOCK_TIMEOUT_SECONDS
    if value < 0:
        _LOGGER.warning(
            "Ignoring negative %s=%r", config.ENV_LOCK_TIMEOUT, raw
        )
        return config.DEFAULT_LOCK_TIMEOUT_SECONDS
    return value


def export_dir() -> Path:
    """Directory used by the local export store."""

    load_dotenv()
    raw = os.environ.get(config.ENV_EXPORT_DIR, "").strip()
    return Path(raw or config.DEFAULT_EXPORT_DIR)


def export_bucket() -> Optional[str]:
    """S3 bucket for persisted exports, or None for local storage."""

    load_dotenv()
    bucket = os.environ.get(config.ENV_EXPORT_BUCKET, "").strip()
    return bucket or None


def export_prefix() -> str:
    load_dotenv()
    return os.environ.get(config.ENV_EXPORT_PREFIX, "exports").strip("/")
