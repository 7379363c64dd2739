"""
Configuration loaded from environment variables, plus logging setup.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from loguru import logger

from radiosync.now_playing_client import DEFAULT_BASE_URL


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration."""
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 10.0
    poll_interval: float = 10.0
    song_cache_ttl: float = 300.0
    song_cache_max_entries: int = 24
    artwork_cache_ttl: float = 3600.0
    artwork_cache_max_entries: int = 20
    cache_sweep_interval: float = 300.0
    artwork_max_width: int = 40
    settings_path: Optional[Path] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None


def _number(env: Mapping[str, str], name: str, default: float, cast=float):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build the configuration from environment variables.

    Loads .dev.env first when it exists and no explicit mapping is given.

    Args:
        env: Variables to read instead of os.environ

    Returns:
        AppConfig

    Raises:
        ValueError: If a numeric variable is not a positive number
    """
    if env is None:
        if os.path.exists('.dev.env'):
            load_dotenv('.dev.env')
        env = os.environ

    settings_path = env.get("SETTINGS_PATH")
    log_file = env.get("LOG_FILE")

    return AppConfig(
        base_url=env.get("NOW_PLAYING_BASE_URL") or DEFAULT_BASE_URL,
        request_timeout=_number(env, "REQUEST_TIMEOUT_SECONDS", 10.0),
        poll_interval=_number(env, "POLL_INTERVAL_SECONDS", 10.0),
        song_cache_ttl=_number(env, "SONG_CACHE_TTL_SECONDS", 300.0),
        song_cache_max_entries=_number(env, "SONG_CACHE_MAX_ENTRIES", 24, int),
        artwork_cache_ttl=_number(env, "ARTWORK_CACHE_TTL_SECONDS", 3600.0),
        artwork_cache_max_entries=_number(env, "ARTWORK_CACHE_MAX_ENTRIES", 20, int),
        cache_sweep_interval=_number(env, "CACHE_SWEEP_INTERVAL_SECONDS", 300.0),
        artwork_max_width=_number(env, "ARTWORK_MAX_WIDTH", 40, int),
        settings_path=Path(settings_path) if settings_path else None,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        log_file=Path(log_file) if log_file else None,
    )


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional rotating log file
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="10 MB",
            retention=5,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        )

    logger.debug(f"Logging initialized (level={level}, file={log_file})")
