"""
Configuration
=============
This module serves as the central registry for global constants and the
environment-driven settings of the application.

Why is this file needed?
------------------------
1. Abstraction: The service endpoint and cache policy are read in one place
   instead of being scattered through the controllers.
2. Testability: Settings are parsed from any mapping, so the environment
   can be faked without touching os.environ.

Environment:
    TBGSIM_API_URL: Endpoint of the eigenvalue service.
    TBGSIM_CACHE_KEY_PREFIX: Prefix of the band-structure cache keys.
    TBGSIM_CACHE_EXPIRY_H: Cache lifetime in hours.
    TBGSIM_LOG_LEVEL: Level name for the 'tbgsim' logger.
    TBGSIM_LOG_FILE: Optional path of a log file.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL: str = "http://localhost:8000/bandstructure"
DEFAULT_CACHE_KEY_PREFIX: str = "bandstructure_cache_"
DEFAULT_CACHE_EXPIRY_H: float = 24.0

# render loop period, roughly one tick per display refresh
FRAME_INTERVAL_MS: int = 16


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    cache_expiry_h: float = DEFAULT_CACHE_EXPIRY_H
    log_level: int = logging.INFO
    log_file: Optional[str] = None

    @property
    def cache_expiry_ms(self) -> float:
        return self.cache_expiry_h * 60.0 * 60.0 * 1000.0


def _positive_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {key}={raw!r}: not a number, using {default}.")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {key}={raw!r}: must be positive, using {default}.")
        return default
    return value


def _log_level(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    if isinstance(level, int):
        return level
    logger.warning(f"Ignoring {key}={raw!r}: unknown log level.")
    return default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read the settings from the environment (os.environ by default)."""
    if environ is None:
        environ = os.environ
    return Settings(
        api_url=environ.get("TBGSIM_API_URL") or DEFAULT_API_URL,
        cache_key_prefix=environ.get("TBGSIM_CACHE_KEY_PREFIX") or DEFAULT_CACHE_KEY_PREFIX,
        cache_expiry_h=_positive_float(environ, "TBGSIM_CACHE_EXPIRY_H", DEFAULT_CACHE_EXPIRY_H),
        log_level=_log_level(environ, "TBGSIM_LOG_LEVEL", logging.INFO),
        log_file=environ.get("TBGSIM_LOG_FILE") or None,
    )
