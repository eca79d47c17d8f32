"""
Band-structure response cache.

Entries live in a QSettings store as JSON strings
{"data": [[...], ...], "timestamp": <ms since epoch>} under keys of the form
<prefix><twist>_<biaxial>_<uniaxial>_<angle>. Entries older than the expiry
are dropped on read. A cache failure never reaches the caller, it only costs
a network request.
"""
from __future__ import annotations

import json
import logging
import math
import time
from decimal import Decimal
from typing import Callable, Optional

from PySide6.QtCore import QSettings

from tbgsim.config import DEFAULT_CACHE_EXPIRY_H, DEFAULT_CACHE_KEY_PREFIX
from tbgsim.model.bands import BandStructure, MalformedResponseError

logger = logging.getLogger(__name__)


def format_number(value: float) -> str:
    """
    Shortest text form of a number, written the way JavaScript's
    `Number.prototype.toString` writes it: plain decimals from 1e-6 up to 1e21,
    exponent form (`1e-7`, `1.5e+21`) outside that band.
    """
    value = float(value)
    if not math.isfinite(value):
        return repr(value)
    magnitude = abs(value)
    if value.is_integer() and magnitude < 1e21:
        return str(int(value))
    text = repr(value)
    if 1e-6 <= magnitude < 1e21:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    return f"{mantissa}e{int(exponent):+d}"


def cache_key(
    prefix: str,
    twist_angle: float,
    biaxial_strain: float,
    uniaxial_strain: float,
    uniaxial_strain_angle: float
) -> str:
    parts = (twist_angle, biaxial_strain, uniaxial_strain, uniaxial_strain_angle)
    return prefix + "_".join(format_number(p) for p in parts)


def _now_ms() -> float:
    return time.time() * 1000.0


class BandStructureCache:
    """
    Time-boxed cache of band structures.

    Args:
        settings: Backing store. Defaults to the application QSettings.
        prefix: Key prefix shared by all entries of this cache.
        expiry_ms: Lifetime of an entry.
        clock: Returns the current time in milliseconds.
    """

    def __init__(
        self,
        settings: Optional[QSettings] = None,
        prefix: str = DEFAULT_CACHE_KEY_PREFIX,
        expiry_ms: float = DEFAULT_CACHE_EXPIRY_H * 60 * 60 * 1000,
        clock: Callable[[], float] = _now_ms
    ) -> None:
        self.settings = settings if settings is not None else QSettings()
        self.prefix = prefix
        self.expiry_ms = expiry_ms
        self._clock = clock

    def key_for(
        self,
        twist_angle: float,
        biaxial_strain: float,
        uniaxial_strain: float,
        uniaxial_strain_angle: float
    ) -> str:
        return cache_key(self.prefix, twist_angle, biaxial_strain, uniaxial_strain, uniaxial_strain_angle)

    def get(self, key: str) -> Optional[BandStructure]:
        """Cached band structure for `key`, or None if missing, expired or unreadable."""
        raw = self.settings.value(key)
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            timestamp = float(entry["timestamp"])
            bands = BandStructure.from_list(entry["data"])
        except (TypeError, ValueError, KeyError, MalformedResponseError) as e:
            logger.warning(f"Failed to read cache entry {key}: {e}")
            self.settings.remove(key)
            return None

        if self._clock() - timestamp > self.expiry_ms:
            self.settings.remove(key)
            return None
        return bands

    def put(self, key: str, bands: BandStructure) -> None:
        """Store `bands` under `key`, evicting expired entries if the write fails."""
        payload = json.dumps({"data": bands.to_list(), "timestamp": self._clock()})
        self.settings.setValue(key, payload)
        self.settings.sync()
        if self.settings.status() == QSettings.Status.NoError:
            return

        logger.warning(f"Failed to write cache entry {key} ({self.settings.status()}).")
        self.clear_expired()
        self.settings.setValue(key, payload)
        self.settings.sync()
        if self.settings.status() != QSettings.Status.NoError:
            logger.warning("Failed to write to cache even after cleanup.")

    def clear_expired(self) -> int:
        """Remove expired and corrupted entries. Returns the number removed."""
        removed = 0
        now = self._clock()
        for key in self.settings.allKeys():
            if not key.startswith(self.prefix):
                continue
            try:
                entry = json.loads(self.settings.value(key))
                expired = now - float(entry["timestamp"]) > self.expiry_ms
            except (TypeError, ValueError, KeyError):
                expired = True
            if expired:
                self.settings.remove(key)
                removed += 1
        if removed:
            logger.debug(f"Removed {removed} stale cache entries.")
        return removed
