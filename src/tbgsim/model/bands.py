"""
Band-structure data returned by the eigenvalue service.

The service samples the moiré Brillouin zone along K' -> K -> Γ -> M -> K'
and returns six energies (meV) per sample.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

N_BANDS: int = 6
DEFAULT_TICKS: tuple[int, ...] = (-300, -200, -100, 0, 100, 200, 300)

# sample index -> high-symmetry point label
HIGH_SYMMETRY_LABELS: dict[int, str] = {
    0: "K'",
    20: "K",
    40: "Γ",
    60: "M",
    79: "K'",
}


class BandStructureError(Exception):
    """Base class for failures of a band-structure request."""


class MalformedResponseError(BandStructureError, ValueError):
    """The service answered with something that is not a band structure."""


def round_half_up(values: npt.ArrayLike, decimals: int = 2) -> npt.NDArray[np.float64]:
    """Round like Math.round, i.e. halves go up instead of to even."""
    factor = 10.0 ** decimals
    return np.floor(np.asarray(values, dtype=np.float64) * factor + 0.5) / factor


@dataclass
class BandStructure:
    """Energies of the six bands, one row per sample along the k-path."""
    energies: npt.NDArray[np.float64] = field(default_factory=lambda: np.empty((0, N_BANDS)))

    @property
    def x(self) -> npt.NDArray[np.int_]:
        return np.arange(self.energies.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.energies.shape[0] == 0

    def band(self, index: int) -> npt.NDArray[np.float64]:
        return self.energies[:, index]

    def to_list(self) -> list[list[float]]:
        return self.energies.tolist()

    @classmethod
    def from_list(cls, rows: list[list[float]]) -> BandStructure:
        return cls(energies=_as_energy_array(rows))


def _as_energy_array(rows: Any) -> npt.NDArray[np.float64]:
    try:
        arr = np.asarray(rows, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Eigenvalues are not numeric: {e}") from e
    if arr.size == 0:
        return np.empty((0, N_BANDS), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] < N_BANDS:
        raise MalformedResponseError(f"Expected (N, {N_BANDS}) eigenvalues, got shape {arr.shape}.")
    return arr[:, :N_BANDS]


def parse_eigenvalues(payload: Any) -> BandStructure:
    """
    Build a band structure from the decoded JSON of a service response.

    Args:
        payload: Decoded JSON, expected as {"eigenvalues": [[e1, ..., e6], ...]}.

    Returns:
        BandStructure with every energy rounded to 2 decimals.

    Raises:
        MalformedResponseError: If the payload has no usable eigenvalues.
    """
    if not isinstance(payload, dict) or "eigenvalues" not in payload:
        raise MalformedResponseError("Response has no 'eigenvalues' field.")
    energies = _as_energy_array(payload["eigenvalues"])
    return BandStructure(energies=round_half_up(energies, 2))


def symmetric_ticks(bands: BandStructure, max_ticks: int = 7) -> list[int]:
    """
    Symmetric y-axis ticks in steps of whole hundreds of meV.

    The largest absolute energy is rounded up to a multiple of 100 and split
    into (max_ticks - 1) / 2 steps on each side of zero.
    """
    if bands.is_empty:
        return list(DEFAULT_TICKS)
    max_abs = float(np.max(np.abs(bands.energies)))
    if not math.isfinite(max_abs):
        return list(DEFAULT_TICKS)
    max_abs = math.ceil(max_abs / 100.0) * 100.0
    half = (max_ticks - 1) // 2
    step = int(math.ceil(max_abs / half / 100.0) * 100)
    if step == 0:
        return list(DEFAULT_TICKS)
    return [step * k for k in range(-half, half + 1)]
