from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from PySide6.QtCore import QObject, Signal

from tbgsim.model.bands import BandStructure

DEFAULT_TWIST_ANGLE: float = 1.1
DEFAULT_SPACING: float = 1.0


@dataclass
class MoireParams:
    """User parameters of the bilayer. Strains in percent, angles in degrees."""
    twist_angle: Optional[float] = DEFAULT_TWIST_ANGLE
    biaxial_strain: Optional[float] = 0.0
    uniaxial_strain: Optional[float] = 0.0
    uniaxial_strain_angle: Optional[float] = 0.0
    spacing: Optional[float] = DEFAULT_SPACING

    def physical(self) -> Optional[tuple[float, float, float, float]]:
        """(twist, biaxial, uniaxial, axis) if all are set, else None."""
        values = (self.twist_angle, self.biaxial_strain, self.uniaxial_strain, self.uniaxial_strain_angle)
        if any(v is None for v in values):
            return None
        return values

@dataclass
class BandStructureModel:
    """Latest band structure and the status of its request."""
    bands: BandStructure = field(default_factory=BandStructure)
    loading: bool = False
    error: bool = False

class Store(QObject):
    """Central state store with signals for canvas/chart/controls sync."""
    moire_changed = Signal(object)
    band_structure_changed = Signal(object)
    fetch_status_changed = Signal(object)
    slider_dragging_changed = Signal(bool)
    reset_done = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.moire_store = MoireParams()
        self.band_store = BandStructureModel()
        self._slider_dragging = False

    def reset(self) -> None:
        self.moire_store = MoireParams()
        self.band_store = BandStructureModel()
        self._slider_dragging = False
        self.moire_changed.emit(self.moire_store)
        self.band_structure_changed.emit(self.band_store)
        self.fetch_status_changed.emit(self.band_store)
        self.slider_dragging_changed.emit(False)
        self.reset_done.emit()

    # --- moiré parameters ---

    def _set_moire(self, name: str, value: float) -> None:
        value = float(value)
        if getattr(self.moire_store, name) == value:
            return
        setattr(self.moire_store, name, value)
        self.moire_changed.emit(self.moire_store)

    def set_twist_angle(self, value: float) -> None:
        self._set_moire("twist_angle", value)

    def set_biaxial_strain(self, value: float) -> None:
        self._set_moire("biaxial_strain", value)

    def set_uniaxial_strain(self, value: float) -> None:
        self._set_moire("uniaxial_strain", value)

    def set_uniaxial_strain_angle(self, value: float) -> None:
        self._set_moire("uniaxial_strain_angle", value)

    def set_spacing(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"Spacing must be positive, got {value}.")
        self._set_moire("spacing", value)

    # --- slider drag state ---

    @property
    def slider_dragging(self) -> bool:
        return self._slider_dragging

    def set_slider_dragging(self, dragging: bool) -> None:
        if dragging == self._slider_dragging:
            return
        self._slider_dragging = dragging
        self.slider_dragging_changed.emit(dragging)

    # --- band structure ---

    def set_band_structure(self, bands: BandStructure) -> None:
        self.band_store.bands = bands
        self.band_store.error = False
        self.band_store.loading = False
        self.band_structure_changed.emit(self.band_store)
        self.fetch_status_changed.emit(self.band_store)

    def set_loading(self, loading: bool) -> None:
        self.band_store.loading = loading
        if loading:
            self.band_store.error = False
        self.fetch_status_changed.emit(self.band_store)

    def set_error(self, error: bool) -> None:
        self.band_store.error = error
        if error:
            self.band_store.loading = False
        self.fetch_status_changed.emit(self.band_store)
