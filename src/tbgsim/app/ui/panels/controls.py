from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, TYPE_CHECKING

from PySide6.QtCore import Qt, Slot
from PySide6.QtWidgets import (
    QDoubleSpinBox, QGridLayout, QGroupBox, QHBoxLayout, QLabel,
    QPushButton, QSizePolicy, QSlider, QVBoxLayout, QWidget
)

from tbgsim.app.ui.panels.base import BasePanel

if TYPE_CHECKING:
    from tbgsim.app.state import MoireParams, Store


@dataclass(frozen=True)
class ControlSpec:
    """Range, step and physically valid band of one parameter control."""
    key: str
    label: str
    min_value: float
    max_value: float
    step: float
    unit: str = ""
    min_valid: float = -math.inf
    max_valid: float = math.inf

    @property
    def decimals(self) -> int:
        return max(0, int(round(-math.log10(self.step))))

    def is_valid(self, value: float) -> bool:
        return self.min_valid <= value <= self.max_valid

    def to_slider(self, value: float) -> int:
        return int(round((value - self.min_value) / self.step))

    def from_slider(self, position: int) -> float:
        return round(self.min_value + position * self.step, self.decimals)

    @property
    def slider_maximum(self) -> int:
        return self.to_slider(self.max_value)


CONTROL_SPECS: tuple[ControlSpec, ...] = (
    ControlSpec("twist_angle", "Twist Angle", 0.0, 30.0, 0.01, "°", 0.7, 3.0),
    ControlSpec("biaxial_strain", "Biaxial Strain", -5.0, 5.0, 0.001, "%", -0.5, 0.5),
    ControlSpec("uniaxial_strain", "Uniaxial Strain", -5.0, 5.0, 0.001, "%", -1.0, 1.0),
    ControlSpec("uniaxial_strain_angle", "Uniaxial Strain Angle", -60.0, 60.0, 0.01, "°"),
    ControlSpec("spacing", "Zoom", 0.25, 50.0, 0.01),
)

WARNING_TEXT = "Model inaccurate"


class ControlElement(QWidget):
    """
    Label, numeric field and slider bound to one parameter.

    The field and the slider write through `setter`. Pressing the slider
    reports a drag through `dragging_setter` until it is released.
    """
    def __init__(
        self,
        spec: ControlSpec,
        setter: Callable[[float], None],
        dragging_setter: Callable[[bool], None],
        parent: QWidget | None = None
    ) -> None:
        super().__init__(parent)
        self.spec = spec
        self._setter = setter
        self._dragging_setter = dragging_setter

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        header = QHBoxLayout()
        self.label = QLabel(self.tr(spec.label), self)
        self.warning = QLabel(self.tr(WARNING_TEXT), self)
        self.warning.setStyleSheet("color: #ef4444; font-size: 9pt;")
        self.warning.setVisible(False)
        header.addWidget(self.label)
        header.addWidget(self.warning)
        header.addStretch()
        layout.addLayout(header)

        row = QHBoxLayout()
        self.spin = QDoubleSpinBox(self)
        self.spin.setRange(spec.min_value, spec.max_value)
        self.spin.setSingleStep(spec.step)
        self.spin.setDecimals(spec.decimals)
        self.spin.setKeyboardTracking(False)
        if spec.unit:
            self.spin.setSuffix(f" {spec.unit}")
        self.spin.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.spin.valueChanged.connect(self._on_spin_changed)

        self.slider = QSlider(Qt.Orientation.Horizontal, self)
        self.slider.setRange(0, spec.slider_maximum)
        self.slider.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.slider.valueChanged.connect(self._on_slider_changed)
        self.slider.sliderPressed.connect(lambda: self._dragging_setter(True))
        self.slider.sliderReleased.connect(lambda: self._dragging_setter(False))

        row.addWidget(self.spin)
        row.addWidget(self.slider)
        layout.addLayout(row)

    @property
    def is_out_of_range(self) -> bool:
        return not self.spec.is_valid(self.spin.value())

    def set_value(self, value: float | None) -> None:
        """Show `value` without writing it back."""
        if value is None:
            return
        self.spin.blockSignals(True)
        self.slider.blockSignals(True)
        self.spin.setValue(value)
        self.slider.setValue(self.spec.to_slider(value))
        self.spin.blockSignals(False)
        self.slider.blockSignals(False)
        self._update_warning(value)

    @Slot(float)
    def _on_spin_changed(self, value: float) -> None:
        self._setter(value)

    @Slot(int)
    def _on_slider_changed(self, position: int) -> None:
        self._setter(self.spec.from_slider(position))

    def _update_warning(self, value: float) -> None:
        out_of_range = not self.spec.is_valid(value)
        self.label.setStyleSheet("color: #ef4444;" if out_of_range else "")
        self.warning.setVisible(out_of_range)


class ControlsPanel(BasePanel):
    """Parameter controls of the bilayer."""
    def __init__(self, store: Store, parent: QWidget | None = None) -> None:
        super().__init__(store, parent)
        box = QGroupBox(self.tr("Controls"), self)
        layout = QVBoxLayout(self)
        layout.addWidget(box)
        layout.addStretch()

        grid = QGridLayout(box)
        grid.setVerticalSpacing(8)

        setters: dict[str, Callable[[float], None]] = {
            "twist_angle": store.set_twist_angle,
            "biaxial_strain": store.set_biaxial_strain,
            "uniaxial_strain": store.set_uniaxial_strain,
            "uniaxial_strain_angle": store.set_uniaxial_strain_angle,
            "spacing": store.set_spacing,
        }
        self.controls: dict[str, ControlElement] = {}
        for i, spec in enumerate(CONTROL_SPECS):
            element = ControlElement(spec, setters[spec.key], store.set_slider_dragging, box)
            grid.addWidget(element, i // 2, i % 2)
            self.controls[spec.key] = element

        self.reset_button = QPushButton(self.tr("Reset"), box)
        self.reset_button.clicked.connect(self._on_reset)
        grid.addWidget(self.reset_button, (len(CONTROL_SPECS) + 1) // 2, 0, 1, 2)

        self.store.moire_changed.connect(self._on_moire_changed)
        self._on_moire_changed(store.moire_store)

    @Slot()
    def _on_reset(self) -> None:
        self.store.reset()

    @Slot(object)
    def _on_moire_changed(self, params: MoireParams) -> None:
        for key, element in self.controls.items():
            element.set_value(getattr(params, key))
