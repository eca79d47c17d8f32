from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QGridLayout, QLabel, QVBoxLayout, QWidget
import pyqtgraph as pg

from tbgsim.model.bands import HIGH_SYMMETRY_LABELS, N_BANDS, BandStructure, symmetric_ticks

if TYPE_CHECKING:
    from tbgsim.app.state import BandStructureModel, Store

BAND_COLOR = "#f0b100"
BAND_WIDTH = 2
X_DOMAIN: tuple[int, int] = (0, 79)

LOADING_TEXT = "Diagonalizing..."
ERROR_TEXT = "Oops, something went wrong!"


class BandChart(QWidget):
    """
    Band structure of the moiré superlattice along K' - K - Γ - M - K'.

    Shows the six bands of the latest result with symmetric energy ticks and
    covers the plot with a status overlay while a request is loading or has
    failed.
    """
    def __init__(self, store: Store, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.store = store

        layout = QVBoxLayout(self)
        title = QLabel(self.tr("Band Structure (meV)"), self)
        title.setStyleSheet("font-weight: bold; font-size: 14pt;")
        layout.addWidget(title)
        subtitle = QLabel(self.tr("Bistritzer-MacDonald Model"), self)
        subtitle.setStyleSheet("color: gray;")
        layout.addWidget(subtitle)

        # plot and overlay share one grid cell
        stack = QGridLayout()
        layout.addLayout(stack, stretch=1)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setBackground("w")
        self.plot_widget.showGrid(x=False, y=True, alpha=0.3)
        self.plot_widget.getAxis("bottom").setPen("k")
        self.plot_widget.getAxis("left").setPen("k")
        self.plot_widget.getAxis("bottom").setTextPen("k")
        self.plot_widget.getAxis("left").setTextPen("k")
        self.plot_widget.setMouseEnabled(x=False, y=False)
        self.plot_widget.hideButtons()
        self.plot_widget.getAxis("bottom").setTicks([list(HIGH_SYMMETRY_LABELS.items())])
        self.plot_widget.setXRange(*X_DOMAIN, padding=0)
        stack.addWidget(self.plot_widget, 0, 0)

        self.overlay = QLabel(self)
        self.overlay.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.overlay.setStyleSheet("background-color: rgba(255, 255, 255, 200); color: #444; font-size: 12pt;")
        self.overlay.hide()
        stack.addWidget(self.overlay, 0, 0)

        pen = pg.mkPen(BAND_COLOR, width=BAND_WIDTH)
        self.curves: list[pg.PlotDataItem] = [self.plot_widget.plot([], [], pen=pen) for _ in range(N_BANDS)]
        self.ticks: list[int] = []

        self.set_bands(store.band_store.bands)
        self.store.band_structure_changed.connect(self._on_band_structure_changed)
        self.store.fetch_status_changed.connect(self._on_fetch_status_changed)
        self._on_fetch_status_changed(store.band_store)

    def set_bands(self, bands: BandStructure) -> None:
        x = bands.x
        for i, curve in enumerate(self.curves):
            if bands.is_empty:
                curve.setData([], [])
            else:
                curve.setData(x, bands.band(i))

        self.ticks = symmetric_ticks(bands)
        self.plot_widget.getAxis("left").setTicks([[(t, str(t)) for t in self.ticks]])
        limit = max(self.ticks)
        self.plot_widget.setYRange(-limit, limit, padding=0)

    def set_status(self, loading: bool, error: bool) -> None:
        if loading:
            self.overlay.setText(self.tr(LOADING_TEXT))
            self.overlay.show()
        elif error:
            self.overlay.setText(self.tr(ERROR_TEXT))
            self.overlay.show()
        else:
            self.overlay.hide()

    def _on_band_structure_changed(self, model: BandStructureModel) -> None:
        self.set_bands(model.bands)

    def _on_fetch_status_changed(self, model: BandStructureModel) -> None:
        self.set_status(model.loading, model.error)
