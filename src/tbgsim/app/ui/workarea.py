from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QFrame, QSplitter, QVBoxLayout, QWidget

from tbgsim.app.ui.chart import BandChart
from tbgsim.app.ui.moire_canvas import MoireCanvas

if TYPE_CHECKING:
    from tbgsim.app.state import Store


class WorkArea(QWidget):
    """The main work area with a splitter between the lattice canvas and the band chart."""
    def __init__(self, store: Store, parent: QWidget | None = None) -> None:
        super().__init__(parent)

        v = QVBoxLayout(self)
        split = QSplitter(Qt.Orientation.Horizontal, self)
        split.setChildrenCollapsible(False)
        v.addWidget(split, 1)

        # the canvas is transparent, the frame provides the dark backdrop
        self.canvas_frame = QFrame(split)
        self.canvas_frame.setObjectName("canvasFrame")
        self.canvas_frame.setStyleSheet("#canvasFrame { background-color: black; }")
        frame_layout = QVBoxLayout(self.canvas_frame)
        frame_layout.setContentsMargins(0, 0, 0, 0)
        self.canvas = MoireCanvas(store, self.canvas_frame)
        frame_layout.addWidget(self.canvas)

        self.chart = BandChart(store, split)

        split.addWidget(self.canvas_frame)
        split.addWidget(self.chart)
        split.setStretchFactor(0, 1)
        split.setStretchFactor(1, 1)
