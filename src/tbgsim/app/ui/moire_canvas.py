"""
Moiré canvas
============
The drawing surface of the two lattice layers and the scale bar.

The widget owns a `Scene` (see `tbgsim.model.scene`) and drives it from a
frame timer. Store changes are copied into a `ParameterSnapshot` in place;
every tick reads the snapshot, updates the scene and schedules one repaint.
"""
from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from PySide6.QtCore import QPointF, QRectF, Qt, QTimer
from PySide6.QtGui import QColor, QFont, QPainter, QPen, QPolygonF, QTransform
from PySide6.QtWidgets import QWidget

from tbgsim.config import FRAME_INTERVAL_MS
from tbgsim.model.scalebar import BarLabel, BarRect
from tbgsim.model.scene import LayerArena, ParameterSnapshot, RenderState, Scene
from tbgsim.model.transform import as_qt_components

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent, QPaintEvent, QResizeEvent, QShowEvent
    from tbgsim.app.state import MoireParams, Store

logger = logging.getLogger(__name__)

ATOM_COLOR = QColor(255, 255, 255)
SCALEBAR_COLOR = QColor(255, 255, 255)
LABEL_FONT_FAMILY = "Arial"
LABEL_FONT_SIZE_PX = 16


class MoireCanvas(QWidget):
    """
    Non-interactive, transparent surface rendering the twisted bilayer.

    Lifecycle: UNINITIALIZED -> INITIALIZING (first show) -> RUNNING (scene
    attached, frame timer started) -> DESTROYED (teardown or failed init).
    """
    def __init__(self, store: Store, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.store = store
        self.state = RenderState.UNINITIALIZED
        self.scene: Optional[Scene] = None

        self.snapshot = ParameterSnapshot()
        self.snapshot.update(store.moire_store)
        self.store.moire_changed.connect(self._on_moire_changed)

        # painter-side cache: (layer, generation) -> polygon
        self._polygons: dict[tuple[str, int], QPolygonF] = {}

        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, False)
        self.setAutoFillBackground(False)
        self.setMinimumSize(200, 200)

        self._frame_timer = QTimer(self)
        self._frame_timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._frame_timer.setInterval(FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._tick)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state == RenderState.RUNNING

    def teardown(self) -> None:
        """Stop the frame timer and release the scene. Safe to call repeatedly."""
        self._frame_timer.stop()
        if self.state == RenderState.DESTROYED:
            return
        self.state = RenderState.DESTROYED
        if self.scene is not None:
            self.scene.destroy()
            self.scene = None
        self._polygons.clear()
        logger.debug("Moiré canvas torn down.")

    # ------------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------------

    def showEvent(self, event: QShowEvent) -> None:
        super().showEvent(event)
        if self.state != RenderState.UNINITIALIZED:
            return
        self.state = RenderState.INITIALIZING
        # wait for the first layout pass so width()/height() are final
        QTimer.singleShot(0, self, self._initialize)

    def _initialize(self) -> None:
        if self.state != RenderState.INITIALIZING:
            return
        try:
            scene = Scene(self.width(), self.height(), self.devicePixelRatioF())
            scene.attach(self.snapshot.spacing)
        except Exception:
            logger.exception("Failed to initialize the moiré canvas.")
            self.state = RenderState.DESTROYED
            self.scene = None
            return

        self.scene = scene
        self.state = RenderState.RUNNING
        self._frame_timer.start()
        logger.info(
            f"Moiré canvas running: {self.width()}x{self.height()} px, "
            f"{len(scene.bottom)} sites per layer."
        )
        self.update()

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        if self.scene is None or self.state != RenderState.RUNNING:
            return
        self.scene.device_pixel_ratio = self.devicePixelRatioF()
        if self.scene.resize(event.size().width(), event.size().height()):
            self._drop_stale_polygons()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.teardown()
        super().closeEvent(event)

    # ------------------------------------------------------------------------------
    # Render loop
    # ------------------------------------------------------------------------------

    def _on_moire_changed(self, params: MoireParams) -> None:
        self.snapshot.update(params)

    def _tick(self) -> None:
        if self.state != RenderState.RUNNING or self.scene is None:
            return
        if self.scene.tick(self.snapshot):
            self.update()

    def paintEvent(self, event: QPaintEvent) -> None:
        scene = self.scene
        if scene is None or self.state != RenderState.RUNNING:
            return

        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)
            for container in scene.containers:
                if isinstance(container, LayerArena):
                    self._paint_layer(painter, container)
                    continue
                for child in container.children:
                    if isinstance(child, BarRect):
                        painter.fillRect(QRectF(child.x, child.y, child.width, child.height), SCALEBAR_COLOR)
                    elif isinstance(child, BarLabel):
                        self._paint_label(painter, child)
        finally:
            painter.end()

    def _paint_layer(self, painter: QPainter, arena: LayerArena) -> None:
        if len(arena) == 0:
            return
        painter.save()
        painter.setTransform(QTransform(*as_qt_components(arena.matrix)))
        pen = QPen(ATOM_COLOR)
        pen.setWidthF(2.0 * arena.point_radius)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.drawPoints(self._polygon_for(arena))
        painter.restore()

    def _paint_label(self, painter: QPainter, label: BarLabel) -> None:
        font = QFont(LABEL_FONT_FAMILY)
        font.setPixelSize(LABEL_FONT_SIZE_PX)
        painter.setFont(font)
        painter.setPen(SCALEBAR_COLOR)
        rect = QRectF(label.x, label.y, self.width() - label.x, LABEL_FONT_SIZE_PX * 1.5)
        painter.drawText(rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, label.text)

    def _polygon_for(self, arena: LayerArena) -> QPolygonF:
        key = (arena.layer.value, arena.generation)
        polygon = self._polygons.get(key)
        if polygon is None:
            polygon = QPolygonF([QPointF(float(x), float(y)) for x, y in arena.points])
            self._polygons[key] = polygon
        return polygon

    def _drop_stale_polygons(self) -> None:
        if self.scene is None:
            self._polygons.clear()
            return
        live = {(a.layer.value, a.generation) for a in (self.scene.top, self.scene.bottom) if a is not None}
        self._polygons = {k: v for k, v in self._polygons.items() if k in live}
