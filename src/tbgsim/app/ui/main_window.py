from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from PySide6.QtWidgets import QMainWindow, QVBoxLayout, QWidget

from tbgsim.app.application import VISIBLE_APP_NAME
from tbgsim.app.state import Store
from tbgsim.app.ui.panels.controls import ControlsPanel
from tbgsim.app.ui.workarea import WorkArea
from tbgsim.config import Settings
from tbgsim.controller.bandstructure import BandStructureController
from tbgsim.controller.cache import BandStructureCache

if TYPE_CHECKING:
    from PySide6.QtGui import QCloseEvent

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, settings: Optional[Settings] = None, store: Optional[Store] = None):
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1400, 900)

        self.settings = settings if settings is not None else Settings()

        # Global store
        self.store = store if store is not None else Store()

        # ---- Central: WorkArea on top + Controls below ----
        central = QWidget(self)
        v = QVBoxLayout(central)
        v.setContentsMargins(0, 0, 0, 0)
        v.setSpacing(0)

        self.work_area = WorkArea(self.store, central)
        v.addWidget(self.work_area, 1)

        self.controls = ControlsPanel(self.store, parent=central)
        v.addWidget(self.controls, 0)

        self.setCentralWidget(central)

        cache = BandStructureCache(
            prefix=self.settings.cache_key_prefix,
            expiry_ms=self.settings.cache_expiry_ms,
        )
        self.band_controller = BandStructureController(
            self.store, self.settings.api_url, cache=cache, parent=self
        )
        self.band_controller.refresh()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.band_controller.cancel()
        self.work_area.canvas.teardown()
        logger.info("Main window closed.")
        super().closeEvent(event)
