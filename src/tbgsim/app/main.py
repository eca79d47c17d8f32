"""
Run with: python -m tbgsim
"""
from __future__ import annotations

import logging
import sys

from tbgsim.app.application import create_app
from tbgsim.app.ui.main_window import MainWindow
from tbgsim.config import load_settings
from tbgsim.logging_config import setup_logging

import pyqtgraph as pg

pg.setConfigOption("background", "w")
pg.setConfigOption("foreground", "k")
pg.setConfigOption("antialias", True)

logger = logging.getLogger(__name__)


def main() -> int:
    """Main entry point for the application."""
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info(f"Band-structure service: {settings.api_url}")

    app = create_app()
    win = MainWindow(settings)
    win.show()
    return app.exec()

if __name__ == "__main__":
    sys.exit(main())
