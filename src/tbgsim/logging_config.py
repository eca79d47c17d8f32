"""
Logging Configuration
Sets up the 'tbgsim' logger and forwards Qt's own diagnostics into it.
"""
import logging
import sys
from typing import Optional

from PySide6.QtCore import QMessageLogContext, QtMsgType, qInstallMessageHandler

LOGGER_NAME = "tbgsim"
QT_LOGGER_NAME = f"{LOGGER_NAME}.qt"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def qt_message_handler(mode: QtMsgType, context: QMessageLogContext, message: str) -> None:
    """Re-emit a Qt message (QNetworkAccessManager, QPainter, ...) on the 'tbgsim.qt' logger."""
    logger = logging.getLogger(QT_LOGGER_NAME)
    category = context.category if context is not None and context.category else "default"
    logger.log(_QT_LEVELS.get(mode, logging.WARNING), f"[{category}] {message}")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    capture_qt: bool = True
) -> logging.Logger:
    """
    Configures the logger of the 'tbgsim' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        capture_qt: Route Qt's qDebug/qWarning output through 'tbgsim.qt'.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # re-setup replaces the handlers; close them so the log file is released
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if capture_qt:
        qInstallMessageHandler(qt_message_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
    return logger
