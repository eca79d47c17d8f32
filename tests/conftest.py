import json
import os
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

import pytest

# headless Qt for widget tests; must be set before QApplication exists
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class FakeBandService:
    """
    Local HTTP stand-in for the eigenvalue service.

    `responses` is consumed one entry per request, the last entry repeats.
    Each entry is (status, body, delay_s).
    """

    def __init__(self) -> None:
        self.responses: list[tuple[int, bytes, float]] = [(200, b"{}", 0.0)]
        self.requests: list[dict[str, list[str]]] = []
        self._lock = threading.Lock()

        service = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                with service._lock:
                    service.requests.append(parse_qs(urlparse(self.path).query))
                    index = min(len(service.requests), len(service.responses)) - 1
                    status, body, delay = service.responses[index]
                if delay:
                    time.sleep(delay)
                try:
                    self.send_response(status)
                    self.send_header("Content-Type", "application/json")
                    self.send_header("Content-Length", str(len(body)))
                    self.end_headers()
                    self.wfile.write(body)
                except (BrokenPipeError, ConnectionResetError):
                    pass

            def log_message(self, format, *args) -> None:
                pass

        self.server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.server.daemon_threads = True
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self.server.server_address[:2]
        return f"http://{host}:{port}/bandstructure"

    def respond(self, *responses: tuple) -> None:
        self.responses = [
            (status, body if isinstance(body, bytes) else json.dumps(body).encode(), delay)
            for status, body, delay in (r if len(r) == 3 else (*r, 0.0) for r in responses)
        ]

    @property
    def request_count(self) -> int:
        with self._lock:
            return len(self.requests)


def eigenvalue_rows(n: int = 80) -> list[list[float]]:
    return [[-30.0 - k, -20.0, -10.0, 10.0, 20.0, 30.0 + k] for k in range(n)]


@pytest.fixture
def band_service():
    service = FakeBandService()
    service.thread.start()
    yield service
    service.server.shutdown()
    service.server.server_close()


@pytest.fixture
def ini_settings(qapp, tmp_path):
    from PySide6.QtCore import QSettings
    settings = QSettings(str(tmp_path / "cache.ini"), QSettings.Format.IniFormat)
    yield settings
    settings.sync()


@pytest.fixture
def network_manager(qapp):
    from PySide6.QtNetwork import QNetworkAccessManager, QNetworkProxy
    manager = QNetworkAccessManager()
    manager.setProxy(QNetworkProxy(QNetworkProxy.ProxyType.NoProxy))
    yield manager
    manager.deleteLater()


@pytest.fixture
def eigenvalues() -> list[list[float]]:
    return eigenvalue_rows()
