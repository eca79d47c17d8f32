"""
Band-structure request
======================
One cancellable GET against the eigenvalue service, with caching and retries.

Why is this file needed?
------------------------
1. Responsiveness: The request runs on QNetworkAccessManager, so the GUI thread
   never blocks while the service diagonalizes.
2. Robustness: Transient failures are retried with capped exponential backoff;
   client errors (4xx) are reported straight away.

Classes:
    RetryPolicy: Retry count and backoff delays.
    BandStructureRequest: A single request, emits `finished` or `failed`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QObject, QTimer, QUrl, QUrlQuery, Signal
from PySide6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest

from tbgsim.controller.cache import BandStructureCache, format_number
from tbgsim.model.bands import BandStructure, BandStructureError, MalformedResponseError, parse_eigenvalues

logger = logging.getLogger(__name__)


class HttpStatusError(BandStructureError):
    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP error! status: {status}")
        self.status = status

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500


class NetworkError(BandStructureError):
    """Transport failure (connection refused, timeout, ...)."""


class RequestAbortedError(BandStructureError):
    """The reply was cancelled before it completed."""


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 800
    max_delay_ms: int = 2000

    def delay_ms(self, attempt: int) -> int:
        """Backoff before retry number `attempt + 1` (attempt counts from 0)."""
        return min(self.base_delay_ms * 2 ** attempt, self.max_delay_ms)

    def should_retry(self, error: BandStructureError, attempt: int) -> bool:
        if isinstance(error, RequestAbortedError):
            return False
        if attempt >= self.max_retries:
            return False
        if isinstance(error, HttpStatusError) and error.is_client_error:
            return False
        return True


@dataclass(frozen=True)
class BandStructureQuery:
    """Physical parameters of one request, strains in percent."""
    twist_angle: float
    biaxial_strain: float
    uniaxial_strain: float
    uniaxial_strain_angle: float

    def url(self, base_url: str) -> QUrl:
        """Request URL. The service expects strains as fractions, not percent."""
        url = QUrl(base_url)
        query = QUrlQuery()
        query.addQueryItem("twist_angle", format_number(self.twist_angle))
        query.addQueryItem("biaxial_strain", format_number(self.biaxial_strain / 100))
        query.addQueryItem("uniaxial_strain", format_number(self.uniaxial_strain / 100))
        query.addQueryItem("uniaxial_strain_angle", format_number(self.uniaxial_strain_angle))
        url.setQuery(query)
        return url


class BandStructureRequest(QObject):
    """
    A single band-structure request.

    Exactly one of `finished` or `failed` is emitted, unless the request is
    aborted first, in which case neither is.
    """
    finished = Signal(object)  # BandStructure
    failed = Signal(str)

    def __init__(
        self,
        manager: QNetworkAccessManager,
        base_url: str,
        query: BandStructureQuery,
        cache: Optional[BandStructureCache] = None,
        policy: RetryPolicy = RetryPolicy(),
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self.manager = manager
        self.base_url = base_url
        self.query = query
        self.cache = cache
        self.policy = policy

        self.attempt: int = 0
        self.is_aborted: bool = False
        self.is_done: bool = False
        self._reply: Optional[QNetworkReply] = None

        self._retry_timer = QTimer(self)
        self._retry_timer.setSingleShot(True)
        self._retry_timer.timeout.connect(self._send)

        self._cache_key: Optional[str] = None
        if cache is not None:
            self._cache_key = cache.key_for(
                query.twist_angle, query.biaxial_strain, query.uniaxial_strain, query.uniaxial_strain_angle
            )

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def start(self) -> None:
        """Serve from cache if possible, otherwise send the first attempt."""
        if self.cache is not None and self._cache_key is not None:
            cached = self.cache.get(self._cache_key)
            if cached is not None:
                logger.info(f"Using cached data for: {self._cache_key}")
                # deliver asynchronously so callers can connect after start()
                QTimer.singleShot(0, self, lambda: self._finish(cached))
                return
            logger.info(f"Fetching fresh data for: {self._cache_key}")
        self._send()

    def abort(self) -> None:
        """Cancel the request. No signal is emitted afterwards."""
        if self.is_done:
            return
        self.is_aborted = True
        self._retry_timer.stop()
        if self._reply is not None:
            reply, self._reply = self._reply, None
            reply.finished.disconnect(self._on_reply_finished)
            reply.abort()
            reply.deleteLater()
        logger.debug("Band-structure request aborted.")

    # ------------------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------------------

    def _send(self) -> None:
        if self.is_aborted or self.is_done:
            return
        request = QNetworkRequest(self.query.url(self.base_url))
        request.setHeader(QNetworkRequest.KnownHeaders.ContentTypeHeader, "application/json")
        self._reply = self.manager.get(request)
        self._reply.finished.connect(self._on_reply_finished)

    def _on_reply_finished(self) -> None:
        reply, self._reply = self._reply, None
        if reply is None or self.is_aborted:
            return
        try:
            bands = self._read_reply(reply)
        except BandStructureError as e:
            self._handle_error(e)
        else:
            if self.cache is not None and self._cache_key is not None:
                self.cache.put(self._cache_key, bands)
            self._finish(bands)
        finally:
            reply.deleteLater()

    @staticmethod
    def _read_reply(reply: QNetworkReply) -> BandStructure:
        status = reply.attribute(QNetworkRequest.Attribute.HttpStatusCodeAttribute)
        if status is not None and not 200 <= int(status) < 300:
            raise HttpStatusError(int(status))
        if reply.error() == QNetworkReply.NetworkError.OperationCanceledError:
            raise RequestAbortedError(reply.errorString())
        if reply.error() != QNetworkReply.NetworkError.NoError:
            raise NetworkError(reply.errorString())

        body = bytes(reply.readAll().data())
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}") from e
        return parse_eigenvalues(payload)

    def _handle_error(self, error: BandStructureError) -> None:
        if isinstance(error, RequestAbortedError):
            logger.debug(f"Reply cancelled: {error}")
            return
        if not self.policy.should_retry(error, self.attempt):
            logger.error(f"Error fetching band structure data: {error}")
            self._fail(error)
            return
        delay = self.policy.delay_ms(self.attempt)
        self.attempt += 1
        logger.info(
            f"Retrying request (attempt {self.attempt + 1}/{self.policy.max_retries + 1}) in {delay}ms..."
        )
        self._retry_timer.start(delay)

    def _finish(self, bands: BandStructure) -> None:
        if self.is_aborted or self.is_done:
            return
        self.is_done = True
        self.finished.emit(bands)

    def _fail(self, error: BandStructureError) -> None:
        if self.is_aborted or self.is_done:
            return
        self.is_done = True
        self.failed.emit(str(error))
