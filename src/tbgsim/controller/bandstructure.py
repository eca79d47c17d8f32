"""
Band-structure controller.

Watches the store and keeps exactly one band-structure request alive for the
current parameters. A request is started whenever the physical parameters
change and no slider is being dragged; the previous one is aborted first.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Optional, TYPE_CHECKING

from PySide6.QtCore import QObject
from PySide6.QtNetwork import QNetworkAccessManager

from tbgsim.controller.fetcher import BandStructureQuery, BandStructureRequest, RetryPolicy

if TYPE_CHECKING:
    from tbgsim.app.state import Store
    from tbgsim.controller.cache import BandStructureCache
    from tbgsim.model.bands import BandStructure

logger = logging.getLogger(__name__)


class BandStructureController(QObject):
    """
    Args:
        store: Shared application state.
        api_url: Endpoint of the eigenvalue service.
        cache: Optional response cache consulted before the network.
        policy: Retry policy handed to each request.
        manager: Network access manager; a private one is created if omitted.
    """

    def __init__(
        self,
        store: Store,
        api_url: str,
        cache: Optional[BandStructureCache] = None,
        policy: RetryPolicy = RetryPolicy(),
        manager: Optional[QNetworkAccessManager] = None,
        parent: Optional[QObject] = None
    ) -> None:
        super().__init__(parent)
        self.store = store
        self.api_url = api_url
        self.cache = cache
        self.policy = policy
        self.manager = manager if manager is not None else QNetworkAccessManager(self)

        self.request: Optional[BandStructureRequest] = None
        self._last_query: Optional[BandStructureQuery] = None

        self.store.moire_changed.connect(self._on_params_changed)
        self.store.slider_dragging_changed.connect(self._on_slider_dragging_changed)
        self.store.reset_done.connect(self._on_reset)

    def refresh(self, force: bool = False) -> bool:
        """
        Start a request for the current parameters.

        Nothing happens while a slider is dragged, while a parameter is unset,
        or (unless `force`) when the parameters equal those of the last request.

        Returns:
            True if a new request was started.
        """
        if self.store.slider_dragging:
            return False
        values = self.store.moire_store.physical()
        if values is None:
            return False
        query = BandStructureQuery(*values)
        if not force and query == self._last_query and self.request is not None:
            return False

        self.cancel()
        self._last_query = query
        self.store.set_loading(True)

        request = BandStructureRequest(self.manager, self.api_url, query, self.cache, self.policy, parent=self)
        request.finished.connect(partial(self._on_finished, request))
        request.failed.connect(partial(self._on_failed, request))
        self.request = request
        request.start()
        return True

    def cancel(self) -> None:
        """Abort the in-flight request, if any. The store is left untouched."""
        if self.request is None:
            return
        self.request.abort()
        self.request.deleteLater()
        self.request = None

    # ------------------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------------------

    def _on_params_changed(self, _params: object) -> None:
        self.refresh()

    def _on_slider_dragging_changed(self, dragging: bool) -> None:
        if dragging:
            self.cancel()
            self._last_query = None
        else:
            self.refresh()

    def _on_reset(self) -> None:
        # reset wiped the bands; refetch unless the parameter change already did
        if not self.store.band_store.loading:
            self.refresh(force=True)

    def _on_finished(self, request: BandStructureRequest, bands: BandStructure) -> None:
        if request is not self.request:
            return
        logger.info(f"Received band structure with {bands.energies.shape[0]} samples.")
        self.store.set_band_structure(bands)

    def _on_failed(self, request: BandStructureRequest, message: str) -> None:
        if request is not self.request:
            return
        logger.error(f"Band structure request failed: {message}")
        self.store.set_error(True)
