"""Page-side end of the channel to the metadata service."""

import logging

from PySide6.QtCore import QObject, Signal

from .protocol import ChannelDisconnectedError, ReplyCallback
from .service import MetadataService

logger = logging.getLogger(__name__)


class PageConnection(QObject):
    """Connection held by a single page.

    Once the service goes away (or the page closes its end) the connection
    stays dead: every later send_message() raises ChannelDisconnectedError.
    """

    session_ended = Signal()

    def __init__(self, service: MetadataService, parent: QObject | None = None):
        super().__init__(parent)
        self._service = service
        self._connected = service.is_active
        if self._connected:
            service.register(self)

    def is_alive(self) -> bool:
        """Whether requests can still reach the service."""
        return self._connected and self._service.is_active

    def send_message(self, message: dict, callback: ReplyCallback) -> None:
        """Send a request; the callback receives ``(response, error)`` on the GUI thread.

        Raises:
            ChannelDisconnectedError: if the channel has dropped.
        """
        if not self.is_alive():
            raise ChannelDisconnectedError("connection to metadata service lost")
        self._service.submit(message, callback)

    def close(self) -> None:
        """Drop this page's end of the channel."""
        if self._connected:
            self._connected = False
            self._service.unregister(self)

    def notify_session_ended(self) -> None:
        """Handle the service's session-ended broadcast."""
        if not self._connected:
            return
        self._connected = False
        logger.info("Page connection received session end")
        self.session_ended.emit()
