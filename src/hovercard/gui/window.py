"""Main window: one link page plus the preview machinery attached to it."""

import logging

from PySide6.QtCore import QEvent, Qt, QTimer
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QApplication, QLabel, QMainWindow, QWidget

from ..core.settings import Settings
from ..messaging.connection import PageConnection
from ..messaging.protocol import CHECK_STATUS, STATUS_ACTIVE, ChannelDisconnectedError
from ..messaging.service import MetadataService
from .controller import HoverController, SessionContext
from .guardian import PresenceGuardian
from .page import HoverEventFilter, LinkPage
from .renderer import PreviewRenderer

logger = logging.getLogger(__name__)


class PageWindow(QMainWindow):
    """Window hosting a LinkPage.

    Each page load gets a fresh SessionContext and PageConnection; reloading
    the page (F5) is the only way out of the disconnected state.
    """

    def __init__(
        self,
        service: MetadataService,
        settings: Settings,
        urls: list[str],
        parent: QWidget | None = None,
    ):
        super().__init__(parent)
        self._service = service
        self._settings = settings
        self._urls = list(urls)

        self._connection: PageConnection | None = None
        self._controller: HoverController | None = None
        self._event_filter: HoverEventFilter | None = None

        self.setWindowTitle("HoverCard")
        self.resize(settings.window.width, settings.window.height)

        self._page = LinkPage(self._urls, self)
        self.setCentralWidget(self._page)

        self._guardian = PresenceGuardian(self._page.content_widget(), self)
        self._guardian.ensure_presence()
        self._renderer = PreviewRenderer(
            self._page, self._guardian, settings.card, image_loader=service.fetch_image
        )

        self._status_label = QLabel()
        self.statusBar().addPermanentWidget(self._status_label)

        reload_action = QAction("Reload Page", self)
        reload_action.setShortcut(QKeySequence(QKeySequence.StandardKey.Refresh))
        reload_action.triggered.connect(self.reload_page)
        self.addAction(reload_action)

        app = QApplication.instance()
        if app is not None:
            app.applicationStateChanged.connect(self._on_application_state_changed)

        self._start_session()

    @property
    def controller(self) -> HoverController | None:
        return self._controller

    def reload_page(self) -> None:
        """Rebuild the page and start a new session."""
        logger.info("Reloading page")
        self._end_session()
        self._page.set_links(self._urls)
        self._start_session()

    def _start_session(self) -> None:
        self._connection = PageConnection(self._service, self)
        self._controller = HoverController(self._connection, self._renderer, SessionContext())
        self._connection.session_ended.connect(self._controller.on_session_ended)
        self._connection.session_ended.connect(self._refresh_status)

        self._event_filter = HoverEventFilter(self._page, self._controller, self)
        app = QApplication.instance()
        if app is not None:
            app.installEventFilter(self._event_filter)

        # Ask once the service thread is up, like a status popup would
        QTimer.singleShot(0, self._refresh_status)

    def _end_session(self) -> None:
        self._renderer.hide()
        if self._event_filter is not None:
            app = QApplication.instance()
            if app is not None:
                app.removeEventFilter(self._event_filter)
            self._event_filter.deleteLater()
            self._event_filter = None
        if self._connection is not None:
            self._connection.close()
            self._connection.deleteLater()
            self._connection = None
        self._controller = None

    def _refresh_status(self) -> None:
        connection = self._connection
        if connection is None:
            return
        try:
            connection.send_message({"type": CHECK_STATUS}, self._on_status_reply)
        except ChannelDisconnectedError:
            self._show_status(False)

    def _on_status_reply(self, response: dict | None, error: Exception | None) -> None:
        active = error is None and bool(response) and response.get("status") == STATUS_ACTIVE
        self._show_status(active)

    def _show_status(self, active: bool) -> None:
        if active:
            self._status_label.setText("Preview service active")
            self._status_label.setStyleSheet("background: #ddffdd; padding: 0 6px;")
        else:
            self._status_label.setText("Preview service disconnected - press F5 to reload")
            self._status_label.setStyleSheet("background: #ffdddd; padding: 0 6px;")

    def _on_application_state_changed(self, state: Qt.ApplicationState) -> None:
        if self._controller is None:
            return
        if state == Qt.ApplicationState.ApplicationActive:
            self._controller.on_visible()
        else:
            self._controller.on_hidden()

    def changeEvent(self, event) -> None:  # noqa: N802
        if (
            event.type() == QEvent.Type.WindowStateChange
            and self.isMinimized()
            and self._controller is not None
        ):
            self._controller.on_hidden()
        super().changeEvent(event)

    def hideEvent(self, event) -> None:  # noqa: N802
        if self._controller is not None:
            self._controller.on_hidden()
        super().hideEvent(event)

    def closeEvent(self, event) -> None:  # noqa: N802
        self._settings.window.width = self.width()
        self._settings.window.height = self.height()
        self._end_session()
        super().closeEvent(event)
