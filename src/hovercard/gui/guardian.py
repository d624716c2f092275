"""Keeps the preview card's root frame alive inside the page."""

import logging

from PySide6.QtCore import QEvent, QObject, Qt, QTimer
from PySide6.QtWidgets import QFrame, QWidget

logger = logging.getLogger(__name__)

OVERLAY_OBJECT_NAME = "hover-preview-container"


class PresenceGuardian(QObject):
    """Makes sure exactly one overlay root frame exists in ``container``.

    The page may delete or reparent its children at any time. Whenever a child
    is removed the guardian checks on the next event-loop turn and recreates
    the frame if it is gone. It never removes the frame itself.
    """

    def __init__(self, container: QWidget, parent: QObject | None = None):
        super().__init__(parent)
        self._container = container
        self._check_pending = False
        container.installEventFilter(self)

    def ensure_presence(self) -> QFrame:
        """Get the overlay root, creating it if it is missing."""
        self._check_pending = False
        root = self._container.findChild(QFrame, OVERLAY_OBJECT_NAME)
        if root is not None:
            return root

        root = QFrame(self._container)
        root.setObjectName(OVERLAY_OBJECT_NAME)
        root.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        root.hide()
        logger.debug("Created preview overlay root")
        return root

    def eventFilter(self, obj, event) -> bool:  # noqa: N802
        if obj is self._container and event.type() == QEvent.Type.ChildRemoved:
            if not self._check_pending:
                self._check_pending = True
                QTimer.singleShot(0, self.ensure_presence)
        return False
