"""Renders the preview card into the page's overlay root."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from PySide6.QtCore import QSize, Qt
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel, QVBoxLayout, QWidget

from ..core.models import ErrorCard, LoadingCard, PreviewRecord
from ..core.settings import CardSettings
from ..messaging.protocol import ChannelDisconnectedError, ReplyCallback
from .geometry import Size, compute_card_position
from .guardian import PresenceGuardian

if TYPE_CHECKING:
    from .page import LinkPage

logger = logging.getLogger(__name__)

# image_loader(url, callback): callback receives (bytes, error) on the GUI thread
ImageLoader = Callable[[str, ReplyCallback], None]

IMAGE_SIZE = QSize(300, 140)
FAVICON_SIZE = QSize(16, 16)
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 240

CARD_STYLE = """
    QFrame#hover-preview-container {
        background-color: #ffffff;
        border: 1px solid #d0d0d8;
        border-radius: 6px;
    }
    QLabel { background: transparent; border: none; }
    QLabel[role="title"] { font-weight: bold; color: #1a1a1a; }
    QLabel[role="description"] { color: #555555; font-size: 11px; }
    QLabel[role="host"] { color: #888888; font-size: 10px; }
    QFrame#hover-preview-container[state="error"] QLabel[role="title"] { color: #b00020; }
"""


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class PreviewRenderer:
    """Writes card contents into the overlay root and positions it.

    The root is looked up through the guardian on every call, so a root that
    was removed and recreated is picked up transparently. Text is always set
    as plain text.
    """

    def __init__(
        self,
        page: "LinkPage",
        guardian: PresenceGuardian,
        settings: CardSettings,
        image_loader: ImageLoader | None = None,
    ):
        self._page = page
        self._guardian = guardian
        self._settings = settings
        self._image_loader = image_loader
        self._render_token = 0
        self._anchor: QWidget | None = None

    def render(self, state: LoadingCard | ErrorCard | PreviewRecord, anchor: QWidget) -> None:
        """Show ``state`` next to ``anchor``."""
        root = self._guardian.ensure_presence()
        self._render_token += 1
        self._anchor = anchor
        self._clear(root)

        if isinstance(state, PreviewRecord):
            root.setProperty("state", "success")
            self._fill_record(root, state)
        elif isinstance(state, ErrorCard):
            root.setProperty("state", "error")
            self._fill_text(root, state.message, state.detail)
        else:
            root.setProperty("state", "loading")
            self._fill_text(root, state.text, "")

        root.setStyleSheet(CARD_STYLE)
        root.setFixedWidth(self._settings.width)
        root.adjustSize()
        root.show()
        root.raise_()
        self._position(root, anchor)

    def hide(self) -> None:
        self._render_token += 1
        self._anchor = None
        self._guardian.ensure_presence().hide()

    def _layout(self, root: QFrame) -> QVBoxLayout:
        layout = root.layout()
        if layout is None:
            layout = QVBoxLayout(root)
            layout.setContentsMargins(10, 10, 10, 10)
            layout.setSpacing(4)
        return layout

    def _clear(self, root: QFrame) -> None:
        layout = self._layout(root)
        while layout.count():
            item = layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
            elif item.layout() is not None:
                inner = item.layout()
                while inner.count():
                    child = inner.takeAt(0).widget()
                    if child is not None:
                        child.deleteLater()
                inner.deleteLater()

    def _label(self, text: str, role: str, parent: QWidget) -> QLabel:
        label = QLabel(parent)
        label.setTextFormat(Qt.TextFormat.PlainText)
        label.setText(text)
        label.setWordWrap(True)
        label.setProperty("role", role)
        return label

    def _fill_text(self, root: QFrame, title: str, detail: str) -> None:
        layout = self._layout(root)
        layout.addWidget(self._label(title, "title", root))
        if detail:
            layout.addWidget(self._label(detail, "description", root))

    def _fill_record(self, root: QFrame, record: PreviewRecord) -> None:
        layout = self._layout(root)
        token = self._render_token

        if record.image and self._settings.show_images:
            image_label = QLabel(root)
            image_label.hide()
            layout.addWidget(image_label)
            self._load_pixmap(record.image, image_label, IMAGE_SIZE, token)

        title = _truncate(record.title or "No title", MAX_TITLE_LENGTH)
        description = _truncate(
            record.description or "No description available", MAX_DESCRIPTION_LENGTH
        )
        layout.addWidget(self._label(title, "title", root))
        layout.addWidget(self._label(description, "description", root))

        host_row = QHBoxLayout()
        host_row.setSpacing(6)
        if record.favicon:
            favicon_label = QLabel(root)
            favicon_label.setFixedSize(FAVICON_SIZE)
            host_row.addWidget(favicon_label)
            self._load_pixmap(record.favicon, favicon_label, FAVICON_SIZE, token)
        host_row.addWidget(self._label(record.hostname, "host", root), 1)
        layout.addLayout(host_row)

    def _load_pixmap(self, url: str, label: QLabel, size: QSize, token: int) -> None:
        if self._image_loader is None:
            return
        try:
            self._image_loader(
                url,
                lambda data, error: self._on_pixmap_loaded(url, data, error, label, size, token),
            )
        except ChannelDisconnectedError:
            logger.debug(f"Not loading {url}: metadata service stopped")

    def _on_pixmap_loaded(
        self,
        url: str,
        data: bytes | None,
        error: Exception | None,
        label: QLabel,
        size: QSize,
        token: int,
    ) -> None:
        # A newer render replaced the card; its labels are being deleted
        if token != self._render_token:
            return
        if error is not None or not data:
            logger.debug(f"Image load failed for {url}: {error!r}")
            return
        pixmap = QPixmap()
        if not pixmap.loadFromData(data) or pixmap.isNull():
            return
        try:
            label.setPixmap(
                pixmap.scaled(
                    size,
                    Qt.AspectRatioMode.KeepAspectRatio,
                    Qt.TransformationMode.SmoothTransformation,
                )
            )
            label.show()
            root = self._guardian.ensure_presence()
            root.adjustSize()
            if self._anchor is not None:
                self._position(root, self._anchor)
        except RuntimeError:
            # C++ object deleted (page reloaded under the card)
            self._anchor = None

    def _position(self, root: QFrame, anchor: QWidget) -> None:
        hint = root.sizeHint()
        card = Size(
            hint.width() if hint.width() > 0 else self._settings.width,
            hint.height() if hint.height() > 0 else self._settings.height,
        )
        left, top = compute_card_position(
            self._page.anchor_rect(anchor),
            self._page.visible_rect(),
            card,
            gap=self._settings.gap,
            margin=self._settings.edge_margin,
        )
        root.move(left, top)
