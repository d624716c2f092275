"""The link page hosting the preview card, and the event filter that watches it."""

import logging
import webbrowser

from PySide6.QtCore import QEvent, QObject, QPoint, Qt
from PySide6.QtGui import QCursor
from PySide6.QtWidgets import QApplication, QLabel, QScrollArea, QVBoxLayout, QWidget

from .controller import HoverController
from .geometry import Rect

logger = logging.getLogger(__name__)

HREF_PROPERTY = "href"


def href_of(widget: QWidget) -> str:
    value = widget.property(HREF_PROPERTY)
    return value if isinstance(value, str) else ""


def find_anchor(widget: QWidget | None, container: QWidget) -> QWidget | None:
    """Get the nearest widget at or above ``widget`` that carries an href.

    The search stops at ``container``.
    """
    while widget is not None and widget is not container:
        if href_of(widget):
            return widget
        widget = widget.parentWidget()
    return None


class LinkAnchor(QLabel):
    """A clickable hyperlink on the page."""

    def __init__(self, text: str, href: str, parent: QWidget | None = None):
        super().__init__(parent)
        self.setTextFormat(Qt.TextFormat.PlainText)
        self.setText(text)
        self.setProperty(HREF_PROPERTY, href)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setStyleSheet("color: #1a5fb4; text-decoration: underline;")

    def mouseReleaseEvent(self, event) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            try:
                webbrowser.open(href_of(self))
            except Exception as e:
                logger.error(f"Failed to open URL: {e}")
            return
        super().mouseReleaseEvent(event)


class LinkPage(QScrollArea):
    """Scrollable page listing hyperlinks.

    The preview card lives inside the content widget, so card coordinates are
    content coordinates and the visible part of the content is the viewport.
    """

    def __init__(self, urls: list[str] | None = None, parent: QWidget | None = None):
        super().__init__(parent)
        self.setWidgetResizable(True)
        self._content = QWidget()
        self._layout = QVBoxLayout(self._content)
        self._layout.setContentsMargins(16, 16, 16, 16)
        self._layout.setSpacing(12)
        self._layout.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
        self.setWidget(self._content)
        self.set_links(urls or [])

    def content_widget(self) -> QWidget:
        return self._content

    def owns(self, widget: QWidget) -> bool:
        return widget is self._content or self._content.isAncestorOf(widget)

    def set_links(self, urls: list[str]) -> None:
        """Replace the page contents with one link per URL.

        Every child of the content widget is removed, the preview card
        included; the presence guardian brings the card back.
        """
        direct_only = Qt.FindChildOption.FindDirectChildrenOnly
        for child in self._content.findChildren(QWidget, "", direct_only):
            self._layout.removeWidget(child)
            child.setParent(None)
            child.deleteLater()
        for url in urls:
            self._layout.addWidget(LinkAnchor(url, url, self._content))
        logger.debug(f"Page now shows {len(urls)} link(s)")

    def anchor_rect(self, anchor: QWidget) -> Rect:
        """Get the anchor's current geometry in content coordinates."""
        top_left = anchor.mapTo(self._content, QPoint(0, 0))
        return Rect(top_left.x(), top_left.y(), anchor.width(), anchor.height())

    def visible_rect(self) -> Rect:
        """Get the visible part of the content in content coordinates."""
        viewport = self.viewport()
        origin = self._content.mapFrom(viewport, QPoint(0, 0))
        return Rect(origin.x(), origin.y(), viewport.width(), viewport.height())


class HoverEventFilter(QObject):
    """Turns Qt events on a LinkPage into HoverController calls.

    Installed on the application, since enter/leave events go to the
    innermost widget under the pointer rather than to the page.
    """

    def __init__(self, page: LinkPage, controller: HoverController, parent: QObject | None = None):
        super().__init__(parent)
        self._page = page
        self._controller = controller
        page.verticalScrollBar().valueChanged.connect(self._on_scroll)
        page.horizontalScrollBar().valueChanged.connect(self._on_scroll)

    def _on_scroll(self, _value: int) -> None:
        self._controller.on_scroll()

    def eventFilter(self, obj, event) -> bool:  # noqa: N802
        etype = event.type()
        if etype not in (QEvent.Type.Enter, QEvent.Type.Leave):
            return False
        if not isinstance(obj, QWidget) or not self._page.owns(obj):
            return False

        anchor = find_anchor(obj, self._page.content_widget())
        if anchor is None:
            return False

        if etype == QEvent.Type.Enter:
            self._controller.on_pointer_enter(anchor, href_of(anchor))
        else:
            target = QApplication.widgetAt(QCursor.pos())
            inside = target is not None and (target is anchor or anchor.isAncestorOf(target))
            self._controller.on_pointer_leave(anchor, inside)
        return False
