"""Hover state machine driving the preview card."""

import logging
from typing import Any, Protocol

from ..core.models import DisplayState, ErrorCard, HoverSession, LoadingCard, PreviewRecord
from ..messaging.protocol import FETCH_METADATA, ChannelDisconnectedError, ReplyCallback

logger = logging.getLogger(__name__)

DISCONNECTED_MESSAGE = "Preview service disconnected - please reload the page"
FAILED_MESSAGE = "Failed to load preview"


class Connection(Protocol):
    def is_alive(self) -> bool: ...

    def send_message(self, message: dict, callback: ReplyCallback) -> None: ...


class CardRenderer(Protocol):
    def render(self, state: LoadingCard | ErrorCard | PreviewRecord, anchor: Any) -> None: ...

    def hide(self) -> None: ...


class SessionContext:
    """State of one page load: connectivity and the current hover session.

    ``connected`` starts True and, once cleared, stays cleared until the page
    is reloaded (a new context is created). ``generation`` increases every
    time a hover session starts or ends; replies tagged with an older
    generation are stale.
    """

    def __init__(self) -> None:
        self.connected = True
        self.generation = 0
        self.session: HoverSession | None = None

    def next_generation(self) -> int:
        self.generation += 1
        return self.generation

    def disconnect(self, reason: str) -> None:
        if self.connected:
            logger.warning(f"Preview service unavailable: {reason}")
            self.connected = False


class HoverController:
    """Tracks the hovered link and moves the card through its states.

    Idle -> Loading -> Shown | ErrorShown. Only one hover session exists at a
    time; a reply that arrives after its session was superseded or ended is
    discarded.
    """

    def __init__(
        self,
        connection: Connection,
        renderer: CardRenderer,
        context: SessionContext | None = None,
    ):
        self._connection = connection
        self._renderer = renderer
        self._context = context or SessionContext()

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def state(self) -> DisplayState:
        session = self._context.session
        return session.state if session else DisplayState.IDLE

    def on_pointer_enter(self, anchor: Any, href: str) -> None:
        """The pointer moved onto a link."""
        if not href:
            return
        current = self._context.session
        if current is not None and current.anchor is anchor:
            return

        session = HoverSession(anchor=anchor, url=href, generation=self._context.next_generation())
        self._context.session = session

        if not self._context.connected:
            self._show_error(session, DISCONNECTED_MESSAGE)
            return

        session.state = DisplayState.LOADING
        self._renderer.render(LoadingCard(), anchor)

        generation = session.generation
        try:
            self._connection.send_message(
                {"type": FETCH_METADATA, "url": href},
                lambda response, error: self._on_reply(generation, response, error),
            )
        except ChannelDisconnectedError as e:
            self._lose_connection(str(e))

    def on_pointer_leave(self, anchor: Any, target_inside: bool) -> None:
        """The pointer left ``anchor``; ``target_inside`` if it moved onto a descendant."""
        session = self._context.session
        if session is None or target_inside or session.anchor is not anchor:
            return
        self._end_session()

    def on_scroll(self) -> None:
        self._end_session()

    def on_hidden(self) -> None:
        """The page was hidden (minimized or sent to the background)."""
        self._end_session()

    def on_visible(self) -> None:
        """The page became visible again; check whether the service went away meanwhile."""
        if not self._connection.is_alive():
            self._context.disconnect("connection lost while the page was hidden")

    def on_session_ended(self) -> None:
        """The service announced that the host session is over."""
        self._lose_connection("session ended")

    def _on_reply(self, generation: int, response: dict | None, error: Exception | None) -> None:
        session = self._context.session
        if session is None or session.generation != generation:
            # Stale replies are not drawn, but their errors still clear the flag
            if error is not None:
                self._context.disconnect(f"{error!r}")
            logger.debug(f"Discarding stale preview reply (generation {generation})")
            return

        if error is not None:
            self._lose_connection(f"{error!r}")
            return

        if not self._context.connected:
            self._show_error(session, DISCONNECTED_MESSAGE)
            return

        try:
            if response is not None and not isinstance(response, dict):
                raise TypeError(f"unexpected reply type {type(response).__name__}")
            record = PreviewRecord.from_dict(response, session.url)
            session.state = DisplayState.SUCCESS
            self._renderer.render(record, session.anchor)
        except Exception as e:
            logger.exception("Preview error")
            self._context.disconnect(f"{e!r}")
            self._show_error(session, FAILED_MESSAGE)

    def _lose_connection(self, reason: str) -> None:
        self._context.disconnect(reason)
        session = self._context.session
        if session is not None:
            self._show_error(session, DISCONNECTED_MESSAGE)

    def _show_error(self, session: HoverSession, message: str) -> None:
        session.state = DisplayState.ERROR
        self._renderer.render(ErrorCard(message), session.anchor)

    def _end_session(self) -> None:
        self._renderer.hide()
        if self._context.session is not None:
            self._context.session = None
            self._context.next_generation()
