"""Background metadata service running the resolver on its own event loop."""

import asyncio
import concurrent.futures
import logging
import weakref
from typing import TYPE_CHECKING

from PySide6.QtCore import QObject, QThread, Signal

from ..core.resolver import MetadataResolver
from .protocol import (
    SESSION_ENDED,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    ChannelDisconnectedError,
    ReplyCallback,
    handle_request,
)

if TYPE_CHECKING:
    from .connection import PageConnection

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0  # seconds


class _ReplyBridge(QObject):
    """Carries replies from the service thread back to the GUI thread."""

    reply = Signal(object, object, object)  # callback, response, error

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)
        self.reply.connect(self._deliver)

    def _deliver(self, callback: ReplyCallback, response, error) -> None:
        try:
            callback(response, error)
        except Exception:
            logger.exception("Reply callback failed")


class MetadataService(QThread):
    """Worker thread that owns the resolver and its asyncio loop.

    Pages talk to it through PageConnection. When the service stops, every
    registered connection is told that the session has ended.
    """

    def __init__(self, resolver: MetadataResolver, parent: QObject | None = None):
        super().__init__(parent)
        self._resolver = resolver
        self._loop = asyncio.new_event_loop()
        self._active = True
        self._bridge = _ReplyBridge()
        self._connections: weakref.WeakSet["PageConnection"] = weakref.WeakSet()
        self.finished.connect(self._on_finished)

    @property
    def is_active(self) -> bool:
        return self._active

    def status(self) -> str:
        return STATUS_ACTIVE if self._active else STATUS_INACTIVE

    def register(self, connection: "PageConnection") -> None:
        self._connections.add(connection)

    def unregister(self, connection: "PageConnection") -> None:
        self._connections.discard(connection)

    def run(self) -> None:
        """Run the event loop until stop() is called."""
        asyncio.set_event_loop(self._loop)
        self._resolver.reset_session()
        logger.info("Metadata service started")
        try:
            self._loop.run_forever()
        except Exception as e:
            logger.error(f"Metadata service loop error: {e}")
        finally:
            self._loop.close()
            logger.info("Metadata service stopped")

    def submit(self, message: dict, callback: ReplyCallback) -> None:
        """Schedule a request; ``callback`` runs on the GUI thread with the reply.

        Raises:
            ChannelDisconnectedError: if the service is no longer running.
        """
        self._schedule(handle_request(self._resolver, message, active=self._active), callback)

    def fetch_image(self, url: str, callback: ReplyCallback) -> None:
        """Download image bytes for the card; ``callback`` gets ``(bytes, None)``."""
        self._schedule(self._resolver.fetch_image(url), callback)

    def _schedule(self, coro, callback: ReplyCallback) -> None:
        if not self._active or self._loop.is_closed():
            coro.close()
            raise ChannelDisconnectedError("metadata service is not running")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(lambda f, cb=callback: self._on_request_done(f, cb))

    def _on_request_done(self, future: concurrent.futures.Future, callback: ReplyCallback) -> None:
        # Runs on the service thread
        try:
            response = future.result()
        except concurrent.futures.CancelledError:
            self._bridge.reply.emit(
                callback, None, ChannelDisconnectedError("request cancelled: service stopped")
            )
            return
        except Exception as e:
            self._bridge.reply.emit(callback, None, e)
            return
        self._bridge.reply.emit(callback, response, None)

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._resolver.close()

    def stop(self) -> None:
        """Stop the service and notify every connected page."""
        if not self._active:
            return
        self._active = False

        if self.isRunning() and not self._loop.is_closed():
            future = asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
            try:
                future.result(timeout=SHUTDOWN_TIMEOUT)
            except (concurrent.futures.TimeoutError, RuntimeError) as e:
                logger.warning(f"Metadata service shutdown incomplete: {e!r}")
            self._loop.call_soon_threadsafe(self._loop.stop)
            self.wait(int(SHUTDOWN_TIMEOUT * 1000))
        elif not self._loop.is_closed():
            self._loop.close()

        self._broadcast_session_ended()

    def _on_finished(self) -> None:
        # The thread can also exit without stop(), e.g. if the loop crashed
        if self._active:
            logger.warning("Metadata service exited unexpectedly")
            self._active = False
            self._broadcast_session_ended()

    def _broadcast_session_ended(self) -> None:
        connections = list(self._connections)
        logger.info(f"Broadcasting {SESSION_ENDED} to {len(connections)} page(s)")
        for connection in connections:
            connection.notify_session_ended()
        self._connections.clear()
