"""Messaging between pages and the background metadata service."""

from .protocol import (
    CHECK_STATUS,
    FETCH_METADATA,
    SESSION_ENDED,
    ChannelDisconnectedError,
    handle_request,
)

__all__ = [
    "CHECK_STATUS",
    "FETCH_METADATA",
    "SESSION_ENDED",
    "ChannelDisconnectedError",
    "handle_request",
]
