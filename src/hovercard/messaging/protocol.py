"""Request/response messages exchanged between pages and the metadata service."""

import logging
from collections.abc import Callable
from typing import Any

from ..core.resolver import MetadataResolver

logger = logging.getLogger(__name__)

FETCH_METADATA = "FETCH_METADATA"
CHECK_STATUS = "CHECK_STATUS"
SESSION_ENDED = "SESSION_ENDED"

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"

# callback(response, error): exactly one of the two is not None
ReplyCallback = Callable[[dict | None, Exception | None], None]


class ChannelDisconnectedError(Exception):
    """The page can no longer reach the metadata service."""


async def handle_request(
    resolver: MetadataResolver, message: dict[str, Any], active: bool = True
) -> dict[str, Any]:
    """Answer a single request message.

    Raises:
        ValueError: for malformed or unknown messages.
    """
    kind = message.get("type") if isinstance(message, dict) else None

    if kind == CHECK_STATUS:
        return {"status": STATUS_ACTIVE if active else STATUS_INACTIVE}

    if kind == FETCH_METADATA:
        url = message.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError(f"{FETCH_METADATA} requires a url, got {url!r}")
        record = await resolver.resolve(url)
        return record.to_dict()

    raise ValueError(f"Unknown message type: {kind!r}")
