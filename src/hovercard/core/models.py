"""Core data models for HoverCard."""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlparse

DEFAULT_FAVICON_SERVICE = "https://www.google.com/s2/favicons?domain={host}"
FALLBACK_DESCRIPTION = "Could not fetch metadata for this link"


def hostname_of(url: str) -> str:
    """Get the hostname of a URL, or an empty string if it has none."""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def favicon_url(url: str, template: str = DEFAULT_FAVICON_SERVICE) -> str:
    """Build the favicon service URL for the host of ``url``."""
    return template.format(host=hostname_of(url))


class DisplayState(str, Enum):
    """What the preview card is currently showing."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class PreviewRecord:
    """Title, description, image and favicon describing a link target."""

    url: str
    title: str
    description: str = ""
    image: str | None = None
    favicon: str = ""

    @property
    def hostname(self) -> str:
        return hostname_of(self.url)

    @classmethod
    def fallback(
        cls,
        url: str,
        description: str = FALLBACK_DESCRIPTION,
        favicon_service: str = DEFAULT_FAVICON_SERVICE,
    ) -> "PreviewRecord":
        """Build the record used when no metadata could be retrieved."""
        return cls(
            url=url,
            title=hostname_of(url),
            description=description,
            image=None,
            favicon=favicon_url(url, favicon_service),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "favicon": self.favicon,
        }

    @classmethod
    def from_dict(cls, data: dict | None, url: str) -> "PreviewRecord":
        """Create a record from a message payload.

        Missing or empty fields get the same defaults the extractor uses,
        so a sparse reply still produces a fully populated record.
        """
        data = data or {}
        record_url = data.get("url") or url
        image = data.get("image") or None
        return cls(
            url=record_url,
            title=data.get("title") or hostname_of(record_url),
            description=data.get("description") or "",
            image=image,
            favicon=data.get("favicon") or favicon_url(record_url),
        )


@dataclass(frozen=True)
class LoadingCard:
    """Placeholder shown while a preview is being resolved."""

    text: str = "Loading preview..."


@dataclass(frozen=True)
class ErrorCard:
    """Card shown when a preview cannot be displayed."""

    message: str
    detail: str = "Try reloading the page"


@dataclass
class HoverSession:
    """Interest in a single anchor, from pointer-enter until it is resolved or dropped."""

    anchor: Any
    url: str
    generation: int
    state: DisplayState = DisplayState.IDLE
