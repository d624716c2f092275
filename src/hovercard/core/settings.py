"""Settings management for HoverCard."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from appdirs import user_config_dir

from .models import DEFAULT_FAVICON_SERVICE

logger = logging.getLogger(__name__)

APP_NAME = "hovercard-qt"
APP_AUTHOR = "hovercard-qt"

DEFAULT_PROXY_URL = "https://api.allorigins.win/get?url={url}"


def get_config_dir() -> Path:
    """Get the configuration directory."""
    path = Path(user_config_dir(APP_NAME, APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class FetchSettings:
    """Retrieval proxy settings."""

    proxy_url: str = DEFAULT_PROXY_URL  # {url} is replaced with the encoded target
    timeout_seconds: int = 10
    user_agent: str = "Mozilla/5.0 (compatible; HoverCard/1.0)"


@dataclass
class CacheSettings:
    """In-memory preview cache settings."""

    max_entries: int = 200
    ttl_seconds: int = 0  # 0 = entries never expire


@dataclass
class CardSettings:
    """Preview card layout settings."""

    width: int = 320  # estimated size, used before the card has been laid out
    height: int = 200
    gap: int = 5
    edge_margin: int = 10
    favicon_service: str = DEFAULT_FAVICON_SERVICE
    show_images: bool = True


@dataclass
class WindowSettings:
    """Window state settings."""

    width: int = 720
    height: int = 540


@dataclass
class Settings:
    """Application settings."""

    fetch: FetchSettings = field(default_factory=FetchSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    card: CardSettings = field(default_factory=CardSettings)
    window: WindowSettings = field(default_factory=WindowSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from file."""
        if path is None:
            path = get_config_dir() / "settings.json"

        if not path.exists():
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return cls._from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Save settings to file."""
        if path is None:
            path = get_config_dir() / "settings.json"

        path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename to prevent corruption on crash
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix="settings_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _validate_int(value, default: int, min_val: int = 0, max_val: int | None = None) -> int:
        """Validate and constrain an integer value."""
        if not isinstance(value, int) or isinstance(value, bool):
            return default
        if value < min_val:
            return min_val
        if max_val is not None and value > max_val:
            return max_val
        return value

    @staticmethod
    def _validate_str(value, default: str) -> str:
        if isinstance(value, str) and value:
            return value
        return default

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary with validation."""
        settings = cls()

        fetch = data.get("fetch", {})
        proxy_url = cls._validate_str(fetch.get("proxy_url"), settings.fetch.proxy_url)
        if "{url}" not in proxy_url:
            logger.warning(f"proxy_url has no {{url}} placeholder, using default: {proxy_url}")
            proxy_url = DEFAULT_PROXY_URL
        settings.fetch.proxy_url = proxy_url
        settings.fetch.timeout_seconds = cls._validate_int(
            fetch.get("timeout_seconds"), 10, min_val=1, max_val=120
        )
        settings.fetch.user_agent = cls._validate_str(
            fetch.get("user_agent"), settings.fetch.user_agent
        )

        cache = data.get("cache", {})
        settings.cache.max_entries = cls._validate_int(
            cache.get("max_entries"), 200, min_val=1, max_val=10000
        )
        settings.cache.ttl_seconds = cls._validate_int(
            cache.get("ttl_seconds"), 0, min_val=0, max_val=7 * 24 * 3600
        )

        card = data.get("card", {})
        settings.card.width = cls._validate_int(card.get("width"), 320, min_val=120, max_val=1200)
        settings.card.height = cls._validate_int(card.get("height"), 200, min_val=40, max_val=1200)
        settings.card.gap = cls._validate_int(card.get("gap"), 5, min_val=0, max_val=100)
        settings.card.edge_margin = cls._validate_int(
            card.get("edge_margin"), 10, min_val=0, max_val=100
        )
        settings.card.favicon_service = cls._validate_str(
            card.get("favicon_service"), settings.card.favicon_service
        )
        settings.card.show_images = bool(card.get("show_images", settings.card.show_images))

        window = data.get("window", {})
        settings.window.width = cls._validate_int(window.get("width"), 720, min_val=200)
        settings.window.height = cls._validate_int(window.get("height"), 540, min_val=150)

        return settings

    def _to_dict(self) -> dict:
        """Convert Settings to a dictionary."""
        return {
            "fetch": {
                "proxy_url": self.fetch.proxy_url,
                "timeout_seconds": self.fetch.timeout_seconds,
                "user_agent": self.fetch.user_agent,
            },
            "cache": {
                "max_entries": self.cache.max_entries,
                "ttl_seconds": self.cache.ttl_seconds,
            },
            "card": {
                "width": self.card.width,
                "height": self.card.height,
                "gap": self.card.gap,
                "edge_margin": self.card.edge_margin,
                "favicon_service": self.card.favicon_service,
                "show_images": self.card.show_images,
            },
            "window": {
                "width": self.window.width,
                "height": self.window.height,
            },
        }
