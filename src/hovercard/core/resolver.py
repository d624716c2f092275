"""Metadata resolver: cache lookup, proxy fetch, extraction and fallback."""

import asyncio
import json
import logging
from urllib.parse import quote

import aiohttp

from .cache import PreviewCache
from .extractor import extract
from .models import DEFAULT_FAVICON_SERVICE, FALLBACK_DESCRIPTION, PreviewRecord
from .settings import DEFAULT_PROXY_URL, Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; HoverCard/1.0)"


class FetchError(Exception):
    """The retrieval proxy did not return usable page contents."""


class MetadataResolver:
    """Turns a URL into a PreviewRecord.

    Pages are retrieved through a third-party proxy that wraps the target's
    body in a JSON envelope (``{"contents": "..."}``). Successful results are
    cached by URL; failures produce an uncached fallback record so a later
    hover can try again.
    """

    def __init__(
        self,
        cache: PreviewCache | None = None,
        proxy_url: str = DEFAULT_PROXY_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        favicon_service: str = DEFAULT_FAVICON_SERVICE,
    ) -> None:
        self._cache = cache if cache is not None else PreviewCache()
        self._proxy_url = proxy_url
        self._timeout = timeout
        self._user_agent = user_agent
        self._favicon_service = favicon_service
        self._session: aiohttp.ClientSession | None = None
        self._inflight: dict[str, asyncio.Future] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "MetadataResolver":
        return cls(
            cache=PreviewCache(
                max_entries=settings.cache.max_entries,
                ttl_seconds=settings.cache.ttl_seconds,
            ),
            proxy_url=settings.fetch.proxy_url,
            timeout=settings.fetch.timeout_seconds,
            user_agent=settings.fetch.user_agent,
            favicon_service=settings.card.favicon_service,
        )

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            connector = aiohttp.TCPConnector(limit=10)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            try:
                await self._session.close()
                # Give the connector a moment to release its sockets
                await asyncio.sleep(0.1)
            finally:
                self._session = None

    def reset_session(self) -> None:
        """Forget the HTTP session so it is recreated on the next fetch.

        Call this before resolving from a new event loop.
        """
        self._session = None

    def cache_info(self) -> dict[str, int]:
        return self._cache.info()

    def proxy_request_url(self, url: str) -> str:
        """Build the retrieval proxy URL for a target page."""
        return self._proxy_url.replace("{url}", quote(url, safe=""))

    async def resolve(self, url: str) -> PreviewRecord:
        """Get the preview record for ``url``. Never raises.

        Concurrent calls for the same uncached URL share a single fetch.
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug(f"Preview cache hit: {url}")
            return cached

        future = self._inflight.get(url)
        if future is None:
            future = asyncio.ensure_future(self._resolve_uncached(url))
            self._inflight[url] = future
            future.add_done_callback(lambda _f, key=url: self._inflight.pop(key, None))
        return await asyncio.shield(future)

    async def _resolve_uncached(self, url: str) -> PreviewRecord:
        try:
            html = await self._fetch_html(url)
        except (FetchError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Could not fetch metadata for {url}: {e!r}")
            return self._fallback(url)
        except Exception:
            logger.exception(f"Unexpected error fetching metadata for {url}")
            return self._fallback(url)

        record = extract(html, url, favicon_service=self._favicon_service)
        self._cache.put(url, record)
        logger.debug(f"Cached preview for {url}: {record.title!r}")
        return record

    def _fallback(self, url: str) -> PreviewRecord:
        return PreviewRecord.fallback(
            url, description=FALLBACK_DESCRIPTION, favicon_service=self._favicon_service
        )

    async def _fetch_html(self, url: str) -> str:
        """Retrieve the raw HTML of ``url`` through the proxy.

        Raises:
            FetchError: on a non-2xx status or a malformed envelope.
            aiohttp.ClientError, asyncio.TimeoutError: on transport failures.
        """
        async with self.session.get(self.proxy_request_url(url)) as resp:
            if not 200 <= resp.status < 300:
                raise FetchError(f"proxy returned HTTP {resp.status}")
            try:
                data = await resp.json(content_type=None)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise FetchError(f"malformed proxy response: {e}") from e

        if not isinstance(data, dict):
            raise FetchError("proxy response is not a JSON object")
        contents = data.get("contents")
        if not isinstance(contents, str):
            raise FetchError("proxy response has no contents")
        return contents

    async def fetch_image(self, url: str) -> bytes:
        """Download card image bytes (preview image or favicon).

        Returns empty bytes on any failure; images are decoration only.
        """
        if not url.startswith(("http://", "https://")):
            return b""
        try:
            async with self.session.get(url) as resp:
                if resp.status == 200:
                    return await resp.read()
                logger.debug(f"Image {url} returned HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Failed to fetch image {url}: {e!r}")
        return b""
