"""Pattern-based extraction of preview metadata from raw HTML.

The page is never parsed into a tree. Tags are located with regular
expressions, which keeps extraction tolerant of broken markup at the cost of
occasionally misreading unusual attribute layouts.
"""

import html as html_mod
import logging
import re
from urllib.parse import urljoin, urlparse

from .models import DEFAULT_FAVICON_SERVICE, PreviewRecord, favicon_url, hostname_of

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title\b[^>]*>([^<]*)</title>", re.IGNORECASE)
_META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_ATTR_TEMPLATE = r"""(?<![\w-]){name}\s*=\s*(["'])(.*?)\1"""


def _attr(tag: str, name: str) -> str | None:
    """Get the value of attribute ``name`` from a single tag, if present."""
    match = re.search(_ATTR_TEMPLATE.format(name=re.escape(name)), tag, re.IGNORECASE | re.DOTALL)
    return match.group(2) if match else None


def _meta_content(html: str, key: str, value: str) -> str | None:
    """Get the content of the first <meta key="value" content="..."> in document order."""
    for match in _META_TAG_RE.finditer(html):
        tag = match.group(0)
        found = _attr(tag, key)
        if found is None or found.strip().lower() != value:
            continue
        content = _attr(tag, "content")
        if content is not None:
            return content
    return None


def _clean_text(text: str | None) -> str:
    """Unescape entities and collapse whitespace."""
    if not text:
        return ""
    return " ".join(html_mod.unescape(text).split())


def _absolute_image(image: str | None, source_url: str) -> str | None:
    """Resolve an image reference against the page URL.

    Returns None when the reference cannot be turned into an http(s) URL.
    """
    if not image:
        return None
    image = html_mod.unescape(image.strip())
    if not image:
        return None
    if not image.startswith("http"):
        try:
            image = urljoin(source_url, image)
        except ValueError as e:
            logger.debug(f"Malformed image reference {image!r} on {source_url}: {e}")
            return None
    try:
        parsed = urlparse(image)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return image


def extract(
    html: str,
    source_url: str,
    favicon_service: str = DEFAULT_FAVICON_SERVICE,
) -> PreviewRecord:
    """Build a PreviewRecord from the raw HTML of ``source_url``.

    Never raises; every field of the returned record is populated.
    """
    html = html or ""

    title_match = _TITLE_RE.search(html)
    title = _clean_text(title_match.group(1)) if title_match else ""
    if not title:
        title = _clean_text(_meta_content(html, "property", "og:title"))
    if not title:
        title = hostname_of(source_url)

    description = _meta_content(html, "name", "description")
    if description is None:
        description = _meta_content(html, "property", "og:description")

    image = _meta_content(html, "property", "og:image")
    if image is None:
        image = _meta_content(html, "name", "twitter:image")

    return PreviewRecord(
        url=source_url,
        title=title,
        description=_clean_text(description),
        image=_absolute_image(image, source_url),
        favicon=favicon_url(source_url, favicon_service),
    )
