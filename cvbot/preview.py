"""cvbot/preview.py

Open Graph metadata lookup for link cards shown under chat messages.
"""

from __future__ import annotations

# Standard Library
import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

# Third-Party Libraries
import httpx
from bs4 import BeautifulSoup

# Local Modules
from cvbot.errors import ChatbotError
from cvbot.store import TTLCache

logger = logging.getLogger(__name__)

PREVIEW_TIMEOUT = 5.0
PREVIEW_CACHE_SECONDS = 60 * 60
PREVIEW_USER_AGENT = "Interactive-CV-Bot/1.0"


class PreviewError(ChatbotError):
    """The target page could not be fetched."""


class InvalidPreviewURL(ChatbotError):
    """The URL is missing or not http(s)."""


def _meta(soup: BeautifulSoup, key: str) -> str | None:
    tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if tag is None:
        return None
    content = tag.get("content")
    return content.strip() if isinstance(content, str) and content.strip() else None


def extract_metadata(url: str, html: str) -> dict[str, Any]:
    """Pull title, description and image out of a page's meta tags.

    Args:
        url: Page URL, echoed back along with its bare domain.
        html: Page markup.

    Returns:
        ``{url, domain, title, description, image}``; missing values are None.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = _meta(soup, "og:title") or _meta(soup, "twitter:title")
    if title is None and soup.title is not None and soup.title.string:
        title = soup.title.string.strip() or None
    return {
        "url": url,
        "domain": (urlparse(url).hostname or "").replace("www.", "", 1),
        "title": title,
        "description": _meta(soup, "og:description")
        or _meta(soup, "description")
        or _meta(soup, "twitter:description"),
        "image": _meta(soup, "og:image") or _meta(soup, "twitter:image"),
    }


class LinkPreviewer:
    """Fetches and caches link previews."""

    def __init__(
        self,
        *,
        timeout: float = PREVIEW_TIMEOUT,
        cache_ttl: float = PREVIEW_CACHE_SECONDS,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._cache = TTLCache(cache_ttl, clock)

    def preview(self, url: str | None) -> dict[str, Any]:
        """Return metadata for ``url``.

        Raises:
            InvalidPreviewURL: Missing URL or a non-http(s) scheme.
            PreviewError: The page could not be fetched.
        """
        if not url:
            raise InvalidPreviewURL("URL is required")

        cached = self._cache.get(url)
        if cached is not None:
            return cached

        if urlparse(url).scheme not in ("http", "https"):
            raise InvalidPreviewURL("Invalid URL protocol")

        try:
            with httpx.Client(
                timeout=self.timeout,
                headers={"User-Agent": PREVIEW_USER_AGENT},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "Link preview fetch failed: %s",
                exc,
                extra={"context": {"url": url, "error": str(exc)}},
            )
            raise PreviewError("Failed to fetch preview") from exc

        metadata = extract_metadata(url, response.text)
        self._cache.set(url, metadata)
        return metadata
