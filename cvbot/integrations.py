"""cvbot/integrations.py

Live integrations folded into the system prompt: favorite playlists, the
owner's latest thought and recent blog articles pulled from an RSS/Atom
feed. Feed failures never fail a chat request; they just drop the section.
"""

from __future__ import annotations

# Standard Library
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# Third-Party Libraries
import feedparser
import httpx
from bs4 import BeautifulSoup

# Local Modules
from cvbot.models import BotConfig

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 5.0
FEED_LIMIT = 5
USER_AGENT = "Interactive-CV-Bot/1.0"
FEED_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
}

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(slots=True)
class Article:
    title: str
    link: str
    date: str
    description: str = ""


def format_date(parsed: time.struct_time | None, raw: str = "") -> str:
    """Render a feed date as ``Jan 5, 2024``, falling back to the raw text."""
    if parsed is None:
        return raw
    return f"{_MONTHS[parsed.tm_mon - 1]} {parsed.tm_mday}, {parsed.tm_year}"


def _excerpt(html: str, max_chars: int = 150) -> str:
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(separator=" ").strip()
    return text[:max_chars] + "..." if len(text) > max_chars else text


def _to_article(entry: Any) -> Article:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    raw = entry.get("published") or entry.get("updated") or ""
    return Article(
        title=(entry.get("title") or "").strip() or "Untitled",
        link=(entry.get("link") or "").strip(),
        date=format_date(parsed, raw),
        description=_excerpt(entry.get("summary", "")),
    )


def _read_with_deadline(
    client: httpx.Client, url: str, deadline: float, clock: Callable[[], float]
) -> bytes:
    chunks: list[bytes] = []
    with client.stream("GET", url) as response:
        response.raise_for_status()
        for chunk in response.iter_bytes():
            if clock() > deadline:
                raise httpx.ReadTimeout("Feed fetch exceeded its deadline", request=response.request)
            chunks.append(chunk)
    return b"".join(chunks)


def fetch_feed(
    url: str,
    limit: int = FEED_LIMIT,
    *,
    timeout: float = FEED_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[Article]:
    """Fetch and parse a blog feed.

    Args:
        url: RSS or Atom feed URL.
        limit: Maximum number of entries, in feed order.
        timeout: Budget in seconds for the whole fetch, body included.
        transport: Optional httpx transport (tests).
        clock: Monotonic time source for the overall deadline.

    Returns:
        Up to ``limit`` articles; empty on any network, HTTP or parse error.
    """
    if not url:
        return []

    logger.debug("Fetching RSS feed %s", url)
    try:
        with httpx.Client(
            timeout=timeout, headers=FEED_HEADERS, follow_redirects=True, transport=transport
        ) as client:
            content = _read_with_deadline(client, url, clock() + timeout, clock)
    except httpx.HTTPError as exc:
        logger.warning(
            "Failed to fetch RSS feed: %s",
            exc,
            extra={"context": {"url": url, "error": str(exc)}},
        )
        return []

    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries:
        logger.warning(
            "Failed to parse RSS feed: %s",
            parsed.get("bozo_exception"),
            extra={"context": {"url": url}},
        )
        return []

    articles = [_to_article(entry) for entry in parsed.entries[:limit]]
    logger.debug("RSS feed parsed: %d articles", len(articles))
    return articles


class IntegrationsAggregator:
    """Renders enabled integrations into prompt text."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def build_context(self, config: BotConfig) -> str:
        """Build the integrations text for ``config``.

        Sections appear in a fixed order (playlists, latest thought, blog)
        and only when enabled and non-empty.

        Args:
            config: Current bot configuration.

        Returns:
            The rendered sections, or an empty string.
        """
        integrations = config.integrations
        sections: list[str] = []

        playlists = integrations.playlists
        if playlists.enabled and playlists.items:
            listing = "\n".join(
                f'- "{item.name}" - {item.platform or "Music"}: {item.url}'
                for item in playlists.items
            )
            sections.append(
                "## Favorite Playlists\n"
                "The profile owner enjoys these music playlists:\n"
                f"{listing}\n"
                "When asked about music, share these playlists!"
            )

        thought = integrations.twitter
        if thought.enabled and thought.latest_tweet:
            lines = [
                "## Latest Tweet/Thought",
                "The profile owner recently shared this thought:",
                f'"{thought.latest_tweet}"',
            ]
            if thought.tweet_date:
                lines.append(f"(Shared on {thought.tweet_date})")
            if thought.username:
                lines.append(f"Twitter/X: @{thought.username.lstrip('@')}")
            sections.append("\n".join(lines))

        blog = integrations.blog
        if blog.enabled and blog.rss_url:
            articles = fetch_feed(blog.rss_url, FEED_LIMIT, transport=self._transport)
            if articles:
                listing = "\n".join(
                    f'- "{article.title}" ({article.date}): {article.link}'
                    for article in articles
                )
                source = f" on {blog.blog_name}" if blog.blog_name else ""
                sections.append(
                    "## Recent Blog Articles\n"
                    f"The profile owner has written these articles recently{source}:\n"
                    f"{listing}\n"
                    "When asked about articles or blog posts, share these!"
                )

        return "\n\n".join(sections)


def build_context(config: BotConfig) -> str:
    return IntegrationsAggregator().build_context(config)
