"""tests/test_preview.py

Unit tests for link previews (cvbot/preview.py).
"""

from __future__ import annotations

# Third-Party Libraries
import httpx
import pytest

# Local Modules
from cvbot.preview import InvalidPreviewURL, LinkPreviewer, PreviewError, extract_metadata

PAGE = """<html><head>
<title>Fallback Title</title>
<meta property="og:title" content="OG Title">
<meta name="description" content="Plain description">
<meta name="twitter:image" content="https://img.test/card.png">
</head><body></body></html>"""


class TestExtractMetadata:
    """Meta tag lookup order."""

    def test_prefers_open_graph(self) -> None:
        """Test og:title wins and description/image fall back in order."""
        meta = extract_metadata("https://www.example.com/post", PAGE)
        assert meta == {
            "url": "https://www.example.com/post",
            "domain": "example.com",
            "title": "OG Title",
            "description": "Plain description",
            "image": "https://img.test/card.png",
        }

    def test_title_tag_fallback(self) -> None:
        """Test <title> is used when no meta title exists."""
        meta = extract_metadata("https://x.test", "<html><head><title> Only </title></head></html>")
        assert meta["title"] == "Only"
        assert meta["description"] is None
        assert meta["image"] is None


class TestLinkPreviewer:
    """Fetching and caching."""

    def test_fetch_and_cache(self) -> None:
        """Test a second lookup is served from the cache."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(200, text=PAGE)

        previewer = LinkPreviewer(transport=httpx.MockTransport(handler))
        first = previewer.preview("https://example.com/a")
        second = previewer.preview("https://example.com/a")

        assert first == second
        assert first["title"] == "OG Title"
        assert len(calls) == 1

    @pytest.mark.parametrize("url", [None, "", "ftp://example.com", "javascript:alert(1)"])
    def test_invalid_urls(self, url: str | None) -> None:
        """Test missing or non-http URLs are refused."""
        with pytest.raises(InvalidPreviewURL):
            LinkPreviewer().preview(url)

    def test_fetch_failure(self) -> None:
        """Test HTTP failures raise PreviewError."""
        previewer = LinkPreviewer(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with pytest.raises(PreviewError):
            previewer.preview("https://example.com/missing")
