"""tests/test_blocks.py

Unit tests for structured content blocks (cvbot/blocks.py).
"""

from __future__ import annotations

# Local Modules
from cvbot.blocks import decode_block, render_block, render_markdown, split_blocks
from cvbot.models import BlockType, StructuredContentBlock


class TestDecodeBlock:
    """Tolerant decoding of model-emitted blocks."""

    def test_valid_block(self) -> None:
        """Test a well-formed projects block decodes to one item."""
        decoded = decode_block('{"type": "projects", "items": [{"title": "X"}]}')
        assert decoded is not None and decoded.ok
        assert decoded.type == "projects"
        assert decoded.items == [{"title": "X"}]

    def test_fenced_block(self) -> None:
        """Test fences are stripped before parsing."""
        decoded = decode_block('```json\n{"type": "education", "items": []}\n```')
        assert decoded is not None and decoded.ok
        assert decoded.type == "education"

    def test_trailing_comma_is_repaired(self) -> None:
        """Test a trailing comma before ] still parses."""
        decoded = decode_block('{"type": "projects", "items": [{"title": "X"},]}')
        assert decoded is not None and decoded.ok
        assert len(decoded.items) == 1

    def test_control_characters_removed(self) -> None:
        """Test raw newlines inside strings do not break parsing."""
        decoded = decode_block('{"type": "articles", "items": [{"title": "A\nB"}]}')
        assert decoded is not None and decoded.ok
        assert decoded.items[0]["title"] == "AB"

    def test_unbalanced_braces_return_error(self) -> None:
        """Test malformed JSON yields an error result instead of raising."""
        decoded = decode_block('{"type": "projects", "items": [{"title": "X"}')
        assert decoded is not None
        assert not decoded.ok
        assert decoded.error

    def test_plain_code_is_not_a_block(self) -> None:
        """Test ordinary code is left for normal rendering."""
        assert decode_block("print('hello')") is None
        assert decode_block("") is None
        assert decode_block(None) is None

    def test_unknown_type_is_not_a_block(self) -> None:
        """Test a parsed object with an unknown type is treated as code."""
        assert decode_block('{"type": "recipes", "items": []}') is None

    def test_non_dict_items_dropped(self) -> None:
        """Test stray scalars in items are ignored."""
        decoded = decode_block('{"type": "projects", "items": [{"title": "X"}, 3, "y"]}')
        assert decoded is not None
        assert decoded.items == [{"title": "X"}]


class TestRendering:
    """Block rendering and markdown conversion."""

    def test_render_block_round_trip_shape(self) -> None:
        """Test the rendered block validates against the block model."""
        text = render_block(BlockType.EXPERIENCE, [{"title": "Lead", "subtitle": "Engine Co"}])
        decoded = decode_block(text)
        assert decoded is not None and decoded.ok
        block = StructuredContentBlock.model_validate({"type": decoded.type, "items": decoded.items})
        assert block.type is BlockType.EXPERIENCE
        assert block.items[0].subtitle == "Engine Co"

    def test_split_blocks_preserves_order(self) -> None:
        """Test text and code segments come back in order."""
        segments = list(split_blocks("Intro\n```json\n{}\n```\nOutro"))
        assert [s.is_code for s in segments] == [False, True, False]
        assert segments[1].language == "json"

    def test_render_markdown_cards(self) -> None:
        """Test decodable blocks become markdown cards."""
        text = 'Here:\n```json\n{"type": "projects", "items": [{"title": "X", "link": "https://x.dev", "tags": ["py"]}]}\n```'
        rendered = render_markdown(text)
        assert "#### Projects" in rendered
        assert "> **[X](https://x.dev)**" in rendered
        assert "`py`" in rendered
        assert "```" not in rendered

    def test_render_markdown_keeps_broken_blocks(self) -> None:
        """Test undecodable blocks are kept as code."""
        text = '```json\n{"items": [\n```'
        assert render_markdown(text) == text
