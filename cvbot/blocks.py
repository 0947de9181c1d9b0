"""cvbot/blocks.py

Structured content blocks: typed JSON payloads embedded in chat text as a
fenced ```json block, e.g.::

    ```json
    {"type": "projects", "items": [{"title": "X", "link": "https://..."}]}
    ```

The producer is usually the language model, which is not a reliable JSON
emitter, so decoding is tolerant: a sanitized parse (trailing commas and
control characters removed) is tried first, then the raw text, and a failure
is reported as a value rather than raised.
"""

from __future__ import annotations

# Standard Library
import json
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

# Local Modules
from cvbot.models import BlockType

BLOCK_TYPES: frozenset[str] = frozenset(member.value for member in BlockType)

_FENCE_START = re.compile(r"^```\w*\n?")
_FENCE_END = re.compile(r"\n?```$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS = re.compile(r"[\u0000-\u0019]+")
_FENCED_BLOCK = re.compile(r"```(\w*)[ \t]*\n(.*?)\n?```", re.DOTALL)


@dataclass(slots=True)
class DecodedBlock:
    """Result of decoding a block payload.

    Exactly one of ``items`` (with ``type``) or ``error`` is meaningful.
    """

    type: str = ""
    items: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def render_block(block_type: str | BlockType, items: list[dict[str, Any]]) -> str:
    """Render a structured content block as a fenced JSON code block."""
    payload = {"type": str(block_type), "items": items}
    return "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"


def strip_fence(content: str) -> str:
    clean = content.removesuffix("\n")
    clean = _FENCE_START.sub("", clean)
    clean = _FENCE_END.sub("", clean)
    return clean.strip()


def sanitize_payload(text: str) -> str:
    """Drop trailing commas before closing brackets and strip control chars."""
    return _CONTROL_CHARS.sub("", _TRAILING_COMMA.sub(r"\1", text))


def decode_block(content: str | None) -> DecodedBlock | None:
    """Decode a code-block payload into a structured block.

    Args:
        content: Body of a code block, with or without its fences.

    Returns:
        ``None`` when the content does not look like a block (render it as
        ordinary code), a :class:`DecodedBlock` with items on success, or a
        :class:`DecodedBlock` carrying ``error`` when it looked like a block
        but could not be parsed.
    """
    if not content:
        return None

    clean = strip_fence(content)
    if not clean.startswith("{") and '"items"' not in clean:
        return None

    try:
        data = json.loads(sanitize_payload(clean))
    except json.JSONDecodeError as exc:
        sanitized_error = str(exc)
    else:
        if (
            isinstance(data, dict)
            and isinstance(data.get("items"), list)
            and data.get("type") in BLOCK_TYPES
        ):
            return DecodedBlock(type=data["type"], items=_dict_items(data["items"]))
        return None

    try:
        data = json.loads(clean)
    except json.JSONDecodeError:
        return DecodedBlock(error=sanitized_error)
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return DecodedBlock(type=str(data.get("type", "")), items=_dict_items(data["items"]))
    return None


def _dict_items(items: list[Any]) -> list[dict[str, Any]]:
    return [item for item in items if isinstance(item, dict)]


@dataclass(slots=True)
class Segment:
    """A run of plain text or a fenced code block within a response."""

    text: str
    is_code: bool = False
    language: str = ""


def split_blocks(text: str) -> Iterator[Segment]:
    """Split a response into plain text and fenced code segments, in order."""
    position = 0
    for match in _FENCED_BLOCK.finditer(text):
        if match.start() > position:
            yield Segment(text[position : match.start()])
        yield Segment(match.group(2), is_code=True, language=match.group(1))
        position = match.end()
    if position < len(text):
        yield Segment(text[position:])


def _item_markdown(item: dict[str, Any]) -> str:
    title = str(item.get("title") or item.get("name") or "Untitled")
    link = item.get("link") or item.get("url")
    lines = [f"**[{title}]({link})**" if link else f"**{title}**"]
    if item.get("subtitle"):
        lines.append(f"_{item['subtitle']}_")
    if item.get("description"):
        lines.append(str(item["description"]))
    tags = item.get("tags") or item.get("technologies") or []
    if isinstance(tags, list) and tags:
        lines.append(" ".join(f"`{tag}`" for tag in tags))
    return "\n".join(f"> {line}" for line in lines)


def render_markdown(text: str) -> str:
    """Turn decodable blocks into markdown cards, leaving everything else as is.

    Used by the web page and the CLI, which render markdown but have no
    carousel widget. Blocks that fail to decode are left as the original
    code block so nothing is lost.
    """
    parts: list[str] = []
    for segment in split_blocks(text):
        if not segment.is_code:
            parts.append(segment.text)
            continue
        decoded = decode_block(segment.text)
        if decoded is None or not decoded.ok:
            parts.append(f"```{segment.language}\n{segment.text}\n```")
            continue
        heading = f"#### {decoded.type.title()}" if decoded.type else ""
        cards = "\n\n".join(_item_markdown(item) for item in decoded.items)
        parts.append("\n\n".join(part for part in (heading, cards) if part))
    return "".join(parts)
