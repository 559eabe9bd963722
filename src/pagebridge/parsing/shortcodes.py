"""
WordPress shortcode tokenizer and serializer (WPBakery dialect).

Markup format::

    [vc_row][vc_column width="1/2"][vc_column_text]<p>Hi</p>[/vc_column_text][/vc_column][/vc_row]

Shortcodes share the block-comment tree assembler. Unlike block comments, an
opening tag without a closer is a complete shortcode (``[vc_separator]``),
and ``[[tag]]`` is an escaped literal.
"""

import re
from typing import Any, Iterable, Optional

from .native import Marker, MarkerKind, NativeBlock, assemble_tree

TEXT_BLOCK_NAME = "#text"

_SHORTCODE_PATTERN = re.compile(
    r"\[(?P<escape_open>\[?)"
    r"(?P<closer>/)?"
    r"(?P<tag>[\w-]+)(?![\w-])"
    r"(?P<attrs>[^\]/]*(?:/(?!\])[^\]/]*)*?)"
    r"(?P<void>/)?\]"
    r"(?P<escape_close>\]?)"
)

# Port of WordPress shortcode_parse_atts()
_ATTR_PATTERN = re.compile(
    r'([\w-]+)\s*=\s*"([^"]*)"(?:\s|$)'
    r"|([\w-]+)\s*=\s*'([^']*)'(?:\s|$)"
    r'|([\w-]+)\s*=\s*([^\s\'"]+)(?:\s|$)'
    r'|"([^"]*)"(?:\s|$)'
    r"|'([^']*)'(?:\s|$)"
    r"|(\S+)(?:\s|$)"
)

# Bare positional values cannot contain these without being misread
_NEEDS_QUOTES = re.compile(r"[\s\"'=/]")


def parse_attributes(text: str) -> dict[str, str]:
    """
    Parse a shortcode attribute string.

    Named attributes are lower-cased; positional values are keyed by their
    position ("0", "1", ...).
    """
    attrs: dict[str, str] = {}
    position = 0
    for match in _ATTR_PATTERN.finditer(text.replace("\u00a0", " ")):
        groups = match.groups()
        for name_index in (0, 2, 4):
            if groups[name_index]:
                attrs[groups[name_index].lower()] = groups[name_index + 1]
                break
        else:
            value = next(g for g in groups[6:] if g is not None)
            attrs[str(position)] = value
            position += 1
    return attrs


def _accepts(tag: str, prefixes: Optional[tuple[str, ...]]) -> bool:
    return prefixes is None or tag.startswith(prefixes)


def lex(content: str, prefixes: Optional[tuple[str, ...]] = None) -> list[Marker]:
    """
    Find shortcode markers in ``content``.

    Args:
        content: Raw content
        prefixes: Only tags starting with one of these count as shortcodes;
            everything else stays text
    """
    markers: list[Marker] = []
    for match in _SHORTCODE_PATTERN.finditer(content):
        tag = match.group("tag")
        if match.group("escape_open") and match.group("escape_close"):
            continue
        if not _accepts(tag, prefixes):
            continue

        # An unmatched "[" belongs to the surrounding text
        start = match.start() + len(match.group("escape_open"))
        end = match.end() - len(match.group("escape_close"))

        if match.group("closer"):
            markers.append(Marker(kind=MarkerKind.CLOSE, name=tag, start=start, end=end))
            continue

        kind = MarkerKind.VOID if match.group("void") else MarkerKind.OPEN
        attrs = parse_attributes(match.group("attrs") or "")
        markers.append(Marker(kind=kind, name=tag, start=start, end=end, attrs=attrs))
    return markers


def tokenize(content: str, prefixes: Optional[tuple[str, ...]] = None) -> list[NativeBlock]:
    """
    Parse shortcode markup into a block tree.

    Top-level text outside any shortcode becomes ``#text`` blocks.
    """
    if not content or not isinstance(content, str):
        return []
    markers = lex(content, prefixes)
    return assemble_tree(content, markers, freeform_name=TEXT_BLOCK_NAME, unclosed_as_void=True)


def count_shortcodes(content: str, prefixes: Optional[tuple[str, ...]] = None) -> int:
    """Count opening and self-closing shortcodes."""
    if not content:
        return 0
    return sum(1 for m in lex(content, prefixes) if m.kind is not MarkerKind.CLOSE)


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return str(value).replace('"', "&quot;").replace("[", "&#91;").replace("]", "&#93;")


def _format_positional(value: Any) -> str:
    text = _format_value(value)
    if not text or _NEEDS_QUOTES.search(text):
        return f'"{text}"'
    return text


def serialize_attributes(attrs: dict[str, Any]) -> str:
    """
    Render attributes: positional values first, in position order, then
    named attributes in sorted key order.
    """
    positional = sorted((key for key in attrs if key.isdigit()), key=int)
    named = sorted(key for key in attrs if not key.isdigit())
    parts = [f" {_format_positional(attrs[key])}" for key in positional]
    parts.extend(f' {key}="{_format_value(attrs[key])}"' for key in named)
    return "".join(parts)


def serialize_block(block: NativeBlock) -> str:
    if block.name == TEXT_BLOCK_NAME:
        return block.inner_html

    opener = f"[{block.name}{serialize_attributes(block.attrs)}]"
    if block.is_void:
        return opener

    inner = "".join(
        part if isinstance(part, str) else serialize_block(part) for part in block.iter_inner()
    )
    return f"{opener}{inner}[/{block.name}]"


def serialize_blocks(blocks: Iterable[NativeBlock]) -> str:
    return "".join(serialize_block(block) for block in blocks)
