"""
Block-comment (Gutenberg) tokenizer and serializer.

Markup format::

    <!-- wp:heading {"level":2} -->
    <h2>Title</h2>
    <!-- /wp:heading -->

    <!-- wp:separator {"className":"is-style-wide"} /-->

Names without a namespace belong to ``core/``.
"""

import json
import logging
import re
from typing import Any, Iterable, Optional

from .native import Marker, MarkerKind, NativeBlock, assemble_tree

logger = logging.getLogger(__name__)

FREEFORM_BLOCK_NAME = "core/freeform"

# Attribute JSON cannot contain "-->"; WordPress escapes "--" when saving.
_MARKER_PATTERN = re.compile(
    r"<!--\s+(?P<closer>/)?wp:"
    r"(?P<name>[a-z][a-z0-9_-]*(?:/[a-z][a-z0-9_-]*)?)\s+"
    r"(?P<attrs>\{(?:[^-]|-(?!->))*?\}\s+)?"
    r"(?P<void>/)?-->",
    re.DOTALL,
)

_ATTR_ESCAPES = (
    ("--", "\\u002d\\u002d"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
)


def normalize_block_name(name: str) -> str:
    """Add the implicit ``core/`` namespace."""
    return name if "/" in name else f"core/{name}"


def _parse_attrs(raw: Optional[str]) -> tuple[dict[str, Any], bool]:
    if not raw:
        return {}, True
    try:
        attrs = json.loads(raw)
    except ValueError:
        return {}, False
    if not isinstance(attrs, dict):
        return {}, False
    return attrs, True


def lex(content: str) -> list[Marker]:
    """Find every block marker in ``content``."""
    markers: list[Marker] = []
    for match in _MARKER_PATTERN.finditer(content):
        if match.group("closer"):
            kind = MarkerKind.CLOSE
        elif match.group("void"):
            kind = MarkerKind.VOID
        else:
            kind = MarkerKind.OPEN

        attrs, valid = _parse_attrs(match.group("attrs"))
        if not valid:
            logger.debug(f"Invalid attribute JSON at offset {match.start()}")

        markers.append(
            Marker(
                kind=kind,
                name=normalize_block_name(match.group("name")),
                start=match.start(),
                end=match.end(),
                attrs=attrs,
                attrs_valid=valid,
            )
        )
    return markers


def tokenize(content: str) -> list[NativeBlock]:
    """
    Parse block-comment markup into a block tree.

    Never raises on malformed markup: unmatched or crossing markers are kept
    as text, and top-level text becomes ``core/freeform`` blocks.

    Args:
        content: Raw post content

    Returns:
        Top-level blocks in document order
    """
    if not content or not isinstance(content, str):
        return []
    return assemble_tree(content, lex(content), freeform_name=FREEFORM_BLOCK_NAME)


def has_blocks(content: str) -> bool:
    """Check if content contains at least one block marker."""
    return bool(content) and _MARKER_PATTERN.search(content) is not None


def count_openers(content: str) -> int:
    """Count opening and self-closing block markers."""
    if not content:
        return 0
    return sum(1 for m in _MARKER_PATTERN.finditer(content) if not m.group("closer"))


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------


def serialize_attrs(attrs: dict[str, Any]) -> str:
    """Deterministic attribute JSON that is safe inside an HTML comment."""
    text = json.dumps(attrs, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for needle, replacement in _ATTR_ESCAPES:
        text = text.replace(needle, replacement)
    return text


def serialize_block(block: NativeBlock) -> str:
    if block.name == FREEFORM_BLOCK_NAME:
        return block.inner_html

    name = block.short_name
    attrs = f" {serialize_attrs(block.attrs)}" if block.attrs else ""
    if block.is_void:
        return f"<!-- wp:{name}{attrs} /-->"

    inner = "".join(
        part if isinstance(part, str) else serialize_block(part) for part in block.iter_inner()
    )
    return f"<!-- wp:{name}{attrs} -->{inner}<!-- /wp:{name} -->"


def serialize_blocks(blocks: Iterable[NativeBlock]) -> str:
    """Serialize top-level blocks, separated by blank lines."""
    return "\n\n".join(serialize_block(block) for block in blocks)
