"""
Native block records and the marker assembler shared by the tokenizers.

Each dialect tokenizer only knows how to *lex* its markers (block comments,
shortcodes). Turning a flat list of markers into a tree is the same problem
for every dialect and lives here:

1. :func:`pair_markers` matches every opener with its matching closer in a
   single linear scan, tracking nesting depth per marker name, so a block
   nested inside another block of the same name closes at the right place.
2. :func:`assemble_tree` walks the marker arena by index (recursive descent)
   and builds :class:`NativeBlock` records. Markers that cannot be matched,
   or whose closer would cross the enclosing block's closer, stay in the
   surrounding text instead of aborting the parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Union

# Blocks nested deeper than this are kept as plain text in their parent.
MAX_NESTING_DEPTH = 100


class MarkerKind(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    VOID = "void"


@dataclass(frozen=True)
class Marker:
    """A block delimiter found in raw markup, with its character span."""

    kind: MarkerKind
    name: str
    start: int
    end: int
    attrs: dict[str, Any] = field(default_factory=dict)
    attrs_valid: bool = True


@dataclass(frozen=True)
class NativeBlock:
    """
    One builder-native block.

    Attributes:
        name: Namespaced block name (``core/paragraph``) or shortcode tag
        attrs: Attribute mapping parsed from the marker
        inner_blocks: Nested blocks in source order
        inner_html: Markup between the block's markers, nested blocks removed
        inner_content: HTML fragments interleaved with ``None`` placeholders,
            one placeholder per inner block
    """

    name: str
    attrs: dict[str, Any] = field(default_factory=dict)
    inner_blocks: tuple[NativeBlock, ...] = ()
    inner_html: str = ""
    inner_content: tuple[Optional[str], ...] = ()

    @property
    def short_name(self) -> str:
        """Name without the implicit ``core/`` namespace."""
        return self.name[5:] if self.name.startswith("core/") else self.name

    @property
    def is_void(self) -> bool:
        return not self.inner_blocks and not any(self.inner_content) and not self.inner_html

    def iter_inner(self) -> Iterable[Union[str, NativeBlock]]:
        """
        Yield inner HTML fragments and inner blocks in document order.

        Falls back to ``inner_html`` followed by the inner blocks when
        ``inner_content`` does not carry one placeholder per inner block.
        """
        placeholders = sum(1 for part in self.inner_content if part is None)
        if placeholders == len(self.inner_blocks) and (self.inner_content or not self.inner_html):
            children = iter(self.inner_blocks)
            for part in self.inner_content:
                if part is None:
                    yield next(children)
                elif part:
                    yield part
            return

        if self.inner_html:
            yield self.inner_html
        yield from self.inner_blocks


def pair_markers(markers: list[Marker]) -> dict[int, int]:
    """
    Match openers with closers.

    Returns:
        Mapping of opener index to the index of its matching closer.
        Openers without a closer and stray closers are absent.
    """
    pairs: dict[int, int] = {}
    # Open marker indexes per name; the list length is that name's depth
    open_by_name: dict[str, list[int]] = {}

    for index, marker in enumerate(markers):
        if marker.kind is MarkerKind.OPEN:
            open_by_name.setdefault(marker.name, []).append(index)
        elif marker.kind is MarkerKind.CLOSE:
            pending = open_by_name.get(marker.name)
            if pending:
                pairs[pending.pop()] = index

    return pairs


def unmatched_markers(markers: list[Marker]) -> tuple[list[Marker], list[Marker]]:
    """Return (openers without a closer, closers without an opener)."""
    pairs = pair_markers(markers)
    closers = set(pairs.values())
    unclosed = [m for i, m in enumerate(markers) if m.kind is MarkerKind.OPEN and i not in pairs]
    stray = [m for i, m in enumerate(markers) if m.kind is MarkerKind.CLOSE and i not in closers]
    return unclosed, stray


def assemble_tree(
    content: str,
    markers: list[Marker],
    *,
    freeform_name: str,
    unclosed_as_void: bool = False,
) -> list[NativeBlock]:
    """
    Build the block tree for ``content`` from its lexed ``markers``.

    Args:
        content: The raw markup the markers were lexed from
        markers: Markers in document order
        freeform_name: Block name given to top-level text outside any block
        unclosed_as_void: Treat openers without a matching closer as
            self-contained blocks (shortcode semantics) instead of text

    Returns:
        Top-level blocks in document order
    """
    if not content:
        return []

    assembler = _Assembler(content, markers, pair_markers(markers), unclosed_as_void)
    items = assembler.assemble(0, len(markers), 0, len(content), depth=0)

    blocks: list[NativeBlock] = []
    for item in items:
        if isinstance(item, NativeBlock):
            blocks.append(item)
        elif item.strip():
            blocks.append(NativeBlock(name=freeform_name, inner_html=item, inner_content=(item,)))
    return blocks


class _Assembler:
    """Index-based recursive descent over a marker arena."""

    def __init__(
        self,
        content: str,
        markers: list[Marker],
        pairs: dict[int, int],
        unclosed_as_void: bool,
    ):
        self.content = content
        self.markers = markers
        self.pairs = pairs
        self.unclosed_as_void = unclosed_as_void

    def assemble(
        self, lo: int, hi: int, text_start: int, text_end: int, depth: int
    ) -> list[Union[str, NativeBlock]]:
        """Assemble markers ``[lo, hi)`` covering text ``[text_start, text_end)``."""
        items: list[Union[str, NativeBlock]] = []
        cursor = text_start
        nesting_allowed = depth < MAX_NESTING_DEPTH
        index = lo

        while index < hi:
            marker = self.markers[index]
            closer = self.pairs.get(index)

            if not nesting_allowed:
                index += 1
                continue

            if marker.kind is MarkerKind.OPEN and closer is not None and closer < hi:
                self._append_text(items, cursor, marker.start)
                end_marker = self.markers[closer]
                children = self.assemble(index + 1, closer, marker.end, end_marker.start, depth + 1)
                items.append(self._make_block(marker, children))
                cursor = end_marker.end
                index = closer + 1
                continue

            is_void = marker.kind is MarkerKind.VOID or (
                marker.kind is MarkerKind.OPEN and self.unclosed_as_void
            )
            if is_void:
                self._append_text(items, cursor, marker.start)
                items.append(NativeBlock(name=marker.name, attrs=marker.attrs))
                cursor = marker.end

            # Anything else (stray closer, crossing opener) stays in the text
            index += 1

        self._append_text(items, cursor, text_end)
        return items

    def _append_text(self, items: list[Union[str, NativeBlock]], start: int, end: int) -> None:
        if end > start:
            items.append(self.content[start:end])

    @staticmethod
    def _make_block(marker: Marker, children: list[Union[str, NativeBlock]]) -> NativeBlock:
        inner_blocks = tuple(c for c in children if isinstance(c, NativeBlock))
        inner_content = tuple(None if isinstance(c, NativeBlock) else c for c in children)
        inner_html = "".join(c for c in children if isinstance(c, str))
        return NativeBlock(
            name=marker.name,
            attrs=marker.attrs,
            inner_blocks=inner_blocks,
            inner_html=inner_html,
            inner_content=inner_content,
        )


# -----------------------------------------------------------------------------
# Tree helpers
# -----------------------------------------------------------------------------


def flatten_blocks(blocks: Iterable[NativeBlock]) -> list[NativeBlock]:
    """Flatten blocks depth-first, parents before children."""
    flat: list[NativeBlock] = []
    stack = list(reversed(list(blocks)))
    while stack:
        block = stack.pop()
        flat.append(block)
        stack.extend(reversed(block.inner_blocks))
    return flat


def count_blocks(blocks: Iterable[NativeBlock]) -> int:
    return len(flatten_blocks(blocks))


def get_block_types(blocks: Iterable[NativeBlock]) -> list[str]:
    """Sorted unique block names used anywhere in the tree."""
    return sorted({block.name for block in flatten_blocks(blocks)})


def is_reusable_block(block: NativeBlock) -> bool:
    """Check for a reusable block reference (``core/block`` with a ``ref``)."""
    ref = block.attrs.get("ref")
    return block.name == "core/block" and isinstance(ref, int) and not isinstance(ref, bool)


def get_reusable_block_ref(block: NativeBlock) -> Optional[int]:
    if is_reusable_block(block):
        return int(block.attrs["ref"])
    return None
