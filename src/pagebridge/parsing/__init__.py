"""Native markup tokenizers and serializers."""

from . import block_comments, shortcodes
from .html import Fragment, parse_style, style_variant, unwrap_paragraph
from .native import (
    MAX_NESTING_DEPTH,
    Marker,
    MarkerKind,
    NativeBlock,
    assemble_tree,
    count_blocks,
    flatten_blocks,
    get_block_types,
    get_reusable_block_ref,
    is_reusable_block,
    pair_markers,
    unmatched_markers,
)

__all__ = [
    "MAX_NESTING_DEPTH",
    "Fragment",
    "Marker",
    "MarkerKind",
    "NativeBlock",
    "assemble_tree",
    "block_comments",
    "count_blocks",
    "flatten_blocks",
    "get_block_types",
    "get_reusable_block_ref",
    "is_reusable_block",
    "pair_markers",
    "parse_style",
    "shortcodes",
    "style_variant",
    "unmatched_markers",
    "unwrap_paragraph",
]
