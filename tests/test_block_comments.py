"""Tests for the block-comment tokenizer and serializer."""

import json

from pagebridge.parsing import block_comments
from pagebridge.parsing.block_comments import FREEFORM_BLOCK_NAME
from pagebridge.parsing.html import parse_style
from pagebridge.parsing.native import (
    MarkerKind,
    count_blocks,
    flatten_blocks,
    get_block_types,
    get_reusable_block_ref,
    is_reusable_block,
    unmatched_markers,
)


class TestLex:
    """Tests for marker lexing."""

    def test_finds_open_close_and_void_markers(self):
        """Test that every marker kind is recognized."""
        content = (
            '<!-- wp:heading {"level":2} -->\n<h2>Hi</h2>\n<!-- /wp:heading -->\n\n'
            "<!-- wp:separator /-->"
        )
        markers = block_comments.lex(content)

        assert [m.kind for m in markers] == [MarkerKind.OPEN, MarkerKind.CLOSE, MarkerKind.VOID]
        assert markers[0].attrs == {"level": 2}

    def test_adds_core_namespace(self):
        """Test that names without a namespace belong to core."""
        markers = block_comments.lex("<!-- wp:paragraph --><p>x</p><!-- /wp:paragraph -->")
        assert markers[0].name == "core/paragraph"

    def test_keeps_plugin_namespace(self):
        """Test that namespaced names are kept."""
        markers = block_comments.lex('<!-- wp:acme/slider {"speed":3} /-->')
        assert markers[0].name == "acme/slider"
        assert markers[0].attrs == {"speed": 3}

    def test_invalid_attribute_json(self):
        """Test that broken attribute JSON is flagged, not raised."""
        markers = block_comments.lex('<!-- wp:paragraph {"a": } -->x<!-- /wp:paragraph -->')
        assert markers[0].attrs == {}
        assert markers[0].attrs_valid is False

    def test_ignores_ordinary_comments(self):
        """Test that plain HTML comments are not markers."""
        assert block_comments.lex("<!-- just a comment --><p>x</p>") == []


class TestTokenize:
    """Tests for building the block tree."""

    def test_single_block(self):
        """Test tokenizing one block with inner markup."""
        blocks = block_comments.tokenize("<!-- wp:paragraph -->\n<p>Hi</p>\n<!-- /wp:paragraph -->")

        assert len(blocks) == 1
        assert blocks[0].name == "core/paragraph"
        assert blocks[0].inner_html == "\n<p>Hi</p>\n"
        assert blocks[0].inner_blocks == ()

    def test_nested_blocks(self):
        """Test that inner blocks are nested with placeholders."""
        content = (
            '<!-- wp:columns --><div class="wp-block-columns">'
            "<!-- wp:column --><p>a</p><!-- /wp:column -->"
            "</div><!-- /wp:columns -->"
        )
        blocks = block_comments.tokenize(content)

        assert len(blocks) == 1
        columns = blocks[0]
        assert columns.name == "core/columns"
        assert [b.name for b in columns.inner_blocks] == ["core/column"]
        assert columns.inner_content == ('<div class="wp-block-columns">', None, "</div>")
        assert columns.inner_html == '<div class="wp-block-columns"></div>'

    def test_same_name_nesting(self):
        """Test that a group inside a group closes at the right marker."""
        content = (
            "<!-- wp:group --><div>"
            "<!-- wp:group --><div>inner</div><!-- /wp:group -->"
            "</div><!-- /wp:group -->"
        )
        blocks = block_comments.tokenize(content)

        assert len(blocks) == 1
        assert len(blocks[0].inner_blocks) == 1
        assert blocks[0].inner_blocks[0].inner_html == "<div>inner</div>"

    def test_void_block(self):
        """Test that self-closing blocks have no inner content."""
        blocks = block_comments.tokenize('<!-- wp:spacer {"height":"40px"} /-->')
        assert blocks[0].attrs == {"height": "40px"}
        assert blocks[0].is_void

    def test_top_level_text_becomes_freeform(self):
        """Test that loose text is kept as a freeform block."""
        content = "<p>Intro</p>\n\n<!-- wp:separator /-->"
        blocks = block_comments.tokenize(content)

        assert [b.name for b in blocks] == [FREEFORM_BLOCK_NAME, "core/separator"]
        assert blocks[0].inner_html == "<p>Intro</p>\n\n"

    def test_whitespace_between_blocks_is_dropped(self):
        """Test that blank lines between blocks do not create blocks."""
        content = "<!-- wp:separator /-->\n\n<!-- wp:separator /-->"
        assert len(block_comments.tokenize(content)) == 2

    def test_unclosed_block_stays_text(self):
        """Test that an opener without a closer is kept as text."""
        content = "<!-- wp:group --><p>x</p>"
        blocks = block_comments.tokenize(content)

        assert len(blocks) == 1
        assert blocks[0].name == FREEFORM_BLOCK_NAME
        assert blocks[0].inner_html == content

    def test_stray_closer_stays_text(self):
        """Test that a closer without an opener is kept as text."""
        content = "<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph --><!-- /wp:group -->"
        blocks = block_comments.tokenize(content)

        assert blocks[0].name == "core/paragraph"
        assert blocks[1].name == FREEFORM_BLOCK_NAME
        assert blocks[1].inner_html == "<!-- /wp:group -->"

    def test_empty_content(self):
        """Test tokenizing empty content."""
        assert block_comments.tokenize("") == []

    def test_has_blocks_and_count(self):
        """Test block presence helpers."""
        content = "<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph --><!-- wp:separator /-->"
        assert block_comments.has_blocks(content)
        assert not block_comments.has_blocks("<p>plain</p>")
        assert block_comments.count_openers(content) == 2


class TestUnmatchedMarkers:
    """Tests for marker pairing diagnostics."""

    def test_reports_unclosed_and_stray(self):
        """Test that unmatched markers are split into unclosed and stray."""
        markers = block_comments.lex("<!-- wp:group --><!-- /wp:paragraph -->")
        unclosed, stray = unmatched_markers(markers)

        assert [m.name for m in unclosed] == ["core/group"]
        assert [m.name for m in stray] == ["core/paragraph"]


class TestTreeHelpers:
    """Tests for tree helper functions."""

    def test_flatten_and_count(self):
        """Test depth-first flattening."""
        content = (
            "<!-- wp:columns --><!-- wp:column --><!-- wp:paragraph --><p>a</p>"
            "<!-- /wp:paragraph --><!-- /wp:column --><!-- /wp:columns -->"
        )
        blocks = block_comments.tokenize(content)

        assert [b.name for b in flatten_blocks(blocks)] == [
            "core/columns",
            "core/column",
            "core/paragraph",
        ]
        assert count_blocks(blocks) == 3
        assert get_block_types(blocks) == ["core/column", "core/columns", "core/paragraph"]

    def test_reusable_block_ref(self):
        """Test reading a reusable block reference."""
        blocks = block_comments.tokenize('<!-- wp:block {"ref":42} /-->')
        assert is_reusable_block(blocks[0])
        assert get_reusable_block_ref(blocks[0]) == 42
        assert not is_reusable_block(block_comments.tokenize("<!-- wp:separator /-->")[0])

    def test_parse_style(self):
        """Test reading inline style declarations."""
        assert parse_style("flex-basis: 50%; COLOR:red;;") == {"flex-basis": "50%", "color": "red"}


class TestSerialize:
    """Tests for block serialization."""

    def test_serialize_attrs_sorted_and_escaped(self):
        """Test that attribute JSON is compact, sorted and comment-safe."""
        text = block_comments.serialize_attrs({"b": 1, "a": "x--y<"})

        assert text == '{"a":"x\\u002d\\u002dy\\u003c","b":1}'
        assert json.loads(text) == {"a": "x--y<", "b": 1}

    def test_round_trip_is_byte_stable(self):
        """Test that canonical markup survives tokenize and serialize unchanged."""
        content = (
            '<!-- wp:heading {"level":2} -->\n<h2>Hi</h2>\n<!-- /wp:heading -->\n\n'
            "<!-- wp:separator /-->"
        )
        assert block_comments.serialize_blocks(block_comments.tokenize(content)) == content

    def test_serialize_nested(self):
        """Test that nested blocks are written back in place."""
        content = (
            "<!-- wp:group --><div>"
            "<!-- wp:paragraph --><p>x</p><!-- /wp:paragraph -->"
            "</div><!-- /wp:group -->"
        )
        assert block_comments.serialize_blocks(block_comments.tokenize(content)) == content

    def test_freeform_serializes_as_text(self):
        """Test that freeform blocks are written as plain markup."""
        blocks = block_comments.tokenize("<p>Loose</p>")
        assert block_comments.serialize_block(blocks[0]) == "<p>Loose</p>"
