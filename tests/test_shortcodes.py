"""Tests for the shortcode tokenizer and serializer."""

from pagebridge.parsing import shortcodes
from pagebridge.parsing.native import MarkerKind
from pagebridge.parsing.shortcodes import TEXT_BLOCK_NAME

VC = ("vc_",)


class TestParseAttributes:
    """Tests for shortcode attribute parsing."""

    def test_quoted_and_bare_values(self):
        """Test every quoting style, with lower-cased names."""
        attrs = shortcodes.parse_attributes(" a=\"1\" B='2' c=3")
        assert attrs == {"a": "1", "b": "2", "c": "3"}

    def test_positional_values(self):
        """Test that unnamed values are keyed by position."""
        attrs = shortcodes.parse_attributes(' "first" second')
        assert attrs == {"0": "first", "1": "second"}

    def test_value_with_slash(self):
        """Test that fractions survive as values."""
        assert shortcodes.parse_attributes(' width="1/2"') == {"width": "1/2"}


class TestLex:
    """Tests for shortcode lexing."""

    def test_marker_kinds(self):
        """Test open, close and self-closing tags."""
        markers = shortcodes.lex('[vc_row][vc_empty_space height="20px" /][/vc_row]')
        assert [m.kind for m in markers] == [MarkerKind.OPEN, MarkerKind.VOID, MarkerKind.CLOSE]
        assert markers[1].attrs == {"height": "20px"}

    def test_escaped_shortcode_is_text(self):
        """Test that [[tag]] is not a shortcode."""
        assert shortcodes.lex("[[vc_row]]") == []

    def test_prefix_filter(self):
        """Test that other plugins' shortcodes are ignored."""
        markers = shortcodes.lex('[gallery ids="1,2"][vc_separator]', VC)
        assert [m.name for m in markers] == ["vc_separator"]


class TestTokenize:
    """Tests for building the shortcode tree."""

    def test_nested_layout(self):
        """Test row, column and text nesting."""
        content = (
            '[vc_row][vc_column width="1/2"][vc_column_text]<p>Hi</p>[/vc_column_text]'
            "[/vc_column][/vc_row]"
        )
        blocks = shortcodes.tokenize(content, VC)

        assert len(blocks) == 1
        row = blocks[0]
        assert row.name == "vc_row"
        column = row.inner_blocks[0]
        assert column.name == "vc_column"
        assert column.attrs == {"width": "1/2"}
        text = column.inner_blocks[0]
        assert text.name == "vc_column_text"
        assert text.inner_html == "<p>Hi</p>"

    def test_unclosed_tag_is_self_contained(self):
        """Test that a tag without a closer is a complete shortcode."""
        blocks = shortcodes.tokenize(
            '[vc_column][vc_separator style="dashed"][vc_column_text]x[/vc_column_text][/vc_column]', VC
        )
        column = blocks[0]

        assert [b.name for b in column.inner_blocks] == ["vc_separator", "vc_column_text"]
        assert column.inner_blocks[0].attrs == {"style": "dashed"}
        assert column.inner_blocks[0].is_void

    def test_top_level_text(self):
        """Test that text outside shortcodes becomes text blocks."""
        blocks = shortcodes.tokenize("Intro [vc_separator]", VC)

        assert blocks[0].name == TEXT_BLOCK_NAME
        assert blocks[0].inner_html == "Intro "
        assert blocks[1].name == "vc_separator"

    def test_foreign_shortcode_stays_inside_text(self):
        """Test that non-prefixed shortcodes remain in their parent's markup."""
        blocks = shortcodes.tokenize('[vc_column_text][gallery ids="1"][/vc_column_text]', VC)
        assert blocks[0].inner_html == '[gallery ids="1"]'

    def test_count_shortcodes(self):
        """Test counting opening and self-closing tags."""
        assert shortcodes.count_shortcodes("[vc_row][vc_column][/vc_column][/vc_row]", VC) == 2
        assert shortcodes.count_shortcodes("", VC) == 0


class TestSerialize:
    """Tests for shortcode serialization."""

    def test_serialize_attributes_sorted_and_escaped(self):
        """Test attribute ordering and escaping."""
        text = shortcodes.serialize_attributes({"width": "1/2", "a": 'say "hi" [x]', "on": True})
        assert text == ' a="say &quot;hi&quot; &#91;x&#93;" on="true" width="1/2"'

    def test_positional_values_are_bare(self):
        """Test that positional values are written without a key, before named ones."""
        text = shortcodes.serialize_attributes({"width": "1/2", "1": "two words", "0": "full"})
        assert text == ' full "two words" width="1/2"'

    def test_positional_round_trip(self):
        """Test that positional values survive tokenize and serialize."""
        content = '[vc_separator full "two words" style="dashed"]'
        blocks = shortcodes.tokenize(content, VC)

        assert blocks[0].attrs == {"0": "full", "1": "two words", "style": "dashed"}
        assert shortcodes.serialize_blocks(blocks) == content

    def test_round_trip(self):
        """Test that canonical markup survives tokenize and serialize."""
        content = (
            '[vc_row][vc_column width="1/2"][vc_column_text]<p>Hi</p>[/vc_column_text]'
            '[/vc_column][vc_column width="1/2"][vc_separator style="dashed"][/vc_column][/vc_row]'
        )
        assert shortcodes.serialize_blocks(shortcodes.tokenize(content, VC)) == content
