"""Tests for the WPBakery adapter."""

import pytest

from pagebridge.adapters import WPBakeryAdapter
from pagebridge.adapters.wpbakery import (
    decode_raw_html,
    encode_raw_html,
    fraction_to_percent,
    parse_param_list,
    percent_to_fraction,
)
from pagebridge.models.layout import (
    NeutralLayout,
    create_button,
    create_column,
    create_paragraph,
    create_row,
)
from pagebridge.models.results import DetectionMethod

TWO_COLUMNS = (
    '[vc_row][vc_column width="1/2"][vc_column_text]<p>Left</p>[/vc_column_text][/vc_column]'
    '[vc_column width="1/2"][vc_custom_heading text="Title" font_container="tag:h3|text_align:center"]'
    "[/vc_column][/vc_row]"
)

TABS = (
    '[vc_tta_tabs style="flat"][vc_tta_section title="A"][vc_column_text]x[/vc_column_text]'
    "[/vc_tta_section][/vc_tta_tabs]"
)


@pytest.fixture
def adapter():
    return WPBakeryAdapter()


class TestHelpers:
    """Tests for WPBakery value formats."""

    def test_fraction_to_percent(self):
        """Test column fractions as percentages."""
        assert fraction_to_percent("1/2") == "50%"
        assert fraction_to_percent("1/3") == "33.33%"
        assert fraction_to_percent("bad") is None
        assert fraction_to_percent("1/0") is None

    def test_percent_to_fraction(self):
        """Test percentages snapped to grid fractions."""
        assert percent_to_fraction("50%") == "1/2"
        assert percent_to_fraction("33.33%") == "1/3"
        assert percent_to_fraction("100%") == "1/1"
        assert percent_to_fraction(None) == "1/1"
        assert percent_to_fraction("150%") == "1/1"

    def test_param_list(self):
        """Test the key:value|key:value format."""
        params = parse_param_list("url:https%3A%2F%2Fexample.com|target:_blank|title:")
        assert params == {"url": "https://example.com", "target": "_blank", "title": ""}

    def test_raw_html_encoding(self):
        """Test the base64 body of raw HTML shortcodes."""
        html = '<div class="x">Hi &amp; bye</div>'
        assert decode_raw_html(encode_raw_html(html)) == html

    def test_plain_raw_html(self):
        """Test that unencoded raw HTML is read as-is."""
        assert decode_raw_html("<p>plain</p>") == "<p>plain</p>"


class TestDetect:
    """Tests for WPBakery detection."""

    def test_detects_shortcodes(self, adapter):
        """Test detection from vc_ shortcodes in the raw content."""
        result = adapter.detect({"id": 1, "content": {"raw": TWO_COLUMNS, "rendered": ""}})

        assert result.detected is True
        assert result.confidence > 0.5
        assert result.method == DetectionMethod.SHORTCODE
        assert result.details["shortcodeCount"] == 5

    def test_detects_meta(self, adapter):
        """Test detection from WPBakery post meta."""
        page = {"id": 1, "content": {"rendered": "<p>x</p>"}, "meta": {"_wpb_vc_js_status": "true"}}
        result = adapter.detect(page)

        assert result.detected is True
        assert result.method == DetectionMethod.META

    def test_detects_classes(self, adapter):
        """Test detection from rendered WPBakery classes."""
        result = adapter.detect({"id": 1, "content": {"rendered": '<div class="vc_row wpb_row"></div>'}})

        assert result.detected is True
        assert result.method == DetectionMethod.CLASS

    def test_plain_page_not_detected(self, adapter):
        """Test that plain HTML is not claimed."""
        result = adapter.detect({"id": 1, "content": {"rendered": "<p>Plain</p>"}})

        assert result.detected is False
        assert result.confidence == 0


class TestExtract:
    """Tests for extracting WPBakery shortcodes."""

    def test_row_with_columns(self, adapter):
        """Test rows, column widths and content mapping."""
        result = adapter.extract_layout({"id": 1, "content": {"raw": TWO_COLUMNS}})
        row = result.data.elements[0]

        assert result.success is True
        assert result.warnings == []
        assert row.type == "row"
        assert [c.attrs["width"] for c in row.children] == ["50%", "50%"]
        assert row.children[0].children[0].to_dict() == {"type": "paragraph", "attrs": {}, "content": "Left"}
        assert row.children[1].children[0].to_dict() == {
            "type": "heading",
            "attrs": {"level": 3, "align": "center"},
            "content": "Title",
        }

    def test_button_link(self, adapter):
        """Test reading the button's link parameters."""
        content = '[vc_btn title="Go" link="url:https%3A%2F%2Fexample.com|target:_blank"]'
        element = adapter.extract_layout_from_content(content).data.elements[0]

        assert element.to_dict() == {
            "type": "button",
            "attrs": {"url": "https://example.com", "linkTarget": "_blank"},
            "content": "Go",
        }

    def test_raw_html(self, adapter):
        """Test that raw HTML bodies are decoded."""
        content = f"[vc_raw_html]{encode_raw_html('<div>hi</div>')}[/vc_raw_html]"
        element = adapter.extract_layout_from_content(content).data.elements[0]

        assert element.type == "html"
        assert element.content == "<div>hi</div>"

    def test_spacer_height(self, adapter):
        """Test that bare numbers get a px unit."""
        element = adapter.extract_layout_from_content('[vc_empty_space height="20"]').data.elements[0]
        assert element.attrs == {"height": "20px"}

    def test_unknown_shortcode(self, adapter):
        """Test that unmapped shortcodes are kept verbatim and reported."""
        result = adapter.extract_layout_from_content(TABS)
        element = result.data.elements[0]

        assert result.unsupported_elements == ["vc_tta_tabs"]
        assert element.type == "unknown"
        assert element.attrs["_builderData"]["attrs"] == {"style": "flat"}
        assert element.content == (
            '[vc_tta_section title="A"][vc_column_text]x[/vc_column_text][/vc_tta_section]'
        )

    def test_shortcodes_nested_in_text_block_are_kept(self, adapter):
        """Test that shortcodes inside a text block are emitted after it and reported."""
        content = '[vc_column_text]<p>a</p>[vc_acme_widget x="1"][/vc_column_text]'
        result = adapter.extract_layout_from_content(content)
        paragraph, widget = result.data.elements

        assert result.success is True
        assert paragraph.to_dict() == {"type": "paragraph", "attrs": {}, "content": "a"}
        assert widget.type == "unknown"
        assert widget.attrs["_builderData"]["attrs"] == {"x": "1"}
        assert result.unsupported_elements == ["vc_acme_widget"]
        assert [w.code for w in result.warnings] == ["ELEMENT_CONVERSION_FAILED", "UNSUPPORTED_BLOCK"]
        assert result.stats.total_elements == 2

    def test_unclosed_row_is_a_warning(self, adapter):
        """Test that an unclosed container does not stop the conversion."""
        result = adapter.extract_layout_from_content("[vc_row][vc_column_text]x[/vc_column_text]")

        assert result.success is True
        assert [w.code for w in result.warnings] == ["PARSE_ERROR"]
        assert [e.type for e in result.data.elements] == ["row", "paragraph"]

    def test_non_string_content_fails(self, adapter):
        """Test that non-text content is a structural failure."""
        result = adapter.extract_layout_from_content(123)

        assert result.success is False
        assert result.warnings[0].code == "PARSE_ERROR"

    def test_strict_mode(self, adapter):
        """Test that strict mode fails on unsupported shortcodes."""
        result = adapter.extract_layout_from_content(TABS, {"strict": True})

        assert result.success is False
        assert result.data.elements == []
        assert "STRICT_MODE_VIOLATION" in [w.code for w in result.warnings]


class TestApply:
    """Tests for writing WPBakery shortcodes."""

    def test_row_output(self, adapter):
        """Test the exact shortcode output for a two-column row."""
        layout = NeutralLayout(
            source_builder="gutenberg",
            elements=[
                create_row(
                    [
                        create_column([create_paragraph("A")], width="50%"),
                        create_column([create_paragraph("B")], width="50%"),
                    ]
                )
            ],
        )
        result = adapter.apply_layout(layout)

        assert result.success is True
        assert result.data == (
            '[vc_row][vc_column width="1/2"][vc_column_text]<p>A</p>[/vc_column_text][/vc_column]'
            '[vc_column width="1/2"][vc_column_text]<p>B</p>[/vc_column_text][/vc_column][/vc_row]'
        )

    def test_nested_rows_use_inner_tags(self, adapter):
        """Test that rows inside columns become inner rows and columns."""
        inner = create_row([create_column([create_paragraph("x")], width="100%")])
        layout = NeutralLayout(
            source_builder="gutenberg",
            elements=[create_row([create_column([inner], width="100%")])],
        )
        data = adapter.apply_layout(layout).data

        assert data == (
            '[vc_row][vc_column width="1/1"][vc_row_inner][vc_column_inner width="1/1"]'
            "[vc_column_text]<p>x</p>[/vc_column_text][/vc_column_inner][/vc_row_inner]"
            "[/vc_column][/vc_row]"
        )

    def test_row_wraps_loose_content(self, adapter):
        """Test that content directly inside a row gets a full-width column."""
        layout = NeutralLayout(source_builder="gutenberg", elements=[create_row([create_paragraph("x")])])
        data = adapter.apply_layout(layout).data

        assert data == '[vc_row][vc_column width="1/1"][vc_column_text]<p>x</p>[/vc_column_text][/vc_column][/vc_row]'

    def test_button(self, adapter):
        """Test writing button link parameters."""
        layout = NeutralLayout(
            source_builder="gutenberg",
            elements=[create_button("Go", url="https://example.com", linkTarget="_blank")],
        )
        data = adapter.apply_layout(layout).data

        assert data == '[vc_btn link="url:https%3A%2F%2Fexample.com|target:_blank" title="Go"]'

    def test_unknown_shortcode_is_rebuilt(self, adapter):
        """Test that unknown shortcodes are written back unchanged."""
        extracted = adapter.extract_layout_from_content(TABS).data
        assert adapter.apply_layout(extracted).data == TABS

    def test_unknown_from_other_builder_passes_through(self, adapter):
        """Test that foreign unknown elements become raw HTML."""
        layout = NeutralLayout.from_dict(
            {
                "layout_version": "1.0",
                "source": {"builder": "gutenberg"},
                "elements": [
                    {
                        "type": "unknown",
                        "attrs": {"_builderData": {"blockName": "acme/slider", "attrs": {}}},
                        "content": "<div>slides</div>",
                    }
                ],
            }
        )
        result = adapter.apply_layout(layout)

        assert result.unsupported_elements == ["acme/slider"]
        assert result.data == f"[vc_raw_html]{encode_raw_html('<div>slides</div>')}[/vc_raw_html]"

    def test_top_level_text_round_trip(self, adapter):
        """Test that preserved loose text is written back as text."""
        extracted = adapter.extract_layout_from_content(
            "Intro[vc_separator]", {"preserve_builder_data": True}
        ).data

        assert adapter.apply_layout(extracted).data == "Intro[vc_separator]"

    def test_round_trip(self, adapter):
        """Test that canonical shortcodes survive extract and apply."""
        extracted = adapter.extract_layout_from_content(TWO_COLUMNS).data
        data = adapter.apply_layout(extracted).data

        assert data == (
            '[vc_row][vc_column width="1/2"][vc_column_text]<p>Left</p>[/vc_column_text][/vc_column]'
            '[vc_column width="1/2"][vc_custom_heading font_container="tag:h3|text_align:center" '
            'text="Title" use_theme_fonts="yes"][/vc_column][/vc_row]'
        )


class TestValidate:
    """Tests for shortcode validation."""

    def test_valid(self, adapter):
        """Test that well-formed shortcodes validate."""
        report = adapter.validate(TWO_COLUMNS)
        assert report.valid is True
        assert report.warnings == []

    def test_unclosed_and_stray(self, adapter):
        """Test that unbalanced containers are errors."""
        assert len(adapter.validate("[vc_row][vc_column]").errors) == 2
        assert adapter.validate("[/vc_row]").valid is False

    def test_unsupported_shortcode(self, adapter):
        """Test that unknown shortcodes are warnings."""
        report = adapter.validate("[vc_row][vc_foo][/vc_row]")
        assert report.valid is True
        assert report.warnings == ["Unsupported shortcode 'vc_foo'"]
