"""
WPBakery Page Builder adapter.

WPBakery stores layouts as ``vc_`` shortcodes in the post content::

    [vc_row][vc_column width="1/2"][vc_column_text]<p>Hi</p>[/vc_column_text][/vc_column][/vc_row]

Only ``vc_`` tags are treated as structure; any other shortcode is kept as
text inside its parent.
"""

import base64
import binascii
import dataclasses
import re
from fractions import Fraction
from typing import Any, Optional
from urllib.parse import quote, unquote

from ..models.layout import ElementType, NeutralElement
from ..models.page import PageData
from ..models.results import DetectionMethod, DetectionResult, WarningCode, WarningSeverity
from ..parsing import shortcodes
from ..parsing.html import unwrap_paragraph
from ..parsing.native import MarkerKind, NativeBlock, unmatched_markers
from ..parsing.shortcodes import TEXT_BLOCK_NAME
from .base import (
    AdapterVersion,
    ApplyContext,
    BaseAdapter,
    ConversionReport,
    ExtractContext,
    ForwardRule,
    ReverseHandler,
    ValidationReport,
    saturating_confidence,
)
from .protocols import PageInput

SHORTCODE_PREFIXES = ("vc_",)

# Tags that always wrap content and must be closed
CONTAINER_TAGS = frozenset(
    {"vc_section", "vc_row", "vc_row_inner", "vc_column", "vc_column_inner", "vc_column_text", "vc_raw_html"}
)

META_MARKERS = ("_wpb_shortcodes_custom_css", "_vc_post_settings")
DEFAULT_SPACER_HEIGHT = "32px"
FULL_WIDTH = "1/1"

_CLASS_PATTERN = re.compile(r"""class=["'](?:vc_|wpb_)|\bvc_row\b|\bwpb_column\b""")
_DATA_ATTR_PATTERN = re.compile(r"\bdata-vc-")


def _leaf(name: str, attrs: dict[str, Any], content: str = "") -> NativeBlock:
    if not content:
        return NativeBlock(name=name, attrs=attrs)
    return NativeBlock(name=name, attrs=attrs, inner_html=content, inner_content=(content,))


def _wrapper(name: str, attrs: dict[str, Any], children: list[NativeBlock]) -> NativeBlock:
    return NativeBlock(
        name=name,
        attrs=attrs,
        inner_blocks=tuple(children),
        inner_content=tuple(None for _ in children),
    )


def _common(attrs: dict[str, Any]) -> dict[str, Any]:
    common: dict[str, Any] = {}
    if attrs.get("el_class"):
        common["className"] = attrs["el_class"]
    if attrs.get("el_id"):
        common["anchor"] = attrs["el_id"]
    return common


def _native_common(element: NeutralElement) -> dict[str, Any]:
    attrs: dict[str, Any] = {}
    if element.attrs.get("className"):
        attrs["el_class"] = element.attrs["className"]
    if element.attrs.get("anchor"):
        attrs["el_id"] = element.attrs["anchor"]
    return attrs


def parse_param_list(value: str) -> dict[str, str]:
    """
    Parse WPBakery's ``key:value|key:value`` parameter format.

    Values are URL-decoded, so ``url:https%3A%2F%2Fexample.com|target:_blank``
    gives ``{"url": "https://example.com", "target": "_blank"}``.
    """
    params: dict[str, str] = {}
    for part in (value or "").split("|"):
        key, sep, raw = part.partition(":")
        if sep and key.strip():
            params[key.strip()] = unquote(raw)
    return params


def format_param_list(params: dict[str, Any]) -> str:
    return "|".join(f"{key}:{quote(str(value), safe='')}" for key, value in params.items() if value)


def fraction_to_percent(width: str) -> Optional[str]:
    """``"1/2"`` -> ``"50%"``, ``"1/3"`` -> ``"33.33%"``."""
    numerator, sep, denominator = (width or "").partition("/")
    try:
        value = Fraction(int(numerator), int(denominator)) if sep else None
    except (ValueError, ZeroDivisionError):
        return None
    if value is None or value <= 0:
        return None
    return f"{round(float(value) * 100, 2):g}%"


def percent_to_fraction(width: Any) -> str:
    """``"50%"`` -> ``"1/2"``; anything unreadable spans the full row."""
    text = str(width or "").strip().rstrip("%")
    try:
        value = Fraction(float(text) / 100).limit_denominator(12)
    except (ValueError, OverflowError):
        return FULL_WIDTH
    if value <= 0 or value > 1:
        return FULL_WIDTH
    return f"{value.numerator}/{value.denominator}"


def decode_raw_html(payload: str) -> str:
    """Decode the base64 + URL-encoded body of ``vc_raw_html``."""
    text = (payload or "").strip()
    try:
        decoded = base64.b64decode(text, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        # Hand-written shortcodes often carry plain markup
        return text
    return unquote(decoded)


def encode_raw_html(html: str) -> str:
    return base64.b64encode(quote(html or "", safe="").encode("ascii")).decode("ascii")


# -----------------------------------------------------------------------------
# Forward handlers: NativeBlock -> NeutralElement
# -----------------------------------------------------------------------------


def _section(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(type=ElementType.SECTION, attrs=_common(block.attrs), children=context.children(block))


def _row(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    if block.attrs.get("gap"):
        attrs["gap"] = block.attrs["gap"]
    if block.attrs.get("full_width"):
        attrs["fullWidth"] = block.attrs["full_width"]
    return NeutralElement(type=ElementType.ROW, attrs=attrs, children=context.children(block))


def _column(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    width = fraction_to_percent(block.attrs.get("width", FULL_WIDTH))
    if width:
        attrs["width"] = width
    return NeutralElement(type=ElementType.COLUMN, attrs=attrs, children=context.children(block))


def _column_text(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(
        type=ElementType.PARAGRAPH,
        attrs=_common(block.attrs),
        content=unwrap_paragraph(block.inner_html),
    )


def _custom_heading(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    font = parse_param_list(block.attrs.get("font_container", ""))
    tag = font.get("tag", "h2")
    level = int(tag[1]) if re.fullmatch(r"h[1-6]", tag) else 2
    attrs = {"level": level, **_common(block.attrs)}
    if font.get("text_align"):
        attrs["align"] = font["text_align"]
    link = parse_param_list(block.attrs.get("link", ""))
    if link.get("url"):
        attrs["url"] = link["url"]
    return NeutralElement(type=ElementType.HEADING, attrs=attrs, content=block.attrs.get("text", ""))


def _single_image(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    image = block.attrs.get("image", "")
    if image:
        attrs["mediaId"] = int(image) if image.isdigit() else image
    if block.attrs.get("source") == "external_link" and block.attrs.get("custom_src"):
        attrs["src"] = block.attrs["custom_src"]
    if block.attrs.get("img_size"):
        attrs["sizeSlug"] = block.attrs["img_size"]
    if block.attrs.get("alignment"):
        attrs["align"] = block.attrs["alignment"]
    if block.attrs.get("title"):
        attrs["caption"] = block.attrs["title"]
    if block.attrs.get("onclick") == "custom_link" and block.attrs.get("link"):
        attrs["href"] = block.attrs["link"]
    return NeutralElement(type=ElementType.IMAGE, attrs=attrs)


def _btn(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    link = parse_param_list(block.attrs.get("link", ""))
    if link.get("url"):
        attrs["url"] = link["url"]
    if link.get("target"):
        attrs["linkTarget"] = link["target"].strip()
    if block.attrs.get("align"):
        attrs["align"] = block.attrs["align"]
    return NeutralElement(type=ElementType.BUTTON, attrs=attrs, content=block.attrs.get("title", ""))


def _separator(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    if block.attrs.get("style"):
        attrs["style"] = block.attrs["style"]
    return NeutralElement(type=ElementType.SEPARATOR, attrs=attrs)


def _empty_space(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    height = block.attrs.get("height") or DEFAULT_SPACER_HEIGHT
    if height.isdigit():
        height = f"{height}px"
    return NeutralElement(type=ElementType.SPACER, attrs={"height": height, **_common(block.attrs)})


def _raw_html(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(type=ElementType.HTML, attrs={}, content=decode_raw_html(block.inner_html))


def _video(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    if block.attrs.get("link"):
        attrs["url"] = block.attrs["link"]
    if block.attrs.get("title"):
        attrs["caption"] = block.attrs["title"]
    return NeutralElement(type=ElementType.EMBED, attrs=attrs)


def _text(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(type=ElementType.HTML, attrs={}, content=block.inner_html.strip())


FORWARD_HANDLERS: dict[str, ForwardRule] = {
    # Layout
    "vc_section": ForwardRule(ElementType.SECTION.value, _section),
    "vc_row": ForwardRule(ElementType.ROW.value, _row),
    "vc_row_inner": ForwardRule(ElementType.ROW.value, _row),
    "vc_column": ForwardRule(ElementType.COLUMN.value, _column),
    "vc_column_inner": ForwardRule(ElementType.COLUMN.value, _column),
    # Content
    "vc_column_text": ForwardRule(ElementType.PARAGRAPH.value, _column_text),
    "vc_custom_heading": ForwardRule(ElementType.HEADING.value, _custom_heading),
    # Media
    "vc_single_image": ForwardRule(ElementType.IMAGE.value, _single_image),
    "vc_video": ForwardRule(ElementType.EMBED.value, _video),
    # Interactive
    "vc_btn": ForwardRule(ElementType.BUTTON.value, _btn),
    # Special
    "vc_separator": ForwardRule(ElementType.SEPARATOR.value, _separator),
    "vc_empty_space": ForwardRule(ElementType.SPACER.value, _empty_space),
    "vc_raw_html": ForwardRule(ElementType.HTML.value, _raw_html),
    TEXT_BLOCK_NAME: ForwardRule(ElementType.HTML.value, _text),
}


# -----------------------------------------------------------------------------
# Reverse handlers: NeutralElement -> NativeBlock
# -----------------------------------------------------------------------------


def _is_nested(context: ApplyContext) -> bool:
    return ElementType.ROW.value in context.ancestors


def _in_columns(children: list[NativeBlock], column_name: str) -> list[NativeBlock]:
    """Wrap consecutive non-column blocks in full-width columns."""
    wrapped: list[NativeBlock] = []
    pending: list[NativeBlock] = []
    for child in children:
        if child.name in ("vc_column", "vc_column_inner"):
            if pending:
                wrapped.append(_wrapper(column_name, {"width": FULL_WIDTH}, pending))
                pending = []
            wrapped.append(child)
        else:
            pending.append(child)
    if pending:
        wrapped.append(_wrapper(column_name, {"width": FULL_WIDTH}, pending))
    return wrapped


def _to_row(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    nested = _is_nested(context)
    attrs = _native_common(element)
    if element.attrs.get("gap"):
        attrs["gap"] = element.attrs["gap"]
    if element.attrs.get("fullWidth") and not nested:
        attrs["full_width"] = element.attrs["fullWidth"]
    children = _in_columns(context.children(element), "vc_column_inner" if nested else "vc_column")
    return _wrapper("vc_row_inner" if nested else "vc_row", attrs, children)


def _to_section(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    # Sections hold rows only
    rows: list[NativeBlock] = []
    pending: list[NativeBlock] = []
    for child in context.children(element):
        if child.name == "vc_row":
            if pending:
                rows.append(_wrapper("vc_row", {}, _in_columns(pending, "vc_column")))
                pending = []
            rows.append(child)
        else:
            pending.append(child)
    if pending:
        rows.append(_wrapper("vc_row", {}, _in_columns(pending, "vc_column")))
    return _wrapper("vc_section", _native_common(element), rows)


def _to_column(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    # Ancestors end with the parent row, so one more row above means nesting
    nested = context.ancestors.count(ElementType.ROW.value) > 1
    attrs = {"width": percent_to_fraction(element.attrs.get("width")), **_native_common(element)}
    return _wrapper("vc_column_inner" if nested else "vc_column", attrs, context.children(element))


def _to_column_text(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    return _leaf("vc_column_text", _native_common(element), f"<p>{element.content or ''}</p>")


def _to_list(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    tag = "ol" if element.attrs.get("ordered") else "ul"
    if element.children:
        items = "".join(f"<li>{child.content or ''}</li>" for child in element.children)
        context.report.total += len(element.children)
        context.report.converted += len(element.children)
    else:
        items = element.content or ""
    return _leaf("vc_column_text", _native_common(element), f"<{tag}>{items}</{tag}>")


def _to_custom_heading(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    try:
        level = min(max(int(element.attrs.get("level", 2)), 1), 6)
    except (TypeError, ValueError):
        level = 2
    font = {"tag": f"h{level}", "text_align": element.attrs.get("align")}
    attrs = {
        "text": element.content or "",
        "font_container": format_param_list(font),
        "use_theme_fonts": "yes",
        **_native_common(element),
    }
    if element.attrs.get("url"):
        attrs["link"] = format_param_list({"url": element.attrs["url"]})
    return _leaf("vc_custom_heading", attrs)


def _to_single_image(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _native_common(element)
    if element.attrs.get("mediaId") not in (None, ""):
        attrs["image"] = str(element.attrs["mediaId"])
    elif element.attrs.get("src"):
        attrs["source"] = "external_link"
        attrs["custom_src"] = element.attrs["src"]
    if element.attrs.get("sizeSlug"):
        attrs["img_size"] = element.attrs["sizeSlug"]
    if element.attrs.get("align"):
        attrs["alignment"] = element.attrs["align"]
    if element.attrs.get("caption"):
        attrs["title"] = element.attrs["caption"]
    if element.attrs.get("href"):
        attrs["onclick"] = "custom_link"
        attrs["link"] = element.attrs["href"]
    return _leaf("vc_single_image", attrs)


def _to_btn(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = {"title": element.content or "", **_native_common(element)}
    link = {"url": element.attrs.get("url"), "target": element.attrs.get("linkTarget")}
    if link["url"]:
        attrs["link"] = format_param_list(link)
    if element.attrs.get("align"):
        attrs["align"] = element.attrs["align"]
    return _leaf("vc_btn", attrs)


def _to_separator(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _native_common(element)
    if element.attrs.get("style"):
        attrs["style"] = element.attrs["style"]
    return _leaf("vc_separator", attrs)


def _to_empty_space(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    height = str(element.attrs.get("height") or DEFAULT_SPACER_HEIGHT)
    return _leaf("vc_empty_space", {"height": height, **_native_common(element)})


def _to_raw_html(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    return raw_html_block(element.content or "")


def _to_video(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _native_common(element)
    link = element.attrs.get("url") or element.attrs.get("src")
    if not link:
        raise ValueError("video element has no url")
    attrs["link"] = link
    if element.attrs.get("caption"):
        attrs["title"] = element.attrs["caption"]
    return _leaf("vc_video", attrs)


def raw_html_block(html: str) -> NativeBlock:
    return _leaf("vc_raw_html", {}, encode_raw_html(html))


REVERSE_HANDLERS: dict[str, ReverseHandler] = {
    # Layout
    ElementType.SECTION.value: _to_section,
    ElementType.CONTAINER.value: _to_section,
    ElementType.GROUP.value: _to_section,
    ElementType.ROW.value: _to_row,
    ElementType.COLUMN.value: _to_column,
    # Content
    ElementType.PARAGRAPH.value: _to_column_text,
    ElementType.TEXT.value: _to_column_text,
    ElementType.LIST.value: _to_list,
    ElementType.HEADING.value: _to_custom_heading,
    # Media
    ElementType.IMAGE.value: _to_single_image,
    ElementType.EMBED.value: _to_video,
    ElementType.VIDEO.value: _to_video,
    # Interactive
    ElementType.BUTTON.value: _to_btn,
    # Special
    ElementType.SEPARATOR.value: _to_separator,
    ElementType.SPACER.value: _to_empty_space,
    ElementType.HTML.value: _to_raw_html,
}


class WPBakeryAdapter(BaseAdapter):
    """
    Adapter for WPBakery Page Builder (formerly Visual Composer).

    Example:
        adapter = WPBakeryAdapter()
        result = adapter.extract_layout_from_content(
            '[vc_row][vc_column width="1/2"][vc_column_text]Hi[/vc_column_text][/vc_column][/vc_row]'
        )
        result.data.elements[0].children[0].attrs  # {"width": "50%"}
    """

    name = "wpbakery"
    display_name = "WPBakery Page Builder"
    supported = True
    version = AdapterVersion(adapter="1.0.0", min_builder_version="6.0.0", format_version="1.0")

    FORWARD_HANDLERS = FORWARD_HANDLERS
    REVERSE_HANDLERS = REVERSE_HANDLERS

    def detect(self, page: PageInput) -> DetectionResult:
        page = PageData.coerce(page)
        meta = page.meta or {}

        shortcode_markers = shortcodes.count_shortcodes(page.content.raw or "", SHORTCODE_PREFIXES)
        if not shortcode_markers:
            shortcode_markers = shortcodes.count_shortcodes(page.content.rendered, SHORTCODE_PREFIXES)

        meta_markers = sum(1 for key in META_MARKERS if meta.get(key))
        if str(meta.get("_wpb_vc_js_status", "")).lower() == "true":
            meta_markers += 1

        html = page.rendered_content
        class_markers = len(_CLASS_PATTERN.findall(html))
        has_data_attrs = bool(_DATA_ATTR_PATTERN.search(html))
        # Data attributes only add weight to other evidence
        if class_markers and has_data_attrs:
            class_markers += 1

        total = shortcode_markers + meta_markers + class_markers
        if not total:
            return DetectionResult.not_detected(DetectionMethod.SHORTCODE)

        if shortcode_markers:
            method = DetectionMethod.SHORTCODE
        elif meta_markers:
            method = DetectionMethod.META
        else:
            method = DetectionMethod.CLASS
        return DetectionResult(
            detected=True,
            confidence=saturating_confidence(total),
            method=method,
            details={
                "shortcodeCount": shortcode_markers,
                "metaMarkers": meta_markers,
                "classMarkers": class_markers,
                "hasDataAttributes": has_data_attrs,
            },
        )

    def validate(self, content: Any) -> ValidationReport:
        if not isinstance(content, str):
            return ValidationReport.from_messages(["Content must be a string"], [])

        errors: list[str] = []
        warnings: list[str] = []
        markers = shortcodes.lex(content, SHORTCODE_PREFIXES)
        unclosed, stray = unmatched_markers(markers)
        errors.extend(
            f"Unclosed shortcode '{m.name}' at offset {m.start}" for m in unclosed if m.name in CONTAINER_TAGS
        )
        errors.extend(f"Closing tag without opener '{m.name}' at offset {m.start}" for m in stray)
        for name in sorted({m.name for m in markers if m.kind is not MarkerKind.CLOSE}):
            if name not in self.FORWARD_HANDLERS:
                warnings.append(f"Unsupported shortcode '{name}'")
        return ValidationReport.from_messages(errors, warnings)

    def parse_native(self, content: Any, report: ConversionReport) -> Optional[list[NativeBlock]]:
        if content is None:
            return []
        if not isinstance(content, str):
            report.warn(
                WarningCode.PARSE_ERROR,
                f"Expected shortcode markup, got {type(content).__name__}",
                severity=WarningSeverity.ERROR,
            )
            return None

        markers = shortcodes.lex(content, SHORTCODE_PREFIXES)
        unclosed, stray = unmatched_markers(markers)
        for marker in unclosed:
            if marker.name in CONTAINER_TAGS:
                report.warn(
                    WarningCode.PARSE_ERROR,
                    f"Unclosed '{marker.name}' at offset {marker.start} treated as self-closing",
                )
        for marker in stray:
            report.warn(
                WarningCode.PARSE_ERROR,
                f"Closing tag '{marker.name}' at offset {marker.start} has no opener; kept as text",
            )
        return shortcodes.tokenize(content, SHORTCODE_PREFIXES)

    def serialize_native(self, nodes: list[NativeBlock]) -> str:
        return shortcodes.serialize_blocks(nodes)

    def native_name(self, node: NativeBlock) -> str:
        return node.name

    def native_attrs(self, node: NativeBlock) -> dict[str, Any]:
        return node.attrs

    def native_children(self, node: NativeBlock) -> list[NativeBlock]:
        return list(node.inner_blocks)

    def native_markup(self, node: NativeBlock) -> Optional[str]:
        return "".join(
            part if isinstance(part, str) else shortcodes.serialize_block(part)
            for part in node.iter_inner()
        )

    def html_node(self, html: str, context: ApplyContext) -> NativeBlock:
        return raw_html_block(html)

    def rebuild_unknown(
        self, element: NeutralElement, context: ApplyContext
    ) -> Optional[NativeBlock]:
        data = element.builder_data
        if not data or not isinstance(data.get("blockName"), str):
            return None
        attrs = data.get("attrs") if isinstance(data.get("attrs"), dict) else {}
        markup = element.content if element.content is not None else data.get("innerHTML") or ""
        return _leaf(data["blockName"], dict(attrs), markup)

    def rename_native(self, node: NativeBlock, name: str, attrs: dict[str, Any]) -> NativeBlock:
        if name == TEXT_BLOCK_NAME and node.name == "vc_raw_html":
            # Loose top-level text goes back out as plain text
            return _leaf(TEXT_BLOCK_NAME, {}, decode_raw_html(node.inner_html))
        return dataclasses.replace(node, name=name, attrs=attrs)
