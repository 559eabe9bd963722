"""
Elementor adapter.

Elementor keeps its layout in the ``_elementor_data`` post meta as a JSON
list of nodes::

    [{"id": "3f2a9c1", "elType": "section", "settings": {},
      "elements": [{"id": "...", "elType": "column",
                    "settings": {"_column_size": 50},
                    "elements": [{"id": "...", "elType": "widget",
                                  "widgetType": "heading",
                                  "settings": {"title": "Hi", "header_size": "h2"},
                                  "elements": []}]}]}]

Widgets are keyed by ``widgetType``, everything else by ``elType``.
"""

import copy
import hashlib
import json
import re
from typing import Any, Optional

from ..models.layout import ElementType, NeutralElement
from ..models.page import PageData
from ..models.results import DetectionMethod, DetectionResult, WarningCode, WarningSeverity
from ..parsing.html import Fragment, unwrap_paragraph
from .base import (
    AdapterCapabilities,
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

DATA_META_KEY = "_elementor_data"
EDIT_MODE_META_KEY = "_elementor_edit_mode"
VERSION_META_KEY = "_elementor_version"

VIDEO_PROVIDERS = ("youtube", "vimeo", "dailymotion")
DEFAULT_SPACER_SIZE = 50

_MARKUP_PATTERN = re.compile(
    r"""class=["'](?:elementor|e-con)\b"""
    r"|\belementor-(?:element|widget|section|column|container)\b"
    r"|data-elementor-(?:type|id)"
    r"|data-element_type"
)
_LENGTH_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*([a-z%]*)\s*$", re.IGNORECASE)


def node_key(node: dict[str, Any]) -> str:
    """Dispatch key of a node: widget type for widgets, element type otherwise."""
    el_type = node.get("elType") or ""
    if el_type == "widget" and node.get("widgetType"):
        return str(node["widgetType"])
    return str(el_type)


def _settings(node: dict[str, Any]) -> dict[str, Any]:
    # Empty settings are stored as [] by PHP's json_encode
    settings = node.get("settings")
    return settings if isinstance(settings, dict) else {}


def _common(settings: dict[str, Any]) -> dict[str, Any]:
    attrs: dict[str, Any] = {}
    if settings.get("css_classes"):
        attrs["className"] = settings["css_classes"]
    if settings.get("_element_id"):
        attrs["anchor"] = settings["_element_id"]
    return attrs


def _percent(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return f"{float(value):g}%"


def _parse_length(value: Any) -> Optional[tuple[float, str]]:
    match = _LENGTH_PATTERN.match(str(value)) if value is not None else None
    if not match:
        return None
    return float(match.group(1)), match.group(2) or "px"


def _link_url(settings: dict[str, Any], key: str = "link") -> Optional[str]:
    link = settings.get(key)
    if isinstance(link, dict) and link.get("url"):
        return str(link["url"])
    return None


# -----------------------------------------------------------------------------
# Forward handlers: node dict -> NeutralElement
# -----------------------------------------------------------------------------


def _section(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    if settings.get("gap"):
        attrs["gap"] = settings["gap"]
    if settings.get("layout"):
        attrs["layout"] = settings["layout"]
    return NeutralElement(type=ElementType.ROW, attrs=attrs, children=context.children(node))


def _container(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    if settings.get("flex_direction"):
        attrs["direction"] = settings["flex_direction"]
    if settings.get("content_width"):
        attrs["contentWidth"] = settings["content_width"]
    return NeutralElement(type=ElementType.CONTAINER, attrs=attrs, children=context.children(node))


def _column(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    width = _percent(settings.get("_inline_size")) or _percent(settings.get("_column_size"))
    if width:
        attrs["width"] = width
    return NeutralElement(type=ElementType.COLUMN, attrs=attrs, children=context.children(node))


def _heading(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    size = str(settings.get("header_size") or "h2")
    level = int(size[1]) if re.fullmatch(r"h[1-6]", size) else 2
    attrs = {"level": level, **_common(settings)}
    if settings.get("align"):
        attrs["align"] = settings["align"]
    url = _link_url(settings)
    if url:
        attrs["url"] = url
    return NeutralElement(type=ElementType.HEADING, attrs=attrs, content=str(settings.get("title", "")))


def _text_editor(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    content = unwrap_paragraph(str(settings.get("editor", "")))
    return NeutralElement(type=ElementType.PARAGRAPH, attrs=_common(settings), content=content)


def _image(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    image = settings.get("image") if isinstance(settings.get("image"), dict) else {}
    if image.get("url"):
        attrs["src"] = image["url"]
    if image.get("id") not in (None, ""):
        attrs["mediaId"] = image["id"]
    if image.get("alt"):
        attrs["alt"] = image["alt"]
    if settings.get("image_size"):
        attrs["sizeSlug"] = settings["image_size"]
    if settings.get("caption"):
        attrs["caption"] = settings["caption"]
    if settings.get("align"):
        attrs["align"] = settings["align"]
    href = _link_url(settings)
    if href and settings.get("link_to", "custom") == "custom":
        attrs["href"] = href
    return NeutralElement(type=ElementType.IMAGE, attrs=attrs)


def _button(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    url = _link_url(settings)
    if url:
        attrs["url"] = url
    link = settings.get("link") if isinstance(settings.get("link"), dict) else {}
    if link.get("is_external"):
        attrs["linkTarget"] = "_blank"
    if settings.get("align"):
        attrs["align"] = settings["align"]
    return NeutralElement(type=ElementType.BUTTON, attrs=attrs, content=str(settings.get("text", "")))


def _divider(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    attrs = _common(settings)
    if settings.get("style"):
        attrs["style"] = settings["style"]
    return NeutralElement(type=ElementType.SEPARATOR, attrs=attrs)


def _spacer(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    space = settings.get("space") if isinstance(settings.get("space"), dict) else {}
    size = space.get("size")
    if size in (None, ""):
        size = DEFAULT_SPACER_SIZE
    height = f"{float(size):g}{space.get('unit') or 'px'}"
    return NeutralElement(type=ElementType.SPACER, attrs={"height": height, **_common(settings)})


def _html(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    return NeutralElement(type=ElementType.HTML, attrs={}, content=str(settings.get("html", "")))


def _video(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    provider = str(settings.get("video_type") or "youtube")
    if provider == "hosted":
        src = _link_url(settings, "hosted_url") or _link_url(settings, "external_url")
    else:
        src = settings.get(f"{provider}_url")
    attrs = {"provider": provider, **_common(settings)}
    if src:
        attrs["src"] = src
    return NeutralElement(type=ElementType.VIDEO, attrs=attrs)


def _icon_list(node: dict[str, Any], context: ExtractContext) -> NeutralElement:
    settings = _settings(node)
    items = settings.get("icon_list") if isinstance(settings.get("icon_list"), list) else []
    content = "".join(
        f"<li>{item.get('text', '')}</li>" for item in items if isinstance(item, dict)
    )
    return NeutralElement(
        type=ElementType.LIST, attrs={"ordered": False, **_common(settings)}, content=content
    )


FORWARD_HANDLERS: dict[str, ForwardRule] = {
    # Layout
    "section": ForwardRule(ElementType.ROW.value, _section),
    "container": ForwardRule(ElementType.CONTAINER.value, _container),
    "column": ForwardRule(ElementType.COLUMN.value, _column),
    # Widgets
    "heading": ForwardRule(ElementType.HEADING.value, _heading),
    "text-editor": ForwardRule(ElementType.PARAGRAPH.value, _text_editor),
    "image": ForwardRule(ElementType.IMAGE.value, _image),
    "button": ForwardRule(ElementType.BUTTON.value, _button),
    "divider": ForwardRule(ElementType.SEPARATOR.value, _divider),
    "spacer": ForwardRule(ElementType.SPACER.value, _spacer),
    "html": ForwardRule(ElementType.HTML.value, _html),
    "video": ForwardRule(ElementType.VIDEO.value, _video),
    "icon-list": ForwardRule(ElementType.LIST.value, _icon_list),
}


# -----------------------------------------------------------------------------
# Reverse handlers: NeutralElement -> node dict
# -----------------------------------------------------------------------------


def _stable_id(seed: str) -> str:
    return hashlib.sha1(seed.encode("utf-8")).hexdigest()[:7]


def _element_id(element: NeutralElement, context: ApplyContext) -> str:
    """Reuse the preserved Elementor id, else derive one from the element path."""
    data = element.builder_data
    if context.same_builder and data and isinstance(data.get("id"), str) and data["id"]:
        return data["id"]
    return _stable_id(f"{context.path}:{element.type}")


def _make_node(
    el_type: str,
    node_id: str,
    settings: dict[str, Any],
    elements: Optional[list[dict[str, Any]]] = None,
    widget_type: Optional[str] = None,
) -> dict[str, Any]:
    node: dict[str, Any] = {
        "id": node_id,
        "elType": el_type,
        "settings": settings,
        "elements": elements or [],
    }
    if widget_type:
        node["widgetType"] = widget_type
    return node


def _widget(
    element: NeutralElement, context: ApplyContext, widget_type: str, settings: dict[str, Any]
) -> dict[str, Any]:
    return _make_node("widget", _element_id(element, context), settings, widget_type=widget_type)


def _native_common(element: NeutralElement) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    if element.attrs.get("className"):
        settings["css_classes"] = element.attrs["className"]
    if element.attrs.get("anchor"):
        settings["_element_id"] = element.attrs["anchor"]
    return settings


def _to_section(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    for key in ("gap", "layout"):
        if element.attrs.get(key):
            settings[key] = element.attrs[key]

    # Sections only hold columns; wrap stray widgets in a full-width column
    node_id = _element_id(element, context)
    columns: list[dict[str, Any]] = []
    for index, child in enumerate(context.children(element)):
        if child.get("elType") == "column":
            columns.append(child)
        else:
            wrapper_id = _stable_id(f"{node_id}:column:{index}")
            columns.append(_make_node("column", wrapper_id, {"_column_size": 100}, [child]))
    return _make_node("section", node_id, settings, columns)


def _to_container(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    if element.attrs.get("direction"):
        settings["flex_direction"] = element.attrs["direction"]
    if element.attrs.get("contentWidth"):
        settings["content_width"] = element.attrs["contentWidth"]
    return _make_node(
        "container", _element_id(element, context), settings, context.children(element)
    )


def _to_column(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    length = _parse_length(element.attrs.get("width"))
    if length and length[1] == "%":
        settings["_column_size"] = int(round(length[0]))
        settings["_inline_size"] = length[0]
    else:
        settings["_column_size"] = 100
    return _make_node("column", _element_id(element, context), settings, context.children(element))


def _to_heading(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    level = element.attrs.get("level", 2)
    settings["title"] = element.content or ""
    settings["header_size"] = f"h{min(max(int(level), 1), 6)}"
    if element.attrs.get("align"):
        settings["align"] = element.attrs["align"]
    if element.attrs.get("url"):
        settings["link"] = {"url": element.attrs["url"]}
    return _widget(element, context, "heading", settings)


def _to_text_editor(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    settings["editor"] = f"<p>{element.content or ''}</p>"
    return _widget(element, context, "text-editor", settings)


def _to_image(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    image: dict[str, Any] = {"url": element.attrs.get("src", ""), "id": element.attrs.get("mediaId", "")}
    if element.attrs.get("alt"):
        image["alt"] = element.attrs["alt"]
    settings["image"] = image
    if element.attrs.get("sizeSlug"):
        settings["image_size"] = element.attrs["sizeSlug"]
    if element.attrs.get("caption"):
        settings["caption_source"] = "custom"
        settings["caption"] = element.attrs["caption"]
    if element.attrs.get("align"):
        settings["align"] = element.attrs["align"]
    if element.attrs.get("href"):
        settings["link_to"] = "custom"
        settings["link"] = {"url": element.attrs["href"]}
    return _widget(element, context, "image", settings)


def _to_button(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    settings["text"] = element.content or ""
    if element.attrs.get("url"):
        settings["link"] = {
            "url": element.attrs["url"],
            "is_external": "on" if element.attrs.get("linkTarget") == "_blank" else "",
        }
    if element.attrs.get("align"):
        settings["align"] = element.attrs["align"]
    return _widget(element, context, "button", settings)


def _to_divider(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    if element.attrs.get("style"):
        settings["style"] = element.attrs["style"]
    return _widget(element, context, "divider", settings)


def _to_spacer(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    settings = _native_common(element)
    length = _parse_length(element.attrs.get("height")) or (DEFAULT_SPACER_SIZE, "px")
    settings["space"] = {"unit": length[1], "size": length[0]}
    return _widget(element, context, "spacer", settings)


def _to_html(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    return _widget(element, context, "html", {"html": element.content or ""})


def _to_video(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    provider = str(element.attrs.get("provider") or "")
    src = str(element.attrs.get("src") or element.attrs.get("url") or "")
    if provider not in VIDEO_PROVIDERS:
        provider = next((p for p in VIDEO_PROVIDERS if p in src), "hosted")
    settings = _native_common(element)
    settings["video_type"] = provider
    if provider == "hosted":
        settings["hosted_url"] = {"url": src}
    else:
        settings[f"{provider}_url"] = src
    return _widget(element, context, "video", settings)


def _to_embed(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    url = str(element.attrs.get("url") or "")
    provider = str(element.attrs.get("provider") or "")
    if provider in VIDEO_PROVIDERS or any(p in url for p in VIDEO_PROVIDERS):
        return _to_video(element, context)
    return _widget(element, context, "html", {"html": f'<a href="{url}">{url}</a>'})


def _to_icon_list(element: NeutralElement, context: ApplyContext) -> dict[str, Any]:
    if element.children:
        texts = [child.content or "" for child in element.children]
        # List items are folded into the widget rather than converted
        context.report.total += len(element.children)
        context.report.converted += len(element.children)
    else:
        texts = Fragment(element.content or "").list_items()
    node_id = _element_id(element, context)
    items = [
        {"_id": _stable_id(f"{node_id}:{index}"), "text": text} for index, text in enumerate(texts)
    ]
    settings = _native_common(element)
    settings["icon_list"] = items
    return _make_node("widget", node_id, settings, widget_type="icon-list")


REVERSE_HANDLERS: dict[str, ReverseHandler] = {
    # Layout
    ElementType.ROW.value: _to_section,
    ElementType.SECTION.value: _to_container,
    ElementType.CONTAINER.value: _to_container,
    ElementType.GROUP.value: _to_container,
    ElementType.BUTTONS.value: _to_container,
    ElementType.COLUMN.value: _to_column,
    # Content
    ElementType.HEADING.value: _to_heading,
    ElementType.PARAGRAPH.value: _to_text_editor,
    ElementType.TEXT.value: _to_text_editor,
    ElementType.LIST.value: _to_icon_list,
    # Media
    ElementType.IMAGE.value: _to_image,
    ElementType.VIDEO.value: _to_video,
    ElementType.EMBED.value: _to_embed,
    # Interactive
    ElementType.BUTTON.value: _to_button,
    # Special
    ElementType.SEPARATOR.value: _to_divider,
    ElementType.SPACER.value: _to_spacer,
    ElementType.HTML.value: _to_html,
}


class ElementorAdapter(BaseAdapter):
    """Adapter for Elementor's ``_elementor_data`` JSON tree."""

    name = "elementor"
    display_name = "Elementor"
    supported = True
    version = AdapterVersion(adapter="1.0.0", min_builder_version="3.0.0", format_version="1.0")

    FORWARD_HANDLERS = FORWARD_HANDLERS
    REVERSE_HANDLERS = REVERSE_HANDLERS

    @property
    def capabilities(self) -> AdapterCapabilities:
        return AdapterCapabilities(
            supported_elements=frozenset(self.REVERSE_HANDLERS),
            supports_nesting=True,
            supports_responsive=True,
            supports_animation=True,
        )

    def detect(self, page: PageInput) -> DetectionResult:
        page = PageData.coerce(page)
        meta = page.meta or {}

        meta_markers = 0
        if meta.get(EDIT_MODE_META_KEY) == "builder":
            meta_markers += 1
        if meta.get(VERSION_META_KEY):
            meta_markers += 1
        if meta.get(DATA_META_KEY):
            meta_markers += max(_count_nodes(meta[DATA_META_KEY]), 1)

        html = page.content.rendered or page.content.raw or ""
        markup_markers = len(_MARKUP_PATTERN.findall(html))

        total = meta_markers + markup_markers
        if not total:
            return DetectionResult.not_detected()
        return DetectionResult(
            detected=True,
            confidence=saturating_confidence(total),
            method=DetectionMethod.META if meta_markers else DetectionMethod.CLASS,
            details={"metaMarkers": meta_markers, "markupMarkers": markup_markers},
        )

    def validate(self, content: Any) -> ValidationReport:
        errors: list[str] = []
        warnings: list[str] = []
        data = _load(content)
        if data is None:
            return ValidationReport.from_messages(["Elementor data is not valid JSON"], [])
        if not isinstance(data, list):
            return ValidationReport.from_messages(["Elementor data must be a JSON list"], [])

        unsupported: set[str] = set()
        stack = [(str(index), node) for index, node in reversed(list(enumerate(data)))]
        while stack:
            path, node = stack.pop()
            if not isinstance(node, dict):
                errors.append(f"Element {path} is not an object")
                continue
            if not node.get("elType"):
                errors.append(f"Element {path} has no elType")
            elif node["elType"] == "widget" and not node.get("widgetType"):
                errors.append(f"Widget {path} has no widgetType")
            if not node.get("id"):
                warnings.append(f"Element {path} has no id")
            key = node_key(node)
            if key and key not in self.FORWARD_HANDLERS and key not in unsupported:
                unsupported.add(key)
                warnings.append(f"Unsupported element '{key}'")
            children = node.get("elements") or []
            if not isinstance(children, list):
                errors.append(f"Element {path} has non-list elements")
                continue
            stack.extend((f"{path}.{i}", c) for i, c in reversed(list(enumerate(children))))

        return ValidationReport.from_messages(errors, warnings)

    def page_content(self, page: PageData) -> Any:
        return page.meta.get(DATA_META_KEY)

    def parse_native(self, content: Any, report: ConversionReport) -> Optional[list[dict[str, Any]]]:
        if content is None or content == "":
            report.warn(
                WarningCode.NO_BUILDER_DATA,
                f"No Elementor data ({DATA_META_KEY}) found",
                severity=WarningSeverity.ERROR,
            )
            return None

        data = _load(content)
        if not isinstance(data, list):
            report.warn(
                WarningCode.PARSE_ERROR,
                "Elementor data must be a JSON list of elements",
                severity=WarningSeverity.ERROR,
            )
            return None

        nodes = []
        for index, item in enumerate(data):
            if isinstance(item, dict):
                nodes.append(item)
            else:
                report.warn(
                    WarningCode.INVALID_ATTRIBUTES,
                    f"Skipping non-object element of type {type(item).__name__}",
                    str(index),
                )
        return nodes

    def serialize_native(self, nodes: list[dict[str, Any]]) -> str:
        return json.dumps(nodes, ensure_ascii=False, sort_keys=True)

    def native_name(self, node: dict[str, Any]) -> str:
        return node_key(node)

    def native_attrs(self, node: dict[str, Any]) -> dict[str, Any]:
        return _settings(node)

    def native_children(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        children = node.get("elements")
        if not isinstance(children, list):
            return []
        return [child for child in children if isinstance(child, dict)]

    def native_markup(self, node: dict[str, Any]) -> Optional[str]:
        return None

    def builder_data(self, node: dict[str, Any], unknown: bool = False) -> dict[str, Any]:
        data = super().builder_data(node, unknown)
        data["id"] = node.get("id")
        data["elType"] = node.get("elType")
        if unknown:
            data["elements"] = copy.deepcopy(node.get("elements") or [])
        return data

    def html_node(self, html: str, context: ApplyContext) -> dict[str, Any]:
        node_id = _stable_id(f"{context.path}:html")
        return _make_node("widget", node_id, {"html": html}, widget_type="html")

    def rebuild_unknown(
        self, element: NeutralElement, context: ApplyContext
    ) -> Optional[dict[str, Any]]:
        data = element.builder_data
        if not data or not isinstance(data.get("blockName"), str):
            return None
        el_type = data.get("elType") or "widget"
        node_id = data.get("id") or _stable_id(f"{context.path}:unknown")
        attrs = data.get("attrs") if isinstance(data.get("attrs"), dict) else {}
        elements = data.get("elements") if isinstance(data.get("elements"), list) else []
        widget_type = data["blockName"] if el_type == "widget" else None
        return _make_node(el_type, node_id, copy.deepcopy(attrs), copy.deepcopy(elements), widget_type)

    def rename_native(self, node: dict[str, Any], name: str, attrs: dict[str, Any]) -> dict[str, Any]:
        node = dict(node)
        if node.get("elType") == "widget":
            node["widgetType"] = name
        else:
            node["elType"] = name
        node["settings"] = attrs
        return node


def _load(content: Any) -> Any:
    """Decode Elementor data; None when it is not valid JSON."""
    if not isinstance(content, str):
        return content
    try:
        return json.loads(content)
    except (ValueError, RecursionError):
        return None


def _count_nodes(content: Any) -> int:
    data = _load(content)
    if not isinstance(data, list):
        return 0
    total = 0
    stack = list(data)
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            total += 1
            children = node.get("elements")
            if isinstance(children, list):
                stack.extend(children)
    return total
