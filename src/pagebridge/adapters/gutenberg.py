"""
Gutenberg (block editor) adapter.

Reads and writes block-comment markup. Semantic attributes come from the
block's JSON attributes first and from its rendered markup second, since
many core blocks keep values such as ``url`` or ``width`` only in the HTML.
"""

import dataclasses
import re
from html import escape
from typing import Any, Optional

from ..models.layout import ElementType, NeutralElement, create_image
from ..models.page import PageData
from ..models.results import DetectionMethod, DetectionResult, WarningCode, WarningSeverity
from ..parsing import block_comments
from ..parsing.block_comments import FREEFORM_BLOCK_NAME, normalize_block_name
from ..parsing.html import HEADING_TAGS, Fragment, style_variant
from ..parsing.native import (
    MarkerKind,
    NativeBlock,
    assemble_tree,
    flatten_blocks,
    unmatched_markers,
)
from .base import (
    AdapterVersion,
    ApplyContext,
    BaseAdapter,
    ConversionReport,
    ExtractContext,
    ForwardRule,
    ReverseHandler,
    ValidationReport,
    public_attrs,
    saturating_confidence,
)
from .protocols import PageInput

COMMON_ATTRS = ("align", "anchor", "className")
EMBED_PREFIX = "core-embed/"
DEFAULT_SPACER_HEIGHT = "100px"

_BLOCK_CLASS_PATTERN = re.compile(r"""class=["'][^"']*\bwp-block-""")


def _common(attrs: dict[str, Any]) -> dict[str, Any]:
    return public_attrs(attrs, *COMMON_ATTRS)


def _inner(fragment: Fragment, block: NativeBlock, *tags: str) -> str:
    """Inner markup of the first matching tag, else the block's own HTML."""
    found = fragment.inner_html(*tags)
    return found if found is not None else block.inner_html.strip()


def _css_length(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}px"
    return str(value)


# -----------------------------------------------------------------------------
# Forward handlers: NativeBlock -> NeutralElement
# -----------------------------------------------------------------------------


def _paragraph(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    content = _inner(Fragment(block.inner_html), block, "p")
    return NeutralElement(type=ElementType.PARAGRAPH, attrs=_common(block.attrs), content=content)


def _heading(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    level = block.attrs.get("level") or fragment.heading_level() or 2
    attrs = {"level": int(level), **_common(block.attrs)}
    if "textAlign" in block.attrs:
        attrs["align"] = block.attrs["textAlign"]
    return NeutralElement(
        type=ElementType.HEADING,
        attrs=attrs,
        content=_inner(fragment, block, *HEADING_TAGS),
    )


def _list(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    container = fragment.first("ul", "ol")
    ordered = bool(block.attrs.get("ordered")) or (container is not None and container.name == "ol")
    attrs = {"ordered": ordered, **_common(block.attrs)}
    if block.inner_blocks:
        return NeutralElement(type=ElementType.LIST, attrs=attrs, children=context.children(block))
    return NeutralElement(type=ElementType.LIST, attrs=attrs, content=_inner(fragment, block, "ul", "ol"))


def _list_item(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    element = NeutralElement(
        type=ElementType.TEXT,
        attrs=_common(block.attrs),
        content=_inner(Fragment(block.inner_html), block, "li"),
    )
    if block.inner_blocks:
        element.children = context.children(block)
    return element


def _quote(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    body, citation = Fragment(block.inner_html).quote_parts()
    attrs = _common(block.attrs)
    if citation:
        attrs["citation"] = citation
    if block.inner_blocks:
        return NeutralElement(type=ElementType.QUOTE, attrs=attrs, children=context.children(block))
    return NeutralElement(type=ElementType.QUOTE, attrs=attrs, content=body or "")


def _code(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    content = _inner(Fragment(block.inner_html), block, "code", "pre")
    return NeutralElement(type=ElementType.CODE, attrs=_common(block.attrs), content=content)


def _preformatted(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    content = _inner(Fragment(block.inner_html), block, "pre")
    return NeutralElement(type=ElementType.CODE, attrs=_common(block.attrs), content=content)


def _verse(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    content = _inner(Fragment(block.inner_html), block, "pre")
    return NeutralElement(type=ElementType.TEXT, attrs=_common(block.attrs), content=content)


def _raw_html(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(type=ElementType.HTML, attrs={}, content=block.inner_html.strip())


def _shortcode(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(type=ElementType.SHORTCODE, attrs={}, content=block.inner_html.strip())


def _media_attrs(block: NativeBlock, fragment: Fragment, tag: str) -> dict[str, Any]:
    attrs = _common(block.attrs)
    if block.attrs.get("id") is not None:
        attrs["mediaId"] = block.attrs["id"]
    src = block.attrs.get("url") or block.attrs.get("src") or fragment.attr(tag, "src")
    if src:
        attrs["src"] = src
    caption = fragment.inner_html("figcaption")
    if caption:
        attrs["caption"] = caption
    return attrs


def _image(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    attrs = _media_attrs(block, fragment, "img")
    attrs.update(public_attrs(block.attrs, "sizeSlug", "linkDestination", "width", "height"))
    alt = block.attrs.get("alt") or fragment.attr("img", "alt")
    if alt:
        attrs["alt"] = alt
    href = block.attrs.get("href") or fragment.attr("a", "href")
    if href:
        attrs["href"] = href
    return NeutralElement(type=ElementType.IMAGE, attrs=attrs)


def _gallery(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    attrs.update(public_attrs(block.attrs, "columns", "linkTo", "sizeSlug", "ids"))
    if block.inner_blocks:
        children = context.children(block)
    else:
        # Galleries saved before WordPress 5.9 have no inner image blocks
        children = [create_image(**image) for image in Fragment(block.inner_html).images()]
    return NeutralElement(type=ElementType.GALLERY, attrs=attrs, children=children)


def _video(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _media_attrs(block, Fragment(block.inner_html), "video")
    return NeutralElement(type=ElementType.VIDEO, attrs=attrs)


def _audio(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _media_attrs(block, Fragment(block.inner_html), "audio")
    return NeutralElement(type=ElementType.AUDIO, attrs=attrs)


def _file(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    attrs = _common(block.attrs)
    url = block.attrs.get("href") or fragment.attr("a", "href")
    if url:
        attrs["url"] = url
    attrs["download"] = True
    return NeutralElement(type=ElementType.BUTTON, attrs=attrs, content=fragment.inner_html("a") or "")


def _embed(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    attrs = _common(block.attrs)
    url = block.attrs.get("url") or fragment.text("div") or fragment.text()
    if url:
        attrs["url"] = url.splitlines()[0].strip()
    provider = block.attrs.get("providerNameSlug")
    if not provider and block.name.startswith(EMBED_PREFIX):
        provider = block.name[len(EMBED_PREFIX) :]
    if provider:
        attrs["provider"] = provider
    if block.attrs.get("type"):
        attrs["embedType"] = block.attrs["type"]
    caption = fragment.inner_html("figcaption")
    if caption:
        attrs["caption"] = caption
    return NeutralElement(type=ElementType.EMBED, attrs=attrs)


def _button(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    attrs = _common(block.attrs)
    url = block.attrs.get("url") or fragment.attr("a", "href")
    if url:
        attrs["url"] = url
    target = block.attrs.get("linkTarget") or fragment.attr("a", "target")
    if target:
        attrs["linkTarget"] = target
    if block.attrs.get("rel"):
        attrs["rel"] = block.attrs["rel"]
    return NeutralElement(type=ElementType.BUTTON, attrs=attrs, content=_inner(fragment, block, "a"))


def _buttons(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    return NeutralElement(
        type=ElementType.BUTTONS, attrs=_common(block.attrs), children=context.children(block)
    )


def _search(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = {"formType": "search", **_common(block.attrs)}
    attrs.update(public_attrs(block.attrs, "label", "placeholder", "buttonText"))
    return NeutralElement(type=ElementType.FORM, attrs=attrs)


def _separator(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    classes = str(block.attrs.get("className") or "").split()
    style = style_variant(classes) or style_variant(Fragment(block.inner_html).classes("hr"))
    attrs = public_attrs(block.attrs, "align", "anchor")
    remaining = [token for token in classes if not token.startswith("is-style-")]
    if remaining:
        attrs["className"] = " ".join(remaining)
    if style:
        attrs["style"] = style
    return NeutralElement(type=ElementType.SEPARATOR, attrs=attrs)


def _spacer(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    height = block.attrs.get("height") or Fragment(block.inner_html).style_property("height")
    attrs = {"height": _css_length(height or DEFAULT_SPACER_HEIGHT), **_common(block.attrs)}
    return NeutralElement(type=ElementType.SPACER, attrs=attrs)


def _group(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    attrs.update(public_attrs(block.attrs, "tagName"))
    return NeutralElement(type=ElementType.GROUP, attrs=attrs, children=context.children(block))


def _columns(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    attrs.update(public_attrs(block.attrs, "verticalAlignment"))
    return NeutralElement(type=ElementType.ROW, attrs=attrs, children=context.children(block))


def _column(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = _common(block.attrs)
    attrs.update(public_attrs(block.attrs, "verticalAlignment"))
    width = block.attrs.get("width") or Fragment(block.inner_html).style_property("flex-basis")
    if isinstance(width, (int, float)) and not isinstance(width, bool):
        # Numeric widths from older editor versions are percentages
        width = f"{width:g}%"
    if width:
        attrs["width"] = width
    return NeutralElement(type=ElementType.COLUMN, attrs=attrs, children=context.children(block))


def _cover(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    fragment = Fragment(block.inner_html)
    attrs = _common(block.attrs)
    background = block.attrs.get("url") or fragment.attr("img", "src")
    if background:
        attrs["backgroundUrl"] = background
    if block.attrs.get("id") is not None:
        attrs["mediaId"] = block.attrs["id"]
    attrs.update(public_attrs(block.attrs, "dimRatio", "minHeight"))
    return NeutralElement(type=ElementType.SECTION, attrs=attrs, children=context.children(block))


def _template_part(block: NativeBlock, context: ExtractContext) -> NeutralElement:
    attrs = public_attrs(block.attrs, "slug", "theme", "tagName", "area")
    return NeutralElement(type=ElementType.SECTION, attrs=attrs, children=context.children(block))


FORWARD_HANDLERS: dict[str, ForwardRule] = {
    # Layout
    "core/group": ForwardRule(ElementType.GROUP.value, _group),
    "core/columns": ForwardRule(ElementType.ROW.value, _columns),
    "core/column": ForwardRule(ElementType.COLUMN.value, _column),
    "core/cover": ForwardRule(ElementType.SECTION.value, _cover),
    "core/template-part": ForwardRule(ElementType.SECTION.value, _template_part),
    # Text
    "core/paragraph": ForwardRule(ElementType.PARAGRAPH.value, _paragraph),
    "core/heading": ForwardRule(ElementType.HEADING.value, _heading),
    "core/list": ForwardRule(ElementType.LIST.value, _list),
    "core/list-item": ForwardRule(ElementType.TEXT.value, _list_item),
    "core/quote": ForwardRule(ElementType.QUOTE.value, _quote),
    "core/pullquote": ForwardRule(ElementType.QUOTE.value, _quote),
    "core/code": ForwardRule(ElementType.CODE.value, _code),
    "core/preformatted": ForwardRule(ElementType.CODE.value, _preformatted),
    "core/verse": ForwardRule(ElementType.TEXT.value, _verse),
    "core/freeform": ForwardRule(ElementType.HTML.value, _raw_html),
    # Media
    "core/image": ForwardRule(ElementType.IMAGE.value, _image),
    "core/gallery": ForwardRule(ElementType.GALLERY.value, _gallery),
    "core/video": ForwardRule(ElementType.VIDEO.value, _video),
    "core/audio": ForwardRule(ElementType.AUDIO.value, _audio),
    "core/file": ForwardRule(ElementType.BUTTON.value, _file),
    "core/embed": ForwardRule(ElementType.EMBED.value, _embed),
    # Interactive
    "core/button": ForwardRule(ElementType.BUTTON.value, _button),
    "core/buttons": ForwardRule(ElementType.BUTTONS.value, _buttons),
    "core/search": ForwardRule(ElementType.FORM.value, _search),
    # Special
    "core/separator": ForwardRule(ElementType.SEPARATOR.value, _separator),
    "core/spacer": ForwardRule(ElementType.SPACER.value, _spacer),
    "core/html": ForwardRule(ElementType.HTML.value, _raw_html),
    "core/shortcode": ForwardRule(ElementType.SHORTCODE.value, _shortcode),
}


# -----------------------------------------------------------------------------
# Reverse handlers: NeutralElement -> NativeBlock
# -----------------------------------------------------------------------------


def _leaf(name: str, attrs: dict[str, Any], markup: str) -> NativeBlock:
    markup = f"\n{markup}\n"
    return NativeBlock(name=name, attrs=attrs, inner_html=markup, inner_content=(markup,))


def _wrapper(
    name: str, attrs: dict[str, Any], open_tag: str, close_tag: str, children: list[NativeBlock]
) -> NativeBlock:
    """Block whose markup wraps its inner blocks."""
    if not children:
        return _leaf(name, attrs, f"{open_tag}{close_tag}")

    parts: list[Optional[str]] = [f"\n{open_tag}\n"]
    for index in range(len(children)):
        if index:
            parts.append("\n\n")
        parts.append(None)
    parts.append(f"\n{close_tag}\n")
    return NativeBlock(
        name=name,
        attrs=attrs,
        inner_blocks=tuple(children),
        inner_html="".join(part for part in parts if part is not None),
        inner_content=tuple(parts),
    )


def _text_of(element: NeutralElement) -> str:
    return element.content or ""


def _attr(value: Any) -> str:
    return escape(str(value), quote=True)


def _heading_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return 2
    return min(max(level, 1), 6)


def _to_paragraph(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    return _leaf("core/paragraph", _common(element.attrs), f"<p>{_text_of(element)}</p>")


def _to_heading(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    level = _heading_level(element.attrs.get("level", 2))
    attrs: dict[str, Any] = {"level": level, **public_attrs(element.attrs, "anchor", "className")}
    if "align" in element.attrs:
        attrs["textAlign"] = element.attrs["align"]
    return _leaf("core/heading", attrs, f"<h{level}>{_text_of(element)}</h{level}>")


def _to_verse(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    markup = f'<pre class="wp-block-verse">{_text_of(element)}</pre>'
    return _leaf("core/verse", _common(element.attrs), markup)


def _to_list_item(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    children = context.children(element)
    attrs = _common(element.attrs)
    if children:
        return _wrapper("core/list-item", attrs, f"<li>{_text_of(element)}", "</li>", children)
    return _leaf("core/list-item", attrs, f"<li>{_text_of(element)}</li>")


def _to_list(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    ordered = bool(element.attrs.get("ordered"))
    tag = "ol" if ordered else "ul"
    attrs = _common(element.attrs)
    if ordered:
        attrs["ordered"] = True
    if element.children:
        children = context.children(element, overrides={ElementType.TEXT.value: _to_list_item})
        return _wrapper("core/list", attrs, f'<{tag} class="wp-block-list">', f"</{tag}>", children)
    return _leaf("core/list", attrs, f'<{tag} class="wp-block-list">{_text_of(element)}</{tag}>')


def _to_quote(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    citation = element.attrs.get("citation")
    cite = f"<cite>{citation}</cite>" if citation else ""
    open_tag = '<blockquote class="wp-block-quote">'
    if element.children:
        children = context.children(element)
        return _wrapper("core/quote", _common(element.attrs), open_tag, f"{cite}</blockquote>", children)
    return _leaf("core/quote", _common(element.attrs), f"{open_tag}{_text_of(element)}{cite}</blockquote>")


def _to_code(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    markup = f'<pre class="wp-block-code"><code>{_text_of(element)}</code></pre>'
    return _leaf("core/code", _common(element.attrs), markup)


def _caption(element: NeutralElement) -> str:
    caption = element.attrs.get("caption")
    return f'<figcaption class="wp-element-caption">{caption}</figcaption>' if caption else ""


def _media_native_attrs(element: NeutralElement) -> dict[str, Any]:
    attrs = _common(element.attrs)
    if element.attrs.get("mediaId") is not None:
        attrs["id"] = element.attrs["mediaId"]
    return attrs


def _to_image(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _media_native_attrs(element)
    attrs.update(public_attrs(element.attrs, "sizeSlug", "linkDestination", "width", "height"))
    src = _attr(element.attrs.get("src", ""))
    alt = _attr(element.attrs.get("alt", ""))
    img = f'<img src="{src}" alt="{alt}"/>'
    if element.attrs.get("href"):
        img = f'<a href="{_attr(element.attrs["href"])}">{img}</a>'
    markup = f'<figure class="wp-block-image">{img}{_caption(element)}</figure>'
    return _leaf("core/image", attrs, markup)


def _to_gallery(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    attrs.update(public_attrs(element.attrs, "columns", "linkTo", "sizeSlug"))
    children = context.children(element)
    open_tag = '<figure class="wp-block-gallery has-nested-images">'
    return _wrapper("core/gallery", attrs, open_tag, f"{_caption(element)}</figure>", children)


def _to_video(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    src = _attr(element.attrs.get("src", ""))
    markup = f'<figure class="wp-block-video"><video controls src="{src}"></video>{_caption(element)}</figure>'
    return _leaf("core/video", _media_native_attrs(element), markup)


def _to_audio(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    src = _attr(element.attrs.get("src", ""))
    markup = f'<figure class="wp-block-audio"><audio controls src="{src}"></audio>{_caption(element)}</figure>'
    return _leaf("core/audio", _media_native_attrs(element), markup)


def _to_embed(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    url = str(element.attrs.get("url", ""))
    attrs = _common(element.attrs)
    if url:
        attrs["url"] = url
    if element.attrs.get("provider"):
        attrs["providerNameSlug"] = element.attrs["provider"]
    if element.attrs.get("embedType"):
        attrs["type"] = element.attrs["embedType"]
    markup = (
        f'<figure class="wp-block-embed"><div class="wp-block-embed__wrapper">\n'
        f"{escape(url)}\n</div>{_caption(element)}</figure>"
    )
    return _leaf("core/embed", attrs, markup)


def _to_button(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    attrs.update(public_attrs(element.attrs, "linkTarget", "rel"))
    href = f' href="{_attr(element.attrs["url"])}"' if element.attrs.get("url") else ""
    target = f' target="{_attr(element.attrs["linkTarget"])}"' if element.attrs.get("linkTarget") else ""
    markup = (
        f'<div class="wp-block-button"><a class="wp-block-button__link wp-element-button"'
        f"{href}{target}>{_text_of(element)}</a></div>"
    )
    return _leaf("core/button", attrs, markup)


def _to_buttons(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    children = context.children(element)
    return _wrapper("core/buttons", _common(element.attrs), '<div class="wp-block-buttons">', "</div>", children)


def _to_search(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    if element.attrs.get("formType", "search") != "search" or element.children:
        raise ValueError("only search forms have a block equivalent")
    attrs = _common(element.attrs)
    attrs.update(public_attrs(element.attrs, "label", "placeholder", "buttonText"))
    return NativeBlock(name="core/search", attrs=attrs)


def _to_separator(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    classes = str(element.attrs.get("className") or "").split()
    style = element.attrs.get("style")
    if style and f"is-style-{style}" not in classes:
        classes.append(f"is-style-{style}")
    attrs = public_attrs(element.attrs, "align", "anchor")
    if classes:
        attrs["className"] = " ".join(classes)
    hr_classes = " ".join(["wp-block-separator", "has-alpha-channel-opacity", *classes])
    return _leaf("core/separator", attrs, f'<hr class="{_attr(hr_classes)}"/>')


def _to_spacer(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    height = _css_length(element.attrs.get("height") or DEFAULT_SPACER_HEIGHT)
    attrs = {"height": height, **_common(element.attrs)}
    markup = f'<div style="height:{_attr(height)}" aria-hidden="true" class="wp-block-spacer"></div>'
    return _leaf("core/spacer", attrs, markup)


def _to_html(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    return _leaf("core/html", {}, _text_of(element))


def _to_shortcode(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    return _leaf("core/shortcode", {}, _text_of(element))


def _to_columns(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    attrs.update(public_attrs(element.attrs, "verticalAlignment"))
    children = context.children(element)
    return _wrapper("core/columns", attrs, '<div class="wp-block-columns">', "</div>", children)


def _to_column(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    attrs.update(public_attrs(element.attrs, "verticalAlignment"))
    style = ""
    if element.attrs.get("width"):
        width = str(element.attrs["width"])
        attrs["width"] = width
        style = f' style="flex-basis:{_attr(width)}"'
    children = context.children(element)
    return _wrapper("core/column", attrs, f'<div class="wp-block-column"{style}>', "</div>", children)


def _to_group(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    tag = str(element.attrs.get("tagName") or "div")
    if tag != "div":
        attrs["tagName"] = tag
    children = context.children(element)
    return _wrapper("core/group", attrs, f'<{tag} class="wp-block-group">', f"</{tag}>", children)


def _to_cover(element: NeutralElement, context: ApplyContext) -> NativeBlock:
    attrs = _common(element.attrs)
    background = ""
    if element.attrs.get("backgroundUrl"):
        attrs["url"] = element.attrs["backgroundUrl"]
        background = (
            f'<img class="wp-block-cover__image-background" alt="" '
            f'src="{_attr(element.attrs["backgroundUrl"])}"/>'
        )
    if element.attrs.get("mediaId") is not None:
        attrs["id"] = element.attrs["mediaId"]
    attrs.update(public_attrs(element.attrs, "dimRatio", "minHeight"))
    open_tag = (
        '<div class="wp-block-cover"><span aria-hidden="true" class="wp-block-cover__background">'
        f'</span>{background}<div class="wp-block-cover__inner-container">'
    )
    return _wrapper("core/cover", attrs, open_tag, "</div></div>", context.children(element))


REVERSE_HANDLERS: dict[str, ReverseHandler] = {
    # Layout
    ElementType.SECTION.value: _to_cover,
    ElementType.CONTAINER.value: _to_group,
    ElementType.GROUP.value: _to_group,
    ElementType.ROW.value: _to_columns,
    ElementType.COLUMN.value: _to_column,
    # Text
    ElementType.PARAGRAPH.value: _to_paragraph,
    ElementType.HEADING.value: _to_heading,
    ElementType.TEXT.value: _to_verse,
    ElementType.LIST.value: _to_list,
    ElementType.QUOTE.value: _to_quote,
    ElementType.CODE.value: _to_code,
    # Media
    ElementType.IMAGE.value: _to_image,
    ElementType.GALLERY.value: _to_gallery,
    ElementType.VIDEO.value: _to_video,
    ElementType.AUDIO.value: _to_audio,
    ElementType.EMBED.value: _to_embed,
    # Interactive
    ElementType.BUTTON.value: _to_button,
    ElementType.BUTTONS.value: _to_buttons,
    ElementType.FORM.value: _to_search,
    # Special
    ElementType.SEPARATOR.value: _to_separator,
    ElementType.SPACER.value: _to_spacer,
    ElementType.HTML.value: _to_html,
    ElementType.SHORTCODE.value: _to_shortcode,
}


class GutenbergAdapter(BaseAdapter):
    """
    Adapter for the WordPress block editor.

    Example:
        adapter = GutenbergAdapter()
        result = adapter.extract_layout_from_content(
            '<!-- wp:heading {"level":2} -->\\n<h2>Hi</h2>\\n<!-- /wp:heading -->'
        )
        result.data.elements[0].to_dict()
        # {"type": "heading", "attrs": {"level": 2}, "content": "Hi"}
    """

    name = "gutenberg"
    display_name = "Gutenberg (Block Editor)"
    supported = True
    version = AdapterVersion(adapter="1.0.0", min_builder_version="5.0", format_version="1.0")

    FORWARD_HANDLERS = FORWARD_HANDLERS
    REVERSE_HANDLERS = REVERSE_HANDLERS

    def detect(self, page: PageInput) -> DetectionResult:
        page = PageData.coerce(page)
        markers = block_comments.count_openers(page.content.raw or "")
        if not markers:
            markers = block_comments.count_openers(page.content.rendered)
        if markers:
            return DetectionResult(
                detected=True,
                confidence=saturating_confidence(markers),
                method=DetectionMethod.CONTENT,
                details={"blockCount": markers},
            )

        # Rendered-only records keep the block wrapper classes
        classes = len(_BLOCK_CLASS_PATTERN.findall(page.content.rendered))
        if classes:
            return DetectionResult(
                detected=True,
                confidence=saturating_confidence(classes),
                method=DetectionMethod.CLASS,
                details={"blockClassCount": classes},
            )
        return DetectionResult.not_detected()

    def validate(self, content: Any) -> ValidationReport:
        if not isinstance(content, str):
            return ValidationReport.from_messages(["Content must be a string"], [])

        errors: list[str] = []
        warnings: list[str] = []
        markers = block_comments.lex(content)
        for marker in markers:
            if not marker.attrs_valid:
                errors.append(f"Invalid attribute JSON in '{marker.name}' at offset {marker.start}")

        unclosed, stray = unmatched_markers(markers)
        errors.extend(f"Unclosed block '{m.name}' at offset {m.start}" for m in unclosed)
        errors.extend(f"Closing marker without opener '{m.name}' at offset {m.start}" for m in stray)

        blocks = assemble_tree(content, markers, freeform_name=FREEFORM_BLOCK_NAME)
        if any(b.name == FREEFORM_BLOCK_NAME for b in blocks) and markers:
            warnings.append("Content found outside of any block")
        for name in sorted({b.name for b in flatten_blocks(blocks)}):
            if self.forward_rule(name) is None:
                warnings.append(f"Unsupported block '{name}'")

        return ValidationReport.from_messages(errors, warnings)

    def forward_rule(self, name: str) -> Optional[ForwardRule]:
        rule = self.FORWARD_HANDLERS.get(name)
        if rule is None and name.startswith(EMBED_PREFIX):
            return self.FORWARD_HANDLERS["core/embed"]
        return rule

    def parse_native(self, content: Any, report: ConversionReport) -> Optional[list[NativeBlock]]:
        if content is None:
            return []
        if not isinstance(content, str):
            report.warn(
                WarningCode.PARSE_ERROR,
                f"Expected block markup, got {type(content).__name__}",
                severity=WarningSeverity.ERROR,
            )
            return None

        markers = block_comments.lex(content)
        for marker in markers:
            if not marker.attrs_valid:
                report.warn(
                    WarningCode.INVALID_ATTRIBUTES,
                    f"Invalid attribute JSON on '{marker.name}' at offset {marker.start}; using {{}}",
                )

        unclosed, stray = unmatched_markers(markers)
        for marker in unclosed + stray:
            kind = "opening" if marker.kind is MarkerKind.OPEN else "closing"
            report.warn(
                WarningCode.PARSE_ERROR,
                f"Unmatched {kind} marker for '{marker.name}' at offset {marker.start} kept as text",
            )

        # Unmatched markers remain inside freeform blocks
        return assemble_tree(content, markers, freeform_name=FREEFORM_BLOCK_NAME)

    def serialize_native(self, nodes: list[NativeBlock]) -> str:
        return block_comments.serialize_blocks(nodes)

    def native_name(self, node: NativeBlock) -> str:
        return node.name

    def native_attrs(self, node: NativeBlock) -> dict[str, Any]:
        return node.attrs

    def native_children(self, node: NativeBlock) -> list[NativeBlock]:
        return list(node.inner_blocks)

    def native_markup(self, node: NativeBlock) -> Optional[str]:
        return "".join(
            part if isinstance(part, str) else block_comments.serialize_block(part)
            for part in node.iter_inner()
        )

    def html_node(self, html: str, context: ApplyContext) -> NativeBlock:
        return _leaf("core/html", {}, html)

    def rebuild_unknown(
        self, element: NeutralElement, context: ApplyContext
    ) -> Optional[NativeBlock]:
        data = element.builder_data
        if not data or not isinstance(data.get("blockName"), str):
            return None
        attrs = data.get("attrs") if isinstance(data.get("attrs"), dict) else {}
        markup = element.content if element.content is not None else data.get("innerHTML") or ""
        name = normalize_block_name(data["blockName"])
        if not markup:
            return NativeBlock(name=name, attrs=dict(attrs))
        return NativeBlock(name=name, attrs=dict(attrs), inner_html=markup, inner_content=(markup,))

    def rename_native(self, node: NativeBlock, name: str, attrs: dict[str, Any]) -> NativeBlock:
        return dataclasses.replace(node, name=name, attrs=attrs)
