"""Neutral layout model shared by every builder adapter."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..parsing.native import MAX_NESTING_DEPTH

# Current layout schema version
LAYOUT_VERSION = "1.0"


class ElementType(str, Enum):
    """Vocabulary of neutral element types."""

    # Structural
    SECTION = "section"
    CONTAINER = "container"
    ROW = "row"
    COLUMN = "column"
    GROUP = "group"

    # Content
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    LIST = "list"
    QUOTE = "quote"
    CODE = "code"

    # Media
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    GALLERY = "gallery"
    EMBED = "embed"

    # Interactive
    BUTTON = "button"
    BUTTONS = "buttons"
    FORM = "form"
    INPUT = "input"

    # Special
    SEPARATOR = "separator"
    SPACER = "spacer"
    HTML = "html"
    SHORTCODE = "shortcode"
    UNKNOWN = "unknown"


STRUCTURAL_TYPES = frozenset({"section", "container", "row", "column", "group", "buttons"})
CONTENT_TYPES = frozenset({"heading", "paragraph", "text", "list", "quote", "code"})
MEDIA_TYPES = frozenset({"image", "video", "audio", "gallery", "embed"})


@dataclass
class NeutralElement:
    """
    One node of the neutral layout tree.

    ``type`` is kept as a plain string (usually an :class:`ElementType` value)
    so that element types coming from newer producers survive a round trip.

    Attributes:
        type: Neutral element type
        attrs: Semantic attributes (level, src, url, width, ...) plus optional
            ``_builderData`` carrying the original native name/attrs
        content: Text or HTML payload for content elements
        children: Nested elements for containers (row, column, group, ...)
    """

    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    content: Optional[str] = None
    children: Optional[list[NeutralElement]] = None

    def __post_init__(self) -> None:
        if isinstance(self.type, ElementType):
            self.type = self.type.value

    @property
    def builder_data(self) -> Optional[dict[str, Any]]:
        """Original native payload preserved for lossless reconstruction."""
        data = self.attrs.get("_builderData")
        return data if isinstance(data, dict) else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the neutral layout wire format."""
        data: dict[str, Any] = {"type": self.type, "attrs": copy.deepcopy(self.attrs)}
        if self.content is not None:
            data["content"] = self.content
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], depth: int = 0) -> NeutralElement:
        """
        Build an element from its wire format.

        Raises:
            ValueError: If the payload is malformed or nested deeper than
                ``MAX_NESTING_DEPTH`` levels
        """
        if depth > MAX_NESTING_DEPTH:
            raise ValueError(f"Layout nesting exceeds {MAX_NESTING_DEPTH} levels")
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise ValueError(f"Invalid layout element of type {type(data).__name__}")

        attrs = data.get("attrs") or {}
        if not isinstance(attrs, dict):
            raise ValueError(f"Element attrs must be an object, got {type(attrs).__name__}")

        children = data.get("children")
        if children is not None and not isinstance(children, list):
            raise ValueError(f"Element children must be a list, got {type(children).__name__}")

        content = data.get("content")
        return cls(
            type=data["type"],
            attrs=copy.deepcopy(attrs),
            content=None if content is None else str(content),
            children=None if children is None else [cls.from_dict(c, depth + 1) for c in children],
        )


@dataclass
class NeutralLayout:
    """
    Builder-agnostic page layout.

    Example:
        layout = NeutralLayout(
            source_builder="gutenberg",
            elements=[create_heading(2, "Welcome"), create_paragraph("Hello")],
        )
        payload = layout.to_dict()
    """

    source_builder: str
    elements: list[NeutralElement] = field(default_factory=list)
    layout_version: str = LAYOUT_VERSION
    format_version: Optional[str] = None
    builder_metadata: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the neutral layout wire format."""
        source: dict[str, Any] = {"builder": self.source_builder}
        if self.format_version:
            source["formatVersion"] = self.format_version

        data: dict[str, Any] = {
            "layout_version": self.layout_version,
            "source": source,
            "elements": [element.to_dict() for element in self.elements],
        }
        if self.builder_metadata is not None:
            data["_builderMetadata"] = copy.deepcopy(self.builder_metadata)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NeutralLayout:
        """
        Build a layout from its wire format.

        Raises:
            ValueError: If the payload is not a neutral layout
        """
        if not is_neutral_layout(data):
            raise ValueError("Payload is not a neutral layout")

        source = data["source"]
        return cls(
            source_builder=source["builder"],
            elements=[NeutralElement.from_dict(e) for e in data["elements"]],
            layout_version=data["layout_version"],
            format_version=source.get("formatVersion"),
            builder_metadata=data.get("_builderMetadata"),
        )

    @classmethod
    def coerce(cls, value: NeutralLayout | dict[str, Any]) -> NeutralLayout:
        """Accept either a layout instance or its wire format."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        raise ValueError(f"Cannot read a neutral layout from {type(value).__name__}")


# -----------------------------------------------------------------------------
# Predicates
# -----------------------------------------------------------------------------


def has_text_content(element: NeutralElement) -> bool:
    return isinstance(element.content, str)


def has_children(element: NeutralElement) -> bool:
    return bool(element.children)


def is_structural_element(element: NeutralElement) -> bool:
    return element.type in STRUCTURAL_TYPES


def is_content_element(element: NeutralElement) -> bool:
    return element.type in CONTENT_TYPES


def is_media_element(element: NeutralElement) -> bool:
    return element.type in MEDIA_TYPES


def is_neutral_layout(value: Any) -> bool:
    """Check whether ``value`` looks like a neutral layout wire payload."""
    if not isinstance(value, dict):
        return False
    source = value.get("source")
    return (
        isinstance(value.get("layout_version"), str)
        and isinstance(source, dict)
        and isinstance(source.get("builder"), str)
        and isinstance(value.get("elements"), list)
    )


def count_elements(elements: list[NeutralElement]) -> int:
    """Count elements including nested children."""
    total = 0
    stack = list(elements)
    while stack:
        element = stack.pop()
        total += 1
        if element.children:
            stack.extend(element.children)
    return total


# -----------------------------------------------------------------------------
# Builders
# -----------------------------------------------------------------------------


def create_empty_layout(builder: str = "unknown") -> NeutralLayout:
    return NeutralLayout(source_builder=builder)


def create_heading(level: int, content: str, **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.HEADING, attrs={"level": level, **attrs}, content=content)


def create_paragraph(content: str, **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.PARAGRAPH, attrs=dict(attrs), content=content)


def create_image(src: str, **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.IMAGE, attrs={"src": src, **attrs})


def create_button(content: str, **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.BUTTON, attrs=dict(attrs), content=content)


def create_section(children: list[NeutralElement], **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.SECTION, attrs=dict(attrs), children=list(children))


def create_column(children: list[NeutralElement], **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.COLUMN, attrs=dict(attrs), children=list(children))


def create_row(columns: list[NeutralElement], **attrs: Any) -> NeutralElement:
    return NeutralElement(type=ElementType.ROW, attrs=dict(attrs), children=list(columns))
