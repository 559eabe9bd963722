"""Pagebridge data and configuration models."""

from .config import DEFAULT_ADAPTERS, AdapterSettings, ConversionOptions, RegistryConfig
from .layout import (
    LAYOUT_VERSION,
    ElementType,
    NeutralElement,
    NeutralLayout,
    count_elements,
    create_button,
    create_column,
    create_empty_layout,
    create_heading,
    create_image,
    create_paragraph,
    create_row,
    create_section,
    has_children,
    has_text_content,
    is_content_element,
    is_media_element,
    is_neutral_layout,
    is_structural_element,
)
from .page import PageContent, PageData, RenderedField
from .results import (
    AdapterLookupResult,
    ConversionResult,
    ConversionStats,
    ConversionWarning,
    DetectionMethod,
    DetectionResult,
    WarningCode,
    WarningSeverity,
)

__all__ = [
    # Config
    "AdapterSettings",
    "ConversionOptions",
    "DEFAULT_ADAPTERS",
    "RegistryConfig",
    # Layout
    "LAYOUT_VERSION",
    "ElementType",
    "NeutralElement",
    "NeutralLayout",
    "count_elements",
    "create_button",
    "create_column",
    "create_empty_layout",
    "create_heading",
    "create_image",
    "create_paragraph",
    "create_row",
    "create_section",
    "has_children",
    "has_text_content",
    "is_content_element",
    "is_media_element",
    "is_neutral_layout",
    "is_structural_element",
    # Page
    "PageContent",
    "PageData",
    "RenderedField",
    # Results
    "AdapterLookupResult",
    "ConversionResult",
    "ConversionStats",
    "ConversionWarning",
    "DetectionMethod",
    "DetectionResult",
    "WarningCode",
    "WarningSeverity",
]
