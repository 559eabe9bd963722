"""
pagebridge - Convert WordPress page-builder layouts to and from a neutral format.

Usage:
    from pagebridge import create_registry

    registry = create_registry()
    match = registry.detect_builder(page)
    if match:
        result = match.adapter.extract_layout(page)
        layout = result.data.to_dict()

        target = registry.get("gutenberg")
        markup = target.apply_layout(result.data).data
"""

__version__ = "1.0.0"

from .adapters import (
    BaseAdapter,
    BuilderAdapter,
    ElementorAdapter,
    GutenbergAdapter,
    WPBakeryAdapter,
    get_adapter,
)
from .logging_config import setup_logging
from .models.config import AdapterSettings, ConversionOptions, RegistryConfig
from .models.layout import ElementType, NeutralElement, NeutralLayout
from .models.page import PageData
from .models.results import (
    AdapterLookupResult,
    ConversionResult,
    ConversionWarning,
    DetectionResult,
    WarningCode,
    WarningSeverity,
)
from .registry import AdapterRegistration, AdapterRegistry, create_registry

__all__ = [
    "__version__",
    # Adapters
    "BaseAdapter",
    "BuilderAdapter",
    "ElementorAdapter",
    "GutenbergAdapter",
    "WPBakeryAdapter",
    "get_adapter",
    # Registry
    "AdapterRegistration",
    "AdapterRegistry",
    "create_registry",
    # Config
    "AdapterSettings",
    "ConversionOptions",
    "RegistryConfig",
    # Layout
    "ElementType",
    "NeutralElement",
    "NeutralLayout",
    "PageData",
    # Results
    "AdapterLookupResult",
    "ConversionResult",
    "ConversionWarning",
    "DetectionResult",
    "WarningCode",
    "WarningSeverity",
    # Logging
    "setup_logging",
]
