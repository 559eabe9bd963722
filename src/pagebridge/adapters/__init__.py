"""Builder adapters and the shared conversion driver."""

from typing import Type

from .base import (
    AdapterCapabilities,
    AdapterVersion,
    ApplyContext,
    BaseAdapter,
    ConversionReport,
    ExtractContext,
    ForwardRule,
    ValidationReport,
    saturating_confidence,
)
from .elementor import ElementorAdapter
from .gutenberg import GutenbergAdapter
from .protocols import BuilderAdapter
from .wpbakery import WPBakeryAdapter

# Built-in adapters in registration order
BUILTIN_ADAPTERS: list[Type[BaseAdapter]] = [GutenbergAdapter, ElementorAdapter, WPBakeryAdapter]


def get_adapter(name: str) -> BaseAdapter:
    """
    Create a built-in adapter by name.

    Args:
        name: Adapter name (gutenberg, elementor, wpbakery)

    Returns:
        A new adapter instance

    Raises:
        ValueError: If name is not a built-in adapter
    """
    adapters = {adapter_class.name: adapter_class for adapter_class in BUILTIN_ADAPTERS}
    if name not in adapters:
        raise ValueError(f"Unknown adapter: {name}. Available: {list(adapters.keys())}")
    return adapters[name]()


__all__ = [
    "AdapterCapabilities",
    "AdapterVersion",
    "ApplyContext",
    "BaseAdapter",
    "BUILTIN_ADAPTERS",
    "BuilderAdapter",
    "ConversionReport",
    "ElementorAdapter",
    "ExtractContext",
    "ForwardRule",
    "GutenbergAdapter",
    "ValidationReport",
    "WPBakeryAdapter",
    "get_adapter",
    "saturating_confidence",
]
