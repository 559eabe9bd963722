"""Adapter registry: registration, ordering and builder detection."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Optional

from .adapters import BUILTIN_ADAPTERS
from .adapters.protocols import BuilderAdapter, PageInput
from .models.config import RegistryConfig
from .models.page import PageData
from .models.results import AdapterLookupResult

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 50
DEFAULT_MIN_CONFIDENCE = 0.5
DEFAULT_ALL_MIN_CONFIDENCE = 0.3


@dataclass
class AdapterRegistration:
    """An adapter plus its registration settings."""

    adapter: BuilderAdapter
    priority: int = DEFAULT_PRIORITY
    enabled: bool = True
    # Registration sequence number; breaks priority and confidence ties
    order: int = 0


class AdapterRegistry:
    """
    Name-keyed collection of builder adapters.

    Register every adapter at startup, then query. The registry holds no
    lock, so registering while detections run is not supported.

    Example:
        registry = AdapterRegistry()
        registry.register(GutenbergAdapter(), priority=100)
        match = registry.detect_builder(page)
        if match:
            result = match.adapter.extract_layout(page)
    """

    def __init__(self) -> None:
        self._registrations: dict[str, AdapterRegistration] = {}
        self._sequence = itertools.count()

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, name: object) -> bool:
        return name in self._registrations

    def register(
        self, adapter: BuilderAdapter, priority: int = DEFAULT_PRIORITY, enabled: bool = True
    ) -> None:
        """
        Register an adapter under its ``name``.

        Raises:
            ValueError: If an adapter with the same name is already registered
        """
        if adapter.name in self._registrations:
            raise ValueError(f"Adapter '{adapter.name}' is already registered")
        self._registrations[adapter.name] = AdapterRegistration(
            adapter=adapter,
            priority=priority,
            enabled=enabled,
            order=next(self._sequence),
        )
        logger.debug(f"Registered adapter {adapter.name} (priority={priority}, enabled={enabled})")

    def unregister(self, name: str) -> bool:
        """Remove an adapter. Returns False if it was not registered."""
        return self._registrations.pop(name, None) is not None

    def has(self, name: str) -> bool:
        return name in self._registrations

    def get(self, name: str) -> Optional[BuilderAdapter]:
        registration = self._registrations.get(name)
        return registration.adapter if registration else None

    def set_enabled(self, name: str, enabled: bool) -> bool:
        """Enable or disable an adapter. Returns False if it is not registered."""
        registration = self._registrations.get(name)
        if registration is None:
            return False
        registration.enabled = enabled
        return True

    def get_all(self) -> list[BuilderAdapter]:
        """Enabled adapters, highest priority first, then registration order."""
        enabled = [r for r in self._registrations.values() if r.enabled]
        enabled.sort(key=lambda r: (-r.priority, r.order))
        return [r.adapter for r in enabled]

    def get_supported(self) -> list[BuilderAdapter]:
        return [adapter for adapter in self.get_all() if adapter.supported]

    def get_names(self) -> list[str]:
        """Names of every registered adapter, enabled or not."""
        return list(self._registrations)

    def detect_builder(
        self, page: PageInput, min_confidence: float = DEFAULT_MIN_CONFIDENCE
    ) -> Optional[AdapterLookupResult]:
        """
        Find the builder most likely used for ``page``.

        Only confidence decides; priority plays no part. Equal confidence goes
        to the adapter registered first.

        Returns:
            The best match, or None if no adapter reaches ``min_confidence``
        """
        matches = self._scan(page, min_confidence)
        return matches[0] if matches else None

    def detect_all_builders(
        self, page: PageInput, min_confidence: float = DEFAULT_ALL_MIN_CONFIDENCE
    ) -> list[AdapterLookupResult]:
        """Every qualifying match, highest confidence first."""
        return self._scan(page, min_confidence)

    def clear(self) -> None:
        self._registrations.clear()

    def get_stats(self) -> dict[str, int]:
        registrations = list(self._registrations.values())
        return {
            "total": len(registrations),
            "enabled": sum(1 for r in registrations if r.enabled),
            "supported": sum(1 for r in registrations if r.enabled and r.adapter.supported),
        }

    def _scan(self, page: PageInput, min_confidence: float) -> list[AdapterLookupResult]:
        # Validate once so a malformed record is not blamed on each adapter
        page = PageData.coerce(page)

        scored: list[tuple[float, int, AdapterLookupResult]] = []
        for registration in self._registrations.values():
            adapter = registration.adapter
            if not registration.enabled or not adapter.supported:
                continue
            try:
                detection = adapter.detect(page)
            except Exception as e:
                logger.warning(f"Adapter {adapter.name} failed during detection: {e}")
                continue
            if detection.detected and detection.confidence >= min_confidence:
                scored.append(
                    (detection.confidence, registration.order, AdapterLookupResult(adapter, detection))
                )

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [match for _, _, match in scored]


def create_registry(config: Optional[RegistryConfig] = None) -> AdapterRegistry:
    """
    Build a registry holding the built-in adapters.

    Args:
        config: Priorities and enabled flags per adapter; defaults give
            gutenberg 100, elementor 90, wpbakery 80

    Returns:
        A populated registry
    """
    config = config or RegistryConfig()

    registry = AdapterRegistry()
    for adapter_class in BUILTIN_ADAPTERS:
        settings = config.settings_for(adapter_class.name)
        registry.register(adapter_class(), priority=settings.priority, enabled=settings.enabled)
    return registry
