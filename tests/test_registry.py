"""Tests for the adapter registry."""

import logging

import pytest

from pagebridge.models.config import AdapterSettings, RegistryConfig
from pagebridge.models.results import DetectionResult
from pagebridge.registry import AdapterRegistry, create_registry

PAGE = {"id": 1, "content": {"rendered": "<p>x</p>"}}


class FakeAdapter:
    """Adapter stand-in with a fixed detection score."""

    def __init__(self, name, confidence=0.0, supported=True, error=None):
        self.name = name
        self.display_name = name.title()
        self.supported = supported
        self.confidence = confidence
        self.error = error
        self.calls = 0

    def detect(self, page):
        self.calls += 1
        if self.error:
            raise self.error
        if not self.confidence:
            return DetectionResult.not_detected()
        return DetectionResult(detected=True, confidence=self.confidence)


@pytest.fixture
def registry():
    return AdapterRegistry()


class TestRegistration:
    """Tests for adding and removing adapters."""

    def test_register_and_get(self, registry):
        """Test registering an adapter and looking it up by name."""
        adapter = FakeAdapter("alpha")
        registry.register(adapter)

        assert registry.get("alpha") is adapter
        assert registry.has("alpha")
        assert "alpha" in registry
        assert len(registry) == 1
        assert registry.get("missing") is None

    def test_duplicate_name_rejected(self, registry):
        """Test that a name can only be registered once."""
        registry.register(FakeAdapter("alpha"))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(FakeAdapter("alpha"))

    def test_unregister(self, registry):
        """Test removing adapters."""
        registry.register(FakeAdapter("alpha"))

        assert registry.unregister("alpha") is True
        assert registry.unregister("alpha") is False
        assert registry.get_names() == []

    def test_clear(self, registry):
        """Test removing every adapter."""
        registry.register(FakeAdapter("alpha"))
        registry.register(FakeAdapter("beta"))
        registry.clear()

        assert len(registry) == 0


class TestOrdering:
    """Tests for listing adapters."""

    def test_priority_then_registration_order(self, registry):
        """Test that get_all sorts by priority, ties by registration order."""
        registry.register(FakeAdapter("low"), priority=10)
        registry.register(FakeAdapter("first"), priority=50)
        registry.register(FakeAdapter("high"), priority=90)
        registry.register(FakeAdapter("second"), priority=50)

        assert [a.name for a in registry.get_all()] == ["high", "first", "second", "low"]

    def test_disabled_excluded(self, registry):
        """Test that disabled adapters are not listed but keep their name."""
        registry.register(FakeAdapter("alpha"))
        registry.register(FakeAdapter("beta"), enabled=False)

        assert [a.name for a in registry.get_all()] == ["alpha"]
        assert registry.get_names() == ["alpha", "beta"]

    def test_set_enabled(self, registry):
        """Test toggling an adapter."""
        registry.register(FakeAdapter("alpha"))

        assert registry.set_enabled("alpha", False) is True
        assert registry.get_all() == []
        assert registry.set_enabled("missing", True) is False

    def test_supported_filter(self, registry):
        """Test that unsupported adapters are listed but not supported."""
        registry.register(FakeAdapter("alpha"))
        registry.register(FakeAdapter("stub", supported=False))

        assert [a.name for a in registry.get_supported()] == ["alpha"]
        assert len(registry.get_all()) == 2

    def test_stats(self, registry):
        """Test registry counters."""
        registry.register(FakeAdapter("alpha"))
        registry.register(FakeAdapter("beta"), enabled=False)
        registry.register(FakeAdapter("stub", supported=False))

        assert registry.get_stats() == {"total": 3, "enabled": 2, "supported": 1}


class TestDetection:
    """Tests for builder detection."""

    def test_highest_confidence_wins_over_priority(self, registry):
        """Test that priority plays no part in detection."""
        registry.register(FakeAdapter("preferred", confidence=0.6), priority=100)
        registry.register(FakeAdapter("likely", confidence=0.9), priority=1)

        match = registry.detect_builder(PAGE)

        assert match.adapter.name == "likely"
        assert match.detection.confidence == 0.9

    def test_tie_goes_to_first_registered(self, registry):
        """Test that equal confidence is broken by registration order."""
        registry.register(FakeAdapter("first", confidence=0.7), priority=1)
        registry.register(FakeAdapter("second", confidence=0.7), priority=100)

        assert registry.detect_builder(PAGE).adapter.name == "first"

    def test_below_threshold(self, registry):
        """Test that weak matches are not returned."""
        registry.register(FakeAdapter("alpha", confidence=0.4))

        assert registry.detect_builder(PAGE) is None
        assert registry.detect_builder(PAGE, min_confidence=0.4).adapter.name == "alpha"

    def test_no_adapters(self, registry):
        """Test detection on an empty registry."""
        assert registry.detect_builder(PAGE) is None
        assert registry.detect_all_builders(PAGE) == []

    def test_detect_all_sorted(self, registry):
        """Test listing every match above the lower threshold."""
        registry.register(FakeAdapter("a", confidence=0.35))
        registry.register(FakeAdapter("b", confidence=0.8))
        registry.register(FakeAdapter("c", confidence=0.2))
        registry.register(FakeAdapter("d", confidence=0.6))

        assert [m.adapter.name for m in registry.detect_all_builders(PAGE)] == ["b", "d", "a"]

    def test_skips_disabled_and_unsupported(self, registry):
        """Test that disabled and unsupported adapters are never asked."""
        disabled = FakeAdapter("disabled", confidence=0.9)
        stub = FakeAdapter("stub", confidence=0.9, supported=False)
        registry.register(disabled, enabled=False)
        registry.register(stub)

        assert registry.detect_builder(PAGE) is None
        assert disabled.calls == 0
        assert stub.calls == 0

    def test_failing_adapter_is_skipped(self, registry, caplog):
        """Test that a detection error does not abort the lookup."""
        registry.register(FakeAdapter("broken", error=RuntimeError("boom")))
        registry.register(FakeAdapter("alpha", confidence=0.8))

        with caplog.at_level(logging.WARNING, logger="pagebridge.registry"):
            match = registry.detect_builder(PAGE)

        assert match.adapter.name == "alpha"
        assert "broken" in caplog.text

    def test_malformed_page_raises(self, registry):
        """Test that invalid page records are rejected up front."""
        registry.register(FakeAdapter("alpha", confidence=0.8))
        with pytest.raises(ValueError):
            registry.detect_builder({"content": {"rendered": "x"}})


class TestCreateRegistry:
    """Tests for the built-in registry factory."""

    def test_default_registry(self):
        """Test built-in adapters and their default priorities."""
        registry = create_registry()

        assert registry.get_names() == ["gutenberg", "elementor", "wpbakery"]
        assert [a.name for a in registry.get_all()] == ["gutenberg", "elementor", "wpbakery"]

    def test_config_overrides(self):
        """Test disabling and re-prioritizing adapters through config."""
        config = RegistryConfig.from_yaml(
            "adapters:\n  wpbakery:\n    enabled: false\n  elementor:\n    priority: 200\n"
        )
        registry = create_registry(config)

        assert [a.name for a in registry.get_all()] == ["elementor", "gutenberg"]

    def test_config_object(self):
        """Test building from a config model."""
        config = RegistryConfig(adapters={"gutenberg": AdapterSettings(enabled=False)})
        registry = create_registry(config)

        assert [a.name for a in registry.get_all()] == ["elementor", "wpbakery"]

    def test_detects_gutenberg_page(self):
        """Test detection across the built-in adapters."""
        page = {
            "id": 1,
            "content": {
                "raw": "<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph -->"
                "<!-- wp:paragraph --><p>b</p><!-- /wp:paragraph -->",
                "rendered": "<p>a</p><p>b</p>",
            },
        }
        match = create_registry().detect_builder(page)

        assert match.adapter.name == "gutenberg"
        assert [m.adapter.name for m in create_registry().detect_all_builders(page)] == ["gutenberg"]

    def test_detects_elementor_page(self):
        """Test that Elementor meta beats the block markup it renders to."""
        page = {
            "id": 1,
            "content": {"rendered": '<div class="elementor elementor-5"><p>x</p></div>'},
            "meta": {
                "_elementor_edit_mode": "builder",
                "_elementor_data": '[{"id": "a", "elType": "section", "elements": []}]',
            },
        }
        assert create_registry().detect_builder(page).adapter.name == "elementor"
