"""Tests for configuration models, logging setup and adapter lookup."""

import logging

import pytest
from pydantic import ValidationError

from pagebridge.adapters import GutenbergAdapter, get_adapter
from pagebridge.logging_config import LOGGER_NAME, setup_logging, setup_logging_from_config
from pagebridge.models.config import ConversionOptions, RegistryConfig


@pytest.fixture
def clean_logger():
    """Restore the package logger after a test configures it."""
    logger = logging.getLogger(LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


class TestConversionOptions:
    """Tests for ConversionOptions."""

    def test_defaults(self):
        """Test that every option is off by default."""
        options = ConversionOptions()
        assert not options.preserve_builder_data
        assert not options.strip_unknown
        assert not options.include_rendered
        assert not options.strict

    def test_unknown_option_rejected(self):
        """Test that misspelled options fail loudly."""
        with pytest.raises(ValidationError):
            ConversionOptions(preserve_data=True)

    def test_adapter_rejects_bad_options(self):
        """Test that adapters validate option dicts."""
        with pytest.raises(ValidationError):
            GutenbergAdapter().extract_layout_from_content("", {"strcit": True})


class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_defaults(self):
        """Test default thresholds and adapter priorities."""
        config = RegistryConfig()

        assert config.min_confidence == 0.5
        assert config.all_min_confidence == 0.3
        assert config.log_level == "INFO"
        assert config.settings_for("gutenberg").priority == 100
        assert config.settings_for("elementor").priority == 90
        assert config.settings_for("wpbakery").priority == 80
        assert config.settings_for("other").priority == 50

    def test_from_yaml_merges_partial_sections(self):
        """Test that partial adapter settings keep the other defaults."""
        config = RegistryConfig.from_yaml(
            """
adapters:
  wpbakery:
    enabled: false
min_confidence: 0.7
"""
        )

        assert config.min_confidence == 0.7
        assert config.settings_for("wpbakery").enabled is False
        assert config.settings_for("wpbakery").priority == 80
        assert config.settings_for("gutenberg").priority == 100

    def test_empty_yaml(self):
        """Test that an empty document gives the defaults."""
        assert RegistryConfig.from_yaml("") == RegistryConfig()

    def test_yaml_round_trip(self):
        """Test that to_yaml output loads back to the same config."""
        config = RegistryConfig.from_yaml("adapters:\n  elementor:\n    priority: 5\nlog_level: DEBUG\n")
        assert RegistryConfig.from_yaml(config.to_yaml()) == config

    def test_non_mapping_rejected(self):
        """Test that a YAML list is not a config."""
        with pytest.raises(ValueError, match="mapping"):
            RegistryConfig.from_yaml("- gutenberg\n- elementor\n")

    def test_out_of_range_threshold(self):
        """Test that thresholds are bounded to [0, 1]."""
        with pytest.raises(ValidationError):
            RegistryConfig(min_confidence=1.5)

    def test_unknown_key_rejected(self):
        """Test that unknown top-level keys fail."""
        with pytest.raises(ValidationError):
            RegistryConfig.from_yaml("threshold: 0.5\n")

    def test_from_yaml_file(self, tmp_path):
        """Test loading config from a file."""
        path = tmp_path / "pagebridge.yaml"
        path.write_text("log_level: WARNING\n", encoding="utf-8")

        assert RegistryConfig.from_yaml_file(path).log_level == "WARNING"


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging(self, clean_logger):
        """Test that the package logger gets one handler and stops propagating."""
        logger = setup_logging("DEBUG")

        assert logger is clean_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_setup_is_idempotent(self, clean_logger):
        """Test that repeated setup does not stack handlers."""
        setup_logging()
        setup_logging()
        assert len(clean_logger.handlers) == 1

    def test_log_file(self, clean_logger, tmp_path):
        """Test writing records to a file."""
        log_file = tmp_path / "pagebridge.log"
        logger = setup_logging("INFO", log_file=log_file)
        logger.getChild("test").info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_from_config(self, clean_logger):
        """Test using the configured level."""
        logger = setup_logging_from_config(RegistryConfig(log_level="ERROR"))
        assert logger.level == logging.ERROR


class TestGetAdapter:
    """Tests for built-in adapter lookup."""

    @pytest.mark.parametrize("name", ["gutenberg", "elementor", "wpbakery"])
    def test_builtin(self, name):
        """Test creating every built-in adapter by name."""
        assert get_adapter(name).name == name

    def test_unknown(self):
        """Test that unknown names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown adapter"):
            get_adapter("divi")
