"""Pydantic configuration models for pagebridge."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class ConversionOptions(BaseModel):
    """Options accepted by extract and apply operations."""

    preserve_builder_data: bool = Field(
        False,
        description="Store the original native name/attrs on every element as _builderData",
    )
    strip_unknown: bool = Field(
        False,
        description="Drop elements without a mapping (they are still reported)",
    )
    include_rendered: bool = Field(
        False,
        description="Store each block's raw inner markup as _rendered on the element",
    )
    strict: bool = Field(
        False,
        description="Treat unsupported elements as a failed conversion",
    )

    model_config = {"extra": "forbid"}


class AdapterSettings(BaseModel):
    """Registration settings for one adapter."""

    priority: int = Field(50, description="Higher priority adapters are listed first")
    enabled: bool = Field(True, description="Whether the adapter takes part in lookups")

    model_config = {"extra": "forbid"}


DEFAULT_ADAPTERS: dict[str, AdapterSettings] = {
    "gutenberg": AdapterSettings(priority=100),
    "elementor": AdapterSettings(priority=90),
    "wpbakery": AdapterSettings(priority=80),
}


class RegistryConfig(BaseModel):
    """
    Root configuration for building an adapter registry.

    YAML format:
        adapters:
          gutenberg:
            priority: 100
          wpbakery:
            enabled: false
        min_confidence: 0.6
    """

    adapters: dict[str, AdapterSettings] = Field(
        default_factory=lambda: {name: s.model_copy() for name, s in DEFAULT_ADAPTERS.items()},
        description="Per-adapter registration settings keyed by adapter name",
    )
    min_confidence: float = Field(
        0.5,
        ge=0,
        le=1,
        description="Threshold used when picking a single builder",
    )
    all_min_confidence: float = Field(
        0.3,
        ge=0,
        le=1,
        description="Threshold used when listing every matching builder",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )

    model_config = {"extra": "forbid"}

    def settings_for(self, name: str) -> AdapterSettings:
        """Settings for ``name``, falling back to the built-in defaults."""
        if name in self.adapters:
            return self.adapters[name]
        default = DEFAULT_ADAPTERS.get(name)
        return default.model_copy() if default else AdapterSettings()

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json"), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "RegistryConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("Registry config must be a YAML mapping")

        # Partial adapter sections are merged over the defaults
        adapters = data.get("adapters") or {}
        if not isinstance(adapters, dict):
            raise ValueError("'adapters' must be a mapping of adapter name to settings")
        merged = {name: s.model_dump() for name, s in DEFAULT_ADAPTERS.items()}
        for name, settings in adapters.items():
            merged[name] = {**merged.get(name, {}), **(settings or {})}
        data["adapters"] = merged

        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "RegistryConfig":
        """Load config from YAML file."""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))
