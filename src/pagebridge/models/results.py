"""Result types returned by adapters and the registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

if TYPE_CHECKING:
    from ..adapters.protocols import BuilderAdapter

T = TypeVar("T")


class WarningSeverity(str, Enum):
    """Severity of a conversion warning."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class WarningCode(str, Enum):
    """Codes for recoverable conversion issues."""

    UNSUPPORTED_BLOCK = "UNSUPPORTED_BLOCK"
    UNSUPPORTED_ELEMENT = "UNSUPPORTED_ELEMENT"
    INVALID_ATTRIBUTES = "INVALID_ATTRIBUTES"
    ELEMENT_CONVERSION_FAILED = "ELEMENT_CONVERSION_FAILED"
    PARSE_ERROR = "PARSE_ERROR"
    NO_BUILDER_DATA = "NO_BUILDER_DATA"
    INVALID_LAYOUT = "INVALID_LAYOUT"
    LAYOUT_VERSION_MISMATCH = "LAYOUT_VERSION_MISMATCH"
    STRICT_MODE_VIOLATION = "STRICT_MODE_VIOLATION"


class DetectionMethod(str, Enum):
    """How a builder was recognized."""

    CONTENT = "content"
    META = "meta"
    TEMPLATE = "template"
    CLASS = "class"
    SHORTCODE = "shortcode"


@dataclass(frozen=True)
class ConversionWarning:
    """A recoverable issue found while converting."""

    code: str
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING
    path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "severity": WarningSeverity(self.severity).value,
        }
        if self.path is not None:
            data["path"] = self.path
        return data


@dataclass(frozen=True)
class ConversionStats:
    """Processing statistics for one conversion call."""

    total_elements: int = 0
    converted_elements: int = 0
    skipped_elements: int = 0
    # Wall-clock duration in milliseconds
    processing_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalElements": self.total_elements,
            "convertedElements": self.converted_elements,
            "skippedElements": self.skipped_elements,
            "processingTime": round(self.processing_time, 3),
        }


@dataclass(frozen=True)
class ConversionResult(Generic[T]):
    """
    Outcome of an extract or apply call.

    ``data`` is a :class:`~pagebridge.models.layout.NeutralLayout` when
    extracting and a builder-native markup string when applying.
    """

    success: bool
    data: T
    warnings: list[ConversionWarning] = field(default_factory=list)
    unsupported_elements: Optional[list[str]] = None
    stats: Optional[ConversionStats] = None

    @property
    def has_errors(self) -> bool:
        """Check if any warning carries error severity."""
        return any(w.severity == WarningSeverity.ERROR for w in self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict for collaborators."""
        data = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        result: dict[str, Any] = {
            "success": self.success,
            "data": data,
            "warnings": [w.to_dict() for w in self.warnings],
        }
        if self.unsupported_elements is not None:
            result["unsupportedElements"] = list(self.unsupported_elements)
        if self.stats is not None:
            result["stats"] = self.stats.to_dict()
        return result


@dataclass(frozen=True)
class DetectionResult:
    """Whether an adapter recognizes a page, and how strongly."""

    detected: bool
    confidence: float
    method: DetectionMethod = DetectionMethod.CONTENT
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def not_detected(cls, method: DetectionMethod = DetectionMethod.CONTENT) -> DetectionResult:
        return cls(detected=False, confidence=0.0, method=method)


@dataclass(frozen=True)
class AdapterLookupResult:
    """An adapter paired with its detection result."""

    adapter: BuilderAdapter
    detection: DetectionResult
