"""Base adapter interface and the shared conversion driver."""

import copy
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, NamedTuple, Optional, Union

from ..models.config import ConversionOptions
from ..models.layout import (
    LAYOUT_VERSION,
    ElementType,
    NeutralElement,
    NeutralLayout,
    create_empty_layout,
)
from ..models.page import PageData
from ..models.results import (
    ConversionResult,
    ConversionStats,
    ConversionWarning,
    DetectionResult,
    WarningCode,
    WarningSeverity,
)
from ..parsing.native import MAX_NESTING_DEPTH
from .protocols import OptionsInput, PageInput

# First marker scores this much; each further marker closes 20% of the gap to 1
BASE_CONFIDENCE = 0.6
CONFIDENCE_DECAY = 0.8


def saturating_confidence(markers: int) -> float:
    """
    Map a marker count onto a confidence score.

    0 markers gives 0.0, one marker gives 0.6, and the score rises strictly
    with every further marker while staying below 1.0.
    """
    if markers <= 0:
        return 0.0
    return 1.0 - (1.0 - BASE_CONFIDENCE) * CONFIDENCE_DECAY ** (markers - 1)


@dataclass(frozen=True)
class AdapterVersion:
    """Adapter release and the builder versions it understands."""

    adapter: str
    min_builder_version: Optional[str] = None
    max_builder_version: Optional[str] = None
    # Version of the native data format written by apply_layout
    format_version: str = "1.0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "adapter": self.adapter,
            "minBuilderVersion": self.min_builder_version,
            "maxBuilderVersion": self.max_builder_version,
            "formatVersion": self.format_version,
        }


@dataclass(frozen=True)
class AdapterCapabilities:
    """Which neutral element types an adapter can write, and what it models."""

    supported_elements: frozenset[str] = frozenset()
    supports_nesting: bool = True
    supports_responsive: bool = False
    supports_animation: bool = False

    def supports(self, element_type: Union[str, ElementType]) -> bool:
        if isinstance(element_type, ElementType):
            element_type = element_type.value
        return element_type in self.supported_elements

    def to_dict(self) -> dict[str, Any]:
        return {
            "supportedElements": sorted(self.supported_elements),
            "supportsNesting": self.supports_nesting,
            "supportsResponsive": self.supports_responsive,
            "supportsAnimation": self.supports_animation,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Result of checking native markup without converting it."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: list[str], warnings: list[str]) -> "ValidationReport":
        return cls(valid=not errors, errors=list(errors), warnings=list(warnings))


class ConversionReport:
    """Mutable bookkeeping for a single extract or apply call."""

    def __init__(self, options: ConversionOptions):
        self.options = options
        self.warnings: list[ConversionWarning] = []
        # Insertion-ordered set of unsupported native names / element types
        self._unsupported: dict[str, None] = {}
        self.total = 0
        self.converted = 0
        self.skipped = 0
        self._started = time.perf_counter()

    def warn(
        self,
        code: WarningCode,
        message: str,
        path: Optional[str] = None,
        severity: WarningSeverity = WarningSeverity.WARNING,
    ) -> None:
        if self.options.strict and severity == WarningSeverity.WARNING:
            severity = WarningSeverity.ERROR
        self.warnings.append(
            ConversionWarning(code=code.value, message=message, severity=severity, path=path)
        )

    def unsupported(self, name: str, code: WarningCode, message: str, path: Optional[str]) -> None:
        self._unsupported.setdefault(name, None)
        self.warn(code, message, path)

    @property
    def unsupported_elements(self) -> list[str]:
        return list(self._unsupported)

    def finish(self, data: Any, empty: Any, success: bool = True) -> ConversionResult:
        """
        Build the immutable result.

        Strict mode turns any unsupported element into a failed conversion,
        in which case ``empty`` is returned instead of ``data``.
        """
        if success and self.options.strict and self._unsupported:
            names = ", ".join(self._unsupported)
            self.warn(
                WarningCode.STRICT_MODE_VIOLATION,
                f"Strict mode: unsupported elements found ({names})",
                severity=WarningSeverity.ERROR,
            )
            success = False

        elapsed_ms = (time.perf_counter() - self._started) * 1000
        return ConversionResult(
            success=success,
            data=data if success else empty,
            warnings=list(self.warnings),
            unsupported_elements=self.unsupported_elements,
            stats=ConversionStats(
                total_elements=self.total,
                converted_elements=self.converted,
                skipped_elements=self.skipped,
                processing_time=elapsed_ms,
            ),
        )


class ExtractContext:
    """Walk state handed to forward handlers."""

    def __init__(self, adapter: "BaseAdapter", report: ConversionReport):
        self.adapter = adapter
        self.report = report
        self.options = report.options
        self._path: list[int] = []

    @property
    def path(self) -> str:
        return ".".join(str(index) for index in self._path)

    def convert_all(self, nodes: list[Any]) -> list[NeutralElement]:
        elements: list[NeutralElement] = []
        for index, node in enumerate(nodes):
            self._path.append(index)
            try:
                elements.extend(self.adapter.node_to_elements(node, self))
            finally:
                self._path.pop()
        return elements

    def children(self, node: Any) -> list[NeutralElement]:
        """Convert the native children of ``node``."""
        nodes = self.adapter.native_children(node)
        if not nodes:
            return []
        if len(self._path) >= MAX_NESTING_DEPTH:
            self.report.warn(
                WarningCode.ELEMENT_CONVERSION_FAILED,
                f"Nesting deeper than {MAX_NESTING_DEPTH} levels; children skipped",
                self.path,
            )
            self.report.skipped += len(nodes)
            return []
        return self.convert_all(nodes)


class ApplyContext:
    """Walk state handed to reverse handlers."""

    def __init__(self, adapter: "BaseAdapter", report: ConversionReport, same_builder: bool):
        self.adapter = adapter
        self.report = report
        self.options = report.options
        # Layout was extracted by this adapter, so _builderData can be trusted
        self.same_builder = same_builder
        # Element types of the enclosing elements, outermost first
        self.ancestors: list[str] = []
        self._path: list[int] = []

    @property
    def path(self) -> str:
        return ".".join(str(index) for index in self._path)

    def convert_all(
        self,
        elements: list[NeutralElement],
        overrides: Optional[dict[str, "ReverseHandler"]] = None,
    ) -> list[Any]:
        nodes: list[Any] = []
        for index, element in enumerate(elements):
            self._path.append(index)
            try:
                nodes.extend(self.adapter.element_to_nodes(element, self, overrides))
            finally:
                self._path.pop()
        return nodes

    def children(
        self,
        element: NeutralElement,
        overrides: Optional[dict[str, "ReverseHandler"]] = None,
    ) -> list[Any]:
        """
        Convert the children of ``element``.

        Args:
            element: Parent element
            overrides: Reverse handlers used instead of the adapter table for
                direct children (e.g. list items inside a list)
        """
        if not element.children:
            return []
        if len(self._path) >= MAX_NESTING_DEPTH:
            self.report.warn(
                WarningCode.ELEMENT_CONVERSION_FAILED,
                f"Nesting deeper than {MAX_NESTING_DEPTH} levels; children skipped",
                self.path,
            )
            self.report.skipped += len(element.children)
            return []

        self.ancestors.append(element.type)
        try:
            return self.convert_all(element.children, overrides)
        finally:
            self.ancestors.pop()


ForwardHandler = Callable[[Any, ExtractContext], NeutralElement]
ReverseHandler = Callable[[NeutralElement, ApplyContext], Any]


class ForwardRule(NamedTuple):
    """Element type produced for a native name, and the handler producing it."""

    element_type: str
    handler: ForwardHandler


class BaseAdapter(ABC):
    """
    Base class for builder adapters.

    Subclasses describe their native tree (parse, children, attrs, serialize)
    and provide two explicit dispatch tables:

    - ``FORWARD_HANDLERS``: native name -> :class:`ForwardRule`
    - ``REVERSE_HANDLERS``: neutral element type -> handler returning a native node

    The walk, warnings, unsupported tracking, options and stats are handled
    here so every adapter behaves the same way.
    """

    name: ClassVar[str] = ""
    display_name: ClassVar[str] = ""
    supported: ClassVar[bool] = True
    version: ClassVar[AdapterVersion] = AdapterVersion(adapter="1.0.0")

    FORWARD_HANDLERS: ClassVar[dict[str, ForwardRule]] = {}
    REVERSE_HANDLERS: ClassVar[dict[str, ReverseHandler]] = {}

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    @property
    def capabilities(self) -> AdapterCapabilities:
        return AdapterCapabilities(supported_elements=frozenset(self.REVERSE_HANDLERS))

    # -------------------------------------------------------------------------
    # Native tree hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def detect(self, page: PageInput) -> DetectionResult:
        """Score how likely it is that ``page`` was built with this builder."""
        pass

    @abstractmethod
    def validate(self, content: Any) -> ValidationReport:
        """Check native markup for structural problems without converting it."""
        pass

    @abstractmethod
    def parse_native(self, content: Any, report: ConversionReport) -> Optional[list[Any]]:
        """
        Parse native content into top-level native nodes.

        Returns:
            Native nodes, or None on structural failure (after recording a
            warning on ``report``)
        """
        pass

    @abstractmethod
    def serialize_native(self, nodes: list[Any]) -> str:
        pass

    @abstractmethod
    def native_name(self, node: Any) -> str:
        pass

    @abstractmethod
    def native_attrs(self, node: Any) -> dict[str, Any]:
        pass

    @abstractmethod
    def native_children(self, node: Any) -> list[Any]:
        pass

    @abstractmethod
    def native_markup(self, node: Any) -> Optional[str]:
        """Verbatim inner markup of ``node``, or None when it has none."""
        pass

    @abstractmethod
    def html_node(self, html: str, context: ApplyContext) -> Any:
        """Native node that passes ``html`` through unchanged."""
        pass

    @abstractmethod
    def rebuild_unknown(self, element: NeutralElement, context: ApplyContext) -> Optional[Any]:
        """Recreate a native node from an ``unknown`` element's preserved payload."""
        pass

    @abstractmethod
    def rename_native(self, node: Any, name: str, attrs: dict[str, Any]) -> Any:
        """Return ``node`` with its native name and attributes replaced."""
        pass

    def page_content(self, page: PageData) -> Any:
        """Native content to extract from a page record."""
        return page.source_content

    def forward_rule(self, name: str) -> Optional[ForwardRule]:
        return self.FORWARD_HANDLERS.get(name)

    def builder_data(self, node: Any, unknown: bool = False) -> dict[str, Any]:
        """Original native payload stored as ``_builderData``."""
        data: dict[str, Any] = {
            "blockName": self.native_name(node),
            "attrs": copy.deepcopy(self.native_attrs(node)),
        }
        if unknown:
            data["innerHTML"] = self.native_markup(node) or ""
        return data

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def extract_layout(
        self, page: PageInput, options: Optional[OptionsInput] = None
    ) -> ConversionResult[NeutralLayout]:
        """
        Extract the neutral layout of a page record.

        Raises:
            pydantic.ValidationError: If the page record or options are malformed
        """
        page = PageData.coerce(page)
        return self.extract_layout_from_content(self.page_content(page), options)

    def extract_layout_from_content(
        self, content: Any, options: Optional[OptionsInput] = None
    ) -> ConversionResult[NeutralLayout]:
        """Extract a neutral layout from raw native content."""
        options = _coerce_options(options)
        report = ConversionReport(options)
        empty = create_empty_layout(self.name)

        nodes = self.parse_native(content, report)
        if nodes is None:
            self.logger.debug(f"Nothing extracted: {[w.message for w in report.warnings]}")
            return report.finish(empty, empty, success=False)

        elements = ExtractContext(self, report).convert_all(nodes)
        layout = NeutralLayout(
            source_builder=self.name,
            elements=elements,
            format_version=self.version.format_version,
        )
        if options.preserve_builder_data:
            layout.builder_metadata = {"rawContent": content, "blockCount": len(nodes)}

        result = report.finish(layout, empty)
        self.logger.debug(
            f"Extracted {report.total} elements ({report.converted} converted, "
            f"{len(report.unsupported_elements)} unsupported types) "
            f"in {result.stats.processing_time:.1f}ms"
        )
        return result

    def apply_layout(
        self,
        layout: Union[NeutralLayout, dict[str, Any]],
        options: Optional[OptionsInput] = None,
    ) -> ConversionResult[str]:
        """Serialize a neutral layout into native markup."""
        options = _coerce_options(options)
        report = ConversionReport(options)

        try:
            layout = NeutralLayout.coerce(layout)
        except (TypeError, ValueError) as e:
            report.warn(WarningCode.INVALID_LAYOUT, str(e), severity=WarningSeverity.ERROR)
            return report.finish("", "", success=False)

        if layout.layout_version != LAYOUT_VERSION:
            report.warn(
                WarningCode.LAYOUT_VERSION_MISMATCH,
                f"Layout version {layout.layout_version} differs from {LAYOUT_VERSION}",
            )

        context = ApplyContext(self, report, same_builder=layout.source_builder == self.name)
        nodes = context.convert_all(layout.elements)
        markup = self.serialize_native(nodes)

        result = report.finish(markup, "")
        self.logger.debug(
            f"Applied {report.total} elements ({report.converted} converted) "
            f"in {result.stats.processing_time:.1f}ms"
        )
        return result

    def convert_to_neutral(
        self, node: Any, options: Optional[OptionsInput] = None
    ) -> Optional[NeutralElement]:
        """Convert one native node (and its children)."""
        report = ConversionReport(_coerce_options(options))
        elements = ExtractContext(self, report).convert_all([node])
        return elements[0] if elements else None

    def convert_from_neutral(
        self, element: NeutralElement, options: Optional[OptionsInput] = None
    ) -> list[Any]:
        """
        Convert one neutral element (and its children) into native nodes.

        Usually a single node; an element without a native mapping is passed
        through as raw HTML followed by its converted children.
        """
        report = ConversionReport(_coerce_options(options))
        return ApplyContext(self, report, same_builder=False).convert_all([element])

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------

    def node_to_elements(self, node: Any, context: ExtractContext) -> list[NeutralElement]:
        """
        Convert ``node``, keeping native children its element has no room for.

        Leaf elements (``children is None``) cannot hold nested native nodes,
        so those are converted too and emitted right after the element.
        """
        element = self.node_to_element(node, context)
        if element is None:
            return []
        if element.type == ElementType.UNKNOWN.value or element.children is not None:
            return [element]

        nested = self.native_children(node)
        if not nested:
            return [element]
        context.report.warn(
            WarningCode.ELEMENT_CONVERSION_FAILED,
            f"'{self.native_name(node)}' cannot hold nested elements; "
            f"{len(nested)} moved after it",
            context.path,
        )
        return [element, *context.children(node)]

    def node_to_element(self, node: Any, context: ExtractContext) -> Optional[NeutralElement]:
        report = context.report
        name = self.native_name(node)
        rule = self.forward_rule(name)
        report.total += 1

        if rule is None:
            report.unsupported(
                name,
                WarningCode.UNSUPPORTED_BLOCK,
                f"No mapping for native element '{name}'",
                context.path,
            )
            if context.options.strip_unknown:
                report.skipped += 1
                return None
            return self.unknown_element(node)

        try:
            element = rule.handler(node, context)
        except Exception as e:
            self.logger.debug(f"Forward handler for {name} failed: {e}", exc_info=True)
            report.warn(
                WarningCode.ELEMENT_CONVERSION_FAILED,
                f"Failed to convert '{name}': {e}",
                context.path,
            )
            return self.unknown_element(node)

        report.converted += 1
        if context.options.preserve_builder_data:
            element.attrs["_builderData"] = self.builder_data(node)
        if context.options.include_rendered:
            markup = self.native_markup(node)
            if markup is not None:
                element.attrs["_rendered"] = markup
        return element

    def unknown_element(self, node: Any) -> NeutralElement:
        """Keep an unmapped native node verbatim."""
        return NeutralElement(
            type=ElementType.UNKNOWN,
            attrs={"_builderData": self.builder_data(node, unknown=True)},
            content=self.native_markup(node),
        )

    def element_to_nodes(
        self,
        element: NeutralElement,
        context: ApplyContext,
        overrides: Optional[dict[str, ReverseHandler]] = None,
    ) -> list[Any]:
        report = context.report
        report.total += 1

        if element.type == ElementType.UNKNOWN.value:
            node = self.rebuild_unknown(element, context) if context.same_builder else None
            if node is not None:
                report.converted += 1
                return [node]
            original = (element.builder_data or {}).get("blockName", "unknown")
            report.unsupported(
                str(original),
                WarningCode.UNSUPPORTED_ELEMENT,
                f"Cannot rebuild unknown element '{original}'; passing content through",
                context.path,
            )
            return self._passthrough(element, context)

        handler = (overrides or {}).get(element.type) or self.REVERSE_HANDLERS.get(element.type)
        if handler is None:
            report.unsupported(
                element.type,
                WarningCode.UNSUPPORTED_ELEMENT,
                f"No native mapping for element type '{element.type}'",
                context.path,
            )
            return self._passthrough(element, context)

        try:
            node = handler(element, context)
        except Exception as e:
            self.logger.debug(f"Reverse handler for {element.type} failed: {e}", exc_info=True)
            report.warn(
                WarningCode.ELEMENT_CONVERSION_FAILED,
                f"Failed to convert '{element.type}': {e}",
                context.path,
            )
            return self._passthrough(element, context)

        report.converted += 1
        return [self._restore_builder_data(element, node, context)]

    def _passthrough(self, element: NeutralElement, context: ApplyContext) -> list[Any]:
        if context.options.strip_unknown:
            context.report.skipped += 1
            return []
        nodes = [self.html_node(element.content, context)] if element.content else []
        nodes.extend(context.children(element))
        return nodes

    def _restore_builder_data(
        self, element: NeutralElement, node: Any, context: ApplyContext
    ) -> Any:
        """Merge preserved native attributes under the semantic ones."""
        original = element.builder_data
        if not context.same_builder or not original:
            return node

        original_name = original.get("blockName")
        rule = self.forward_rule(original_name) if isinstance(original_name, str) else None
        name = original_name if rule and rule.element_type == element.type else self.native_name(node)

        original_attrs = original.get("attrs")
        attrs = dict(original_attrs) if isinstance(original_attrs, dict) else {}
        attrs.update(self.native_attrs(node))
        return self.rename_native(node, name, attrs)


def public_attrs(attrs: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Copy ``keys`` present in ``attrs``, never copying ``_``-prefixed keys."""
    return {key: attrs[key] for key in keys if key in attrs and not key.startswith("_")}


def _coerce_options(options: Optional[OptionsInput]) -> ConversionOptions:
    if options is None:
        return ConversionOptions()
    if isinstance(options, ConversionOptions):
        return options
    return ConversionOptions.model_validate(options)
