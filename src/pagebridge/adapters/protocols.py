"""Protocol definitions for builder adapters."""

from typing import Any, Optional, Protocol, Union, runtime_checkable

from ..models.config import ConversionOptions
from ..models.layout import NeutralLayout
from ..models.page import PageData
from ..models.results import ConversionResult, DetectionResult

PageInput = Union[PageData, dict[str, Any]]
OptionsInput = Union[ConversionOptions, dict[str, Any], None]


@runtime_checkable
class BuilderAdapter(Protocol):
    """
    Protocol for page-builder adapters.

    An adapter knows how to recognize one builder's markup, extract it into a
    :class:`~pagebridge.models.layout.NeutralLayout`, and serialize a neutral
    layout back into that builder's native form.

    Error Handling Contract:
    - Per-element problems are returned as warnings on the result
    - ``success`` is False only when nothing could be produced at all
    - ``detect`` may raise; the registry isolates the failure
    """

    name: str
    display_name: str
    supported: bool

    def detect(self, page: PageInput) -> DetectionResult:
        """
        Score how likely it is that ``page`` was built with this builder.

        Args:
            page: Page record (model or REST dict)

        Returns:
            DetectionResult with confidence in [0, 1]
        """
        ...

    def extract_layout(
        self, page: PageInput, options: Optional[OptionsInput] = None
    ) -> ConversionResult[NeutralLayout]:
        ...

    def extract_layout_from_content(
        self, content: Any, options: Optional[OptionsInput] = None
    ) -> ConversionResult[NeutralLayout]:
        ...

    def apply_layout(
        self,
        layout: Union[NeutralLayout, dict[str, Any]],
        options: Optional[OptionsInput] = None,
    ) -> ConversionResult[str]:
        ...
