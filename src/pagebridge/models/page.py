"""Page records supplied by the WordPress REST layer."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class RenderedField(BaseModel):
    """A REST field with rendered and (optionally) raw variants."""

    rendered: str = ""
    raw: Optional[str] = None

    model_config = {"extra": "ignore"}


class PageContent(RenderedField):
    """Page body; ``raw`` is only present in ``context=edit`` responses."""

    protected: bool = False


class PageData(BaseModel):
    """
    WordPress page as fetched by an external collaborator.

    Accepts the REST API JSON directly; fields this package does not read
    are ignored.

    Example:
        page = PageData.coerce({
            "id": 42,
            "slug": "about",
            "title": {"rendered": "About"},
            "content": {"rendered": "<p>Hi</p>", "raw": "<!-- wp:paragraph -->..."},
            "status": "publish",
        })
    """

    id: int = Field(..., description="WordPress post ID")
    slug: str = Field("", description="URL slug")
    title: RenderedField = Field(default_factory=RenderedField)
    content: PageContent = Field(default_factory=PageContent)
    excerpt: Optional[RenderedField] = None
    status: Literal["publish", "draft", "pending", "private", "future", "trash"] = "publish"
    template: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    acf: Optional[dict[str, Any]] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def coerce(cls, page: Union[PageData, dict[str, Any]]) -> PageData:
        """Accept a model instance or a REST dict."""
        if isinstance(page, cls):
            return page
        return cls.model_validate(page)

    @property
    def source_content(self) -> str:
        """Raw block markup when available, else the rendered HTML."""
        return self.content.raw or self.content.rendered or ""

    @property
    def rendered_content(self) -> str:
        """Rendered HTML when available, else the raw markup."""
        return self.content.rendered or self.content.raw or ""
