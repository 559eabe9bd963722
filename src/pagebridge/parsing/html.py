"""Helpers for reading values out of rendered block markup."""

from typing import Iterable, Optional

from bs4 import BeautifulSoup, Tag

STYLE_CLASS_PREFIX = "is-style-"
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


def parse_style(style: str) -> dict[str, str]:
    """Parse an inline ``style`` attribute into a property mapping."""
    properties: dict[str, str] = {}
    for declaration in (style or "").split(";"):
        name, sep, value = declaration.partition(":")
        if sep and name.strip():
            properties[name.strip().lower()] = value.strip()
    return properties


def style_variant(class_names: Iterable[str]) -> Optional[str]:
    """Return ``wide`` for an ``is-style-wide`` token, if any."""
    for token in class_names:
        if token.startswith(STYLE_CLASS_PREFIX) and len(token) > len(STYLE_CLASS_PREFIX):
            return token[len(STYLE_CLASS_PREFIX) :]
    return None


class Fragment:
    """
    A parsed piece of rendered markup.

    Example:
        fragment = Fragment('<figure><img src="a.png" alt="A"/></figure>')
        fragment.attr("img", "src")  # "a.png"
    """

    def __init__(self, html: str):
        self.html = html or ""
        self.soup = BeautifulSoup(self.html, "html.parser")

    def first(self, *names: str) -> Optional[Tag]:
        """First tag matching any of ``names``, or the first tag at all."""
        found = self.soup.find(list(names)) if names else self.soup.find(True)
        return found if isinstance(found, Tag) else None

    def inner_html(self, *names: str) -> Optional[str]:
        """Inner markup of the first matching tag, stripped."""
        tag = self.first(*names)
        if tag is None:
            return None
        return tag.decode_contents().strip()

    def text(self, *names: str) -> str:
        """Plain text of the first matching tag (or the whole fragment)."""
        if names:
            tag = self.first(*names)
            return tag.get_text().strip() if tag is not None else ""
        return self.soup.get_text().strip()

    def attr(self, name: str, attribute: str) -> Optional[str]:
        tag = self.first(name)
        if tag is None:
            return None
        value = tag.get(attribute)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def classes(self, *names: str) -> list[str]:
        tag = self.first(*names)
        if tag is None:
            return []
        value = tag.get("class") or []
        return value.split() if isinstance(value, str) else list(value)

    def style_property(self, prop: str) -> Optional[str]:
        """Value of an inline style property on the first tag that sets it."""
        for tag in self.soup.find_all(style=True):
            value = parse_style(tag.get("style", "")).get(prop)
            if value:
                return value
        return None

    def heading_level(self) -> Optional[int]:
        tag = self.first(*HEADING_TAGS)
        return int(tag.name[1]) if tag is not None else None

    def quote_parts(self) -> tuple[Optional[str], Optional[str]]:
        """
        Split the first ``<blockquote>`` into (body, citation) markup.

        The citation is removed from the parsed fragment.
        """
        quote = self.first("blockquote")
        if quote is None:
            return None, None
        citation = None
        cite = quote.find("cite")
        if isinstance(cite, Tag):
            citation = cite.decode_contents().strip() or None
            cite.extract()
        return quote.decode_contents().strip(), citation

    def images(self) -> list[dict[str, str]]:
        """``src``/``alt`` of every ``<img>`` that has a source."""
        found = []
        for img in self.soup.find_all("img", src=True):
            image = {"src": img["src"]}
            if img.get("alt"):
                image["alt"] = img["alt"]
            found.append(image)
        return found

    def list_items(self) -> list[str]:
        """Inner markup of the ``<li>`` items of the first list, or of bare top-level items."""
        container = self.first("ul", "ol") or self.soup
        return [li.decode_contents().strip() for li in container.find_all("li", recursive=False)]


def unwrap_paragraph(html: str) -> str:
    """Inner markup of ``html`` when it is exactly one ``<p>``, else ``html`` stripped."""
    fragment = Fragment(html)
    top_level = [child for child in fragment.soup.contents if str(child).strip()]
    if len(top_level) == 1 and getattr(top_level[0], "name", None) == "p":
        return top_level[0].decode_contents().strip()
    return (html or "").strip()
