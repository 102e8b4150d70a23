"""Markdown extension that points chapter links at their output pages."""

from __future__ import annotations

import typing as typ
from urllib.parse import quote, unquote

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from book_pages.xref import is_relative_markdown_link

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from xml.etree.ElementTree import Element

    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any
    Element = typ.Any

BROKEN_HREF_PREFIX = "#broken-ref:"
BROKEN_LINK_CLASS = "broken-link"


def broken_href(raw_target: str) -> str:
    """Return the sentinel href substituted for an unresolved reference."""
    return f"{BROKEN_HREF_PREFIX}{quote(raw_target, safe='/')}"


def mark_broken(element: Element, raw_target: str) -> None:
    """Turn ``element`` into a visibly broken link for ``raw_target``."""
    classes = [cls for cls in (element.get("class") or "").split() if cls]
    if BROKEN_LINK_CLASS not in classes:
        classes.append(BROKEN_LINK_CLASS)
    element.set("class", " ".join(classes))
    element.set("href", "#")
    element.set("data-broken-ref", raw_target)
    element.set("title", f"Broken reference: {raw_target}")


class ReferenceLinkExtension(Extension):
    """Rewrite chapter links using a resolved cross-reference table.

    Insert this extension into a ``markdown.Markdown`` instance so that links
    to sibling Markdown sources (``./chapter-02.md``) point at the generated
    page, and links whose target was reported broken are rendered with the
    ``broken-link`` class instead of silently dangling.
    """

    def __init__(self, resolve: cabc.Callable[[str], str | None]) -> None:
        super().__init__()
        self.resolve = resolve

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the reference-link treeprocessor on the Markdown instance."""
        processor = ReferenceLinkTreeprocessor(md, self.resolve)
        md.treeprocessors.register(processor, "book_reference_links", 15)


class ReferenceLinkTreeprocessor(Treeprocessor):
    """Rewrite anchors whose target is another chapter."""

    def __init__(
        self, md: Markdown, resolve: cabc.Callable[[str], str | None]
    ) -> None:
        super().__init__(md)
        self.resolve = resolve

    def run(self, root: Element) -> Element:
        """Rewrite chapter anchors in the parsed markdown tree."""
        for element in root.iter():
            if element.tag != "a":
                continue
            href = element.get("href")
            if not href:
                continue
            if href.startswith(BROKEN_HREF_PREFIX):
                mark_broken(element, unquote(href[len(BROKEN_HREF_PREFIX) :]))
                continue
            if not is_relative_markdown_link(href):
                continue
            rewritten = self.resolve(href)
            if rewritten is None:
                mark_broken(element, href)
            else:
                element.set("href", rewritten)
        return root


__all__ = [
    "BROKEN_HREF_PREFIX",
    "BROKEN_LINK_CLASS",
    "ReferenceLinkExtension",
    "ReferenceLinkTreeprocessor",
    "broken_href",
    "mark_broken",
]
