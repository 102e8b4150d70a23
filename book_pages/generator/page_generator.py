"""Render loaded documents into themed HTML pages.

:class:`PageRenderer` consumes the complete document set, the section tree,
and the resolved reference table. For each document it expands shortcodes,
substitutes cross-references, converts Markdown with
:class:`HtmlContentRenderer`, computes navigation chrome, and renders the
``page.jinja`` template into a frozen :class:`~book_pages.models.RenderedPage`.

Example
-------
>>> from book_pages.config import SiteConfig
>>> from book_pages.generator import PageRenderer
>>> renderer = PageRenderer(SiteConfig())  # doctest: +SKIP
>>> pages = renderer.render_all(documents, tree, table)  # doctest: +SKIP
>>> pages[0].output_path  # doctest: +SKIP
'index.html'
"""

from __future__ import annotations

import typing as typ
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from book_pages._constants import PAGE_FILENAME
from book_pages.models import CrossReference, RenderedPage

from .link_rewriter import ReferenceLinkExtension
from .navigation import build_menu, build_navigation, relative_href
from .renderer import HtmlContentRenderer
from .shortcodes import ShortcodeExpander, restore_blocks

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from book_pages.config import SiteConfig
    from book_pages.models import Document, SectionNode
    from book_pages.tree import SectionTree
    from book_pages.xref import ReferenceTable

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


class PageRenderer:
    """Render documents into HTML pages with shared templates and styling."""

    def __init__(
        self, config: SiteConfig, *, templates_dir: Path | None = None
    ) -> None:
        """Initialize the renderer with configuration and template context.

        Parameters
        ----------
        config : SiteConfig
            Site configuration providing the title suffix, highlighting
            options, and worker count.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package
            templates.
        """
        self.config = config
        self.templates_dir = templates_dir or DEFAULT_TEMPLATES_DIR
        self.content = HtmlContentRenderer(
            config.pygments_style, highlight=config.highlight
        )
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.template = self.env.get_template("page.jinja")

    def render_all(
        self,
        documents: cabc.Sequence[Document],
        tree: SectionTree,
        table: ReferenceTable,
    ) -> list[RenderedPage]:
        """Render every document on a thread pool, preserving input order."""
        reading_order = tree.reading_order()

        def _render(document: Document) -> RenderedPage:
            return self.render(document, tree, table, reading_order)

        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            pages = list(pool.map(_render, documents))
        logger.info("PAGES_RENDERED", pages=len(pages))
        return pages

    def render(
        self,
        document: Document,
        tree: SectionTree,
        table: ReferenceTable,
        reading_order: list[SectionNode] | None = None,
    ) -> RenderedPage:
        """Render a single document into a :class:`RenderedPage`."""
        if reading_order is None:
            reading_order = tree.reading_order()
        node = tree.node_for(document.doc_id)
        current = document.output_path
        body_html = self.render_body(document, table)
        navigation = build_navigation(node, tree, reading_order)
        active = {ancestor.key for ancestor in node.ancestors()} | {node.key}
        root_link = relative_href(current, tree.root.output_path or PAGE_FILENAME)
        context = {
            "page": {
                "title": document.title,
                "doc_id": document.doc_id,
                "is_section": node.is_section,
            },
            "html_title": self._format_page_title(document),
            "site_name": self.config.site_name,
            "root_href": root_link if tree.root.document is not None else None,
            "body_html": body_html,
            "navigation": navigation,
            "menu": build_menu(tree.root, current, active),
            "pygments_css": self.content.stylesheet,
        }
        html = self.template.render(**context)
        return RenderedPage(
            doc_id=document.doc_id,
            output_path=current,
            title=document.title,
            body_html=body_html,
            html=html,
            navigation=navigation,
        )

    def render_body(self, document: Document, table: ReferenceTable) -> str:
        """Convert the Markdown body of ``document`` into HTML."""
        current = document.output_path

        def _lookup(raw_target: str) -> CrossReference | None:
            entry = table.lookup(document.doc_id, raw_target)
            return entry if isinstance(entry, CrossReference) else None

        def _href(reference: CrossReference) -> str:
            return relative_href(
                current, reference.target_output_path, reference.fragment
            )

        def _resolve_link(href: str) -> str | None:
            entry = table.lookup(document.doc_id, href, markdown_link=True)
            if not isinstance(entry, CrossReference):
                return None
            return _href(entry)

        link_extension = ReferenceLinkExtension(_resolve_link)

        def _render_fragment(text: str) -> str:
            expanded, stash = expander.expand(text)
            html = self.content.markdown(expanded, link_extension)
            return restore_blocks(html, stash)

        expander = ShortcodeExpander(_lookup, _href, _render_fragment)
        return _render_fragment(document.body)

    def _format_page_title(self, document: Document) -> str:
        """Compose the HTML title from the document title and configured suffix."""
        suffix = self.config.title_suffix
        if document.title == suffix:
            return suffix
        return f"{document.title} | {suffix}"


__all__ = ["PageRenderer"]
