"""Utilities for rendering markdown and syntax-highlighted code snippets."""

from __future__ import annotations

import re
import typing as typ
from html import escape

from markdown import Markdown
from pygments.formatters.html import HtmlFormatter

from book_pages._constants import MARKDOWN_EXTENSIONS
from book_pages.fences import normalize_fences, split_fenced

if typ.TYPE_CHECKING:
    from markdown.extensions import Extension
else:  # pragma: no cover - type-checking fallback
    Extension = typ.Any

CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')


class HtmlContentRenderer:
    """Render markdown with consistent code block styling.

    Code blocks are never parsed for their content; the declared language is
    carried as ``data-language`` (highlighted) or ``language-*`` class
    (plain) for downstream tooling.
    """

    def __init__(
        self, pygments_style: str = "monokai", *, highlight: bool = True
    ) -> None:
        """Initialize a renderer with optional pygments style.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting. Defaults to
            ``"monokai"``.
        highlight : bool, optional
            Pass code through Pygments; when ``False`` code blocks are emitted
            as plain ``<pre><code>`` elements.
        """
        self.pygments_style = pygments_style
        self.highlight = highlight
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        if not self.highlight:
            return ""
        return self._formatter.get_style_defs(".codehilite")

    def markdown(self, text: str, link_extension: Extension | None = None) -> str:
        """Render markdown into HTML using the configured extensions."""
        normalized = normalize_fences(text)
        if not normalized.strip():
            return ""
        extensions: list[Extension | str] = list(MARKDOWN_EXTENSIONS)
        extension_configs: dict[str, dict[str, typ.Any]] = {}
        if self.highlight:
            extensions.append("codehilite")
            extension_configs["codehilite"] = {
                "linenums": False,
                "guess_lang": False,
                "css_class": "codehilite",
                "pygments_style": self.pygments_style,
            }
        if link_extension is not None:
            extensions.append(link_extension)
        md = Markdown(extensions=extensions, extension_configs=extension_configs)
        html = md.convert(normalized)
        if not self.highlight:
            return html
        return self._annotate_codehilite(html, normalized)

    def _annotate_codehilite(self, html: str, source_markdown: str) -> str:
        """Attach language metadata to each highlighted block in converted markdown."""
        languages = [
            segment.language or "text"
            for segment in split_fenced(source_markdown)
            if segment.is_code
        ]
        if not languages:
            return html
        lang_iter = iter(languages)

        def _repl(match: re.Match[str]) -> str:
            lang = next(lang_iter, "text")
            return (
                f'<div class="codehilite" data-language="{escape(lang, quote=True)}">'
            )

        return CODEHILITE_OPEN_TAG.sub(_repl, html, len(languages))


__all__ = ["HtmlContentRenderer"]
