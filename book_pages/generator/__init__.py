"""Utilities for rendering book documents into HTML pages."""

from .link_rewriter import ReferenceLinkExtension
from .navigation import relative_href
from .page_generator import PageRenderer
from .renderer import HtmlContentRenderer
from .shortcodes import ShortcodeExpander

__all__ = [
    "HtmlContentRenderer",
    "PageRenderer",
    "ReferenceLinkExtension",
    "ShortcodeExpander",
    "relative_href",
]
