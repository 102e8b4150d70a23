"""Utilities for building static documentation books from Markdown.

This package exposes the ``book`` CLI and the :func:`build_site` pipeline that
turns a tree of Markdown chapters into themed HTML pages with navigation,
resolved cross-references, and a JSON navigation manifest.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.
- ``build_site``: Run a full build programmatically.

Examples
--------
>>> from book_pages import main
>>> main(["build", "content", "public"])  # doctest: +SKIP
0
>>> from book_pages import app
>>> callable(app)
True
"""

from __future__ import annotations

from .cli import app, main
from .pipeline import build_site

__all__ = ["app", "build_site", "main"]
