"""Run the full book build: load, tree, resolve, render, emit.

The stages run strictly in order and each returns new data; the
:class:`~book_pages.models.BuildContext` carries configuration, the report,
and the cancellation flag between them. Cancellation is honoured between
stages and before the output is promoted.

Example
-------
>>> from pathlib import Path
>>> from book_pages.pipeline import build_site
>>> report = build_site(Path("content"), Path("public"))  # doctest: +SKIP
>>> report.ok  # doctest: +SKIP
True
"""

from __future__ import annotations

import threading
import typing as typ
from pathlib import Path

import structlog

from .config import SiteConfig
from .emitter import SiteEmitter
from .errors import BuildCancelledError
from .generator import PageRenderer
from .loader import ContentLoader
from .models import BuildContext, BuildReport
from .tree import TreeBuilder
from .xref import CrossReferenceResolver

if typ.TYPE_CHECKING:
    from .loader import LoadResult
    from .tree import SectionTree
    from .xref import ReferenceTable

logger = structlog.get_logger(__name__)

_SKIPPED_KINDS = ("front-matter", "unreadable", "duplicate-output")


class BookPipeline:
    """Drive one build invocation over a :class:`BuildContext`."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    def run(self) -> BuildReport:
        """Run every stage and return the build report.

        Raises
        ------
        ContentRootError
            If the content root is missing or unreadable.
        OutputRootError
            If the output root cannot be written.
        BuildCancelledError
            If the build was cancelled; the output root is left untouched.
        """
        loaded, tree, table = self.analyse()
        pages = PageRenderer(self.context.config).render_all(
            loaded.documents, tree, table
        )
        self._checkpoint("render")
        report = self.context.report
        report.written = SiteEmitter(self.context).emit(pages, tree)
        report.output_root = self.context.output_root
        logger.info(
            "BUILD_FINISHED",
            pages=len(pages),
            issues=len(report.issues),
            output_root=str(self.context.output_root),
        )
        return report

    def analyse(self) -> tuple[LoadResult, SectionTree, ReferenceTable]:
        """Run the loading, tree building, and resolution stages only."""
        context = self.context
        self._checkpoint("start")
        loaded = ContentLoader(context.content_root, context.config).load()
        context.record(loaded.issues)
        for issue in loaded.issues:
            if issue.kind in _SKIPPED_KINDS:
                context.report.skipped[issue.document_id] = issue.message
        self._checkpoint("load")

        tree = TreeBuilder(context.config.site_name).build(loaded.documents)
        self._checkpoint("tree")

        table, issues = CrossReferenceResolver(loaded.documents).resolve()
        context.record(issues)
        self._checkpoint("resolve")
        return loaded, tree, table

    def _checkpoint(self, stage: str) -> None:
        if self.context.cancelled:
            logger.info("BUILD_CANCELLED", stage=stage)
            msg = f"Build cancelled after the {stage} stage."
            raise BuildCancelledError(msg)


def build_site(
    content_root: Path,
    output_root: Path,
    config: SiteConfig | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> BuildReport:
    """Build the book at ``content_root`` into ``output_root``.

    Parameters
    ----------
    content_root : Path
        Directory holding the Markdown content tree.
    output_root : Path
        Directory that receives the rendered site; replaced as a whole.
    config : SiteConfig, optional
        Build options; defaults apply when omitted.
    cancel_event : threading.Event, optional
        Set from another thread to cancel the build between stages.

    Returns
    -------
    BuildReport
        Per-document and per-reference issues plus the written paths.
    """
    context = _make_context(content_root, output_root, config, cancel_event)
    return BookPipeline(context).run()


def check_site(content_root: Path, config: SiteConfig | None = None) -> BuildReport:
    """Load and resolve the book without rendering or writing anything."""
    context = _make_context(content_root, Path(), config, None)
    BookPipeline(context).analyse()
    return context.report


def _make_context(
    content_root: Path,
    output_root: Path,
    config: SiteConfig | None,
    cancel_event: threading.Event | None,
) -> BuildContext:
    return BuildContext(
        content_root=Path(content_root),
        output_root=Path(output_root),
        config=config or SiteConfig(),
        cancel_event=cancel_event or threading.Event(),
    )


__all__ = ["BookPipeline", "build_site", "check_site"]
