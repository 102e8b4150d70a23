"""Dataclasses shared by every stage of the book build pipeline.

Each stage produces new instances rather than mutating the output of an
earlier stage: documents are frozen once loaded, the section tree is only
assembled by :mod:`book_pages.tree`, and rendered pages are frozen when the
renderer creates them.
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import threading
import typing as typ
from pathlib import Path

from ._constants import PAGE_FILENAME, SECTION_INDEX_STEM

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import SiteConfig


@dc.dataclass(frozen=True, slots=True)
class Document:
    """One Markdown source file and its parsed front matter.

    Attributes
    ----------
    doc_id : str
        Posix path relative to the content root without the file suffix,
        for example ``docs/chapter-01`` or ``docs/_index``.
    source_path : Path
        Absolute path of the source file.
    title : str
        Title from front matter or derived from the file name.
    weight : int
        Ordering weight among siblings; lower sorts first.
    collapse_section : bool
        Whether the section rooted at this ``_index`` document renders
        collapsed in navigation.
    hidden : bool
        Rendered, but left out of navigation and reading order.
    draft : bool
        Draft documents are only loaded when drafts are enabled.
    body : str
        Markdown text following the front matter block.
    front_matter : Mapping[str, object]
        Every key found in the front matter, recognised or not.
    body_line_offset : int
        Number of source lines consumed by the front matter block.
    """

    doc_id: str
    source_path: Path
    title: str
    weight: int = 0
    collapse_section: bool = False
    hidden: bool = False
    draft: bool = False
    body: str = ""
    front_matter: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    body_line_offset: int = 0

    @property
    def is_section_index(self) -> bool:
        """Return ``True`` for ``_index`` documents that describe a directory."""
        return posixpath.basename(self.doc_id) == SECTION_INDEX_STEM

    @property
    def directory(self) -> str:
        """Return the posix directory containing the source file (``""`` at root)."""
        return posixpath.dirname(self.doc_id)

    @property
    def section_key(self) -> str:
        """Return the logical path this document occupies in the section tree."""
        return self.directory if self.is_section_index else self.doc_id

    @property
    def output_path(self) -> str:
        """Return the posix output path using directory-style pretty URLs."""
        key = self.section_key
        if not key:
            return PAGE_FILENAME
        return f"{key}/{PAGE_FILENAME}"

    @property
    def logical_names(self) -> tuple[str, ...]:
        """Return every name a cross-reference may use for this document."""
        names = [self.doc_id]
        if self.is_section_index:
            names.append(self.directory)
        return tuple(names)


@dc.dataclass(eq=False, slots=True)
class SectionNode:
    """A node in the navigation tree.

    Index-only nodes (directories without an ``_index`` document) carry no
    document. ``parent`` is a back reference and is excluded from repr.
    """

    key: str
    title: str
    document: Document | None = None
    weight: int = 0
    sort_path: str = ""
    is_section: bool = False
    collapsed: bool = False
    hidden: bool = False
    children: list[SectionNode] = dc.field(default_factory=list)
    parent: SectionNode | None = dc.field(default=None, repr=False)

    def ancestors(self) -> list[SectionNode]:
        """Return ancestors ordered from the root down to the direct parent."""
        chain: list[SectionNode] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        chain.reverse()
        return chain

    def walk(self) -> cabc.Iterator[SectionNode]:
        """Yield this node and all descendants in preorder."""
        yield self
        for child in self.children:
            yield from child.walk()

    @property
    def output_path(self) -> str | None:
        """Return the output path of the attached document, if any."""
        return self.document.output_path if self.document else None


@dc.dataclass(frozen=True, slots=True)
class CrossReference:
    """A resolved link from one document to another."""

    source_id: str
    target_id: str
    target_output_path: str
    raw_target: str
    fragment: str = ""
    line: int | None = None


@dc.dataclass(frozen=True, slots=True)
class BrokenReference:
    """A reference whose target does not exist in the document set."""

    source_id: str
    raw_target: str
    line: int | None = None


@dc.dataclass(frozen=True, slots=True)
class NavLink:
    """A navigation entry pointing at a page relative to the current one."""

    title: str
    href: str | None
    output_path: str | None = None
    is_current: bool = False


@dc.dataclass(frozen=True, slots=True)
class NavigationContext:
    """Navigation chrome computed for one page from the section tree."""

    breadcrumbs: tuple[NavLink, ...] = ()
    siblings: tuple[NavLink, ...] = ()
    prev: NavLink | None = None
    next: NavLink | None = None


@dc.dataclass(frozen=True, slots=True)
class RenderedPage:
    """Final output artifact for one document."""

    doc_id: str
    output_path: str
    title: str
    body_html: str
    html: str
    navigation: NavigationContext


@dc.dataclass(frozen=True, slots=True)
class BuildIssue:
    """A recoverable problem recorded in the build report.

    ``kind`` is one of ``front-matter``, ``unreadable``, ``duplicate-output``
    or ``broken-reference``.
    """

    kind: str
    document_id: str
    message: str
    target: str | None = None
    line: int | None = None

    def describe(self) -> str:
        """Return a single-line human readable description."""
        location = self.document_id
        if self.line is not None:
            location = f"{location}:{self.line}"
        return f"{location}: {self.message}"


@dc.dataclass(slots=True)
class BuildReport:
    """Outcome of one build: recoverable issues and written artifacts."""

    issues: list[BuildIssue] = dc.field(default_factory=list)
    skipped: dict[str, str] = dc.field(default_factory=dict)
    written: list[Path] = dc.field(default_factory=list)
    output_root: Path | None = None

    @property
    def ok(self) -> bool:
        """Return ``True`` when the build completed without any issue."""
        return not self.issues

    def issues_of(self, kind: str) -> list[BuildIssue]:
        """Return issues of the requested kind in recorded order."""
        return [issue for issue in self.issues if issue.kind == kind]


@dc.dataclass(slots=True)
class BuildContext:
    """Per-invocation state threaded through the pipeline stages."""

    content_root: Path
    output_root: Path
    config: SiteConfig
    report: BuildReport = dc.field(default_factory=BuildReport)
    cancel_event: threading.Event = dc.field(default_factory=threading.Event)

    def record(self, issues: cabc.Iterable[BuildIssue]) -> None:
        """Append ``issues`` to the report."""
        self.report.issues.extend(issues)

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once cancellation has been requested."""
        return self.cancel_event.is_set()


__all__ = [
    "BrokenReference",
    "BuildContext",
    "BuildIssue",
    "BuildReport",
    "CrossReference",
    "Document",
    "NavLink",
    "NavigationContext",
    "RenderedPage",
    "SectionNode",
]
