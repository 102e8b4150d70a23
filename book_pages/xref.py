"""Resolve chapter cross-references by logical name.

Three forms are recognised outside fenced code blocks:

* ``{{< relref "docs/chapter-01" >}}`` and ``{{< ref ... >}}`` shortcodes,
  with ``{{% %}}`` delimiters accepted as well;
* ``relref="..."`` or ``ref="..."`` parameters on other shortcodes such as
  ``{{< button relref="/docs" >}}``;
* Markdown links to relative ``.md`` files, inline (``[next](chapter-02.md)``)
  or reference style. These are collected by parsing the body with the same
  Python-Markdown extensions the renderer uses, so both stages agree on which
  anchors exist.

Resolution never touches the filesystem. Every broken occurrence becomes a
``broken-reference`` :class:`~book_pages.models.BuildIssue` naming the source
document, the raw target, and the source line.

Example
-------
>>> from pathlib import Path
>>> from book_pages.models import Document
>>> from book_pages.xref import CrossReferenceResolver
>>> docs = [
...     Document("docs/a", Path("a.md"), "A", body='See {{< relref "b" >}}.'),
...     Document("docs/b", Path("b.md"), "B"),
... ]
>>> table, issues = CrossReferenceResolver(docs).resolve()
>>> table.lookup("docs/a", "b").target_output_path
'docs/b/index.html'
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import re
import typing as typ

import structlog
from markdown import Markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

from ._constants import MARKDOWN_EXTENSIONS, MARKDOWN_SUFFIXES, SECTION_INDEX_STEM
from .fences import iter_prose_lines, normalize_fences
from .models import BrokenReference, BuildIssue, CrossReference

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from xml.etree.ElementTree import Element

    from .models import Document

logger = structlog.get_logger(__name__)

RELREF_PATTERN = re.compile(
    r"\{\{(?P<open>[<%])\s*(?P<kind>relref|ref)\s+"
    r"(?P<quote>[\"'])(?P<target>[^\"']*)(?P=quote)\s*[>%]\}\}"
)
SHORTCODE_TAG_PATTERN = re.compile(
    r"\{\{[<%]\s*(?P<name>[A-Za-z][\w-]*)(?P<params>[^}]*?)\s*/?[>%]\}\}"
)
REF_PARAM_PATTERN = re.compile(
    r"\b(?:relref|ref)=(?P<quote>[\"'])(?P<target>[^\"']*)(?P=quote)"
)
HREF_BOUNDARY = r"(?<![\w./-]){href}(?![\w/#-])"
SHORTCODE_SPAN_PATTERN = re.compile(r"\{\{[<%].*?[>%]\}\}")


@dc.dataclass(frozen=True, slots=True)
class ReferenceSite:
    """A reference found in a document body before it is resolved.

    ``line`` is ``None`` when a Markdown link's href could not be traced back
    to the source text, for example after backslash escapes were removed.
    """

    raw_target: str
    line: int | None
    markdown_link: bool = False


ReferenceKey = tuple[str, str, bool]


@dc.dataclass(frozen=True, slots=True)
class ReferenceTable:
    """Side table from ``(source_id, raw_target, markdown_link)`` to results.

    Shortcode targets and Markdown link targets resolve under different
    rules, so the same raw text may appear once of each kind.
    """

    entries: typ.Mapping[ReferenceKey, CrossReference | BrokenReference]
    output_index: typ.Mapping[str, str]

    def lookup(
        self, source_id: str, raw_target: str, *, markdown_link: bool = False
    ) -> CrossReference | BrokenReference | None:
        """Return the resolution recorded for ``raw_target`` in ``source_id``."""
        return self.entries.get((source_id, raw_target, markdown_link))

    def document_for_output(self, output_path: str) -> str | None:
        """Return the document id that owns ``output_path``."""
        return self.output_index.get(output_path)

    @property
    def resolved(self) -> list[CrossReference]:
        """Return successful cross-references sorted by source and target."""
        found = [e for e in self.entries.values() if isinstance(e, CrossReference)]
        return sorted(found, key=lambda ref: (ref.source_id, ref.raw_target))

    @property
    def broken(self) -> list[BrokenReference]:
        """Return broken references sorted by source and target."""
        found = [e for e in self.entries.values() if isinstance(e, BrokenReference)]
        return sorted(found, key=lambda ref: (ref.source_id, ref.raw_target))


class CrossReferenceResolver:
    """Resolve every cross-reference in a document set."""

    def __init__(self, documents: cabc.Iterable[Document]) -> None:
        self.documents = tuple(documents)
        self._names: dict[str, Document] = {}
        for document in self.documents:
            for name in document.logical_names:
                self._names.setdefault(name, document)

    def resolve(self) -> tuple[ReferenceTable, list[BuildIssue]]:
        """Scan all documents and return the reference table and issues."""
        entries: dict[ReferenceKey, CrossReference | BrokenReference] = {}
        issues: list[BuildIssue] = []
        for document in self.documents:
            for site in find_references(document.body):
                line = (
                    site.line + document.body_line_offset
                    if site.line is not None
                    else None
                )
                key = (document.doc_id, site.raw_target, site.markdown_link)
                result = entries.get(key)
                if result is None:
                    result = self.resolve_one(
                        document, site.raw_target, site.markdown_link, line
                    )
                    entries[key] = result
                if isinstance(result, BrokenReference):
                    logger.warning(
                        "BROKEN_REFERENCE",
                        document=document.doc_id,
                        target=site.raw_target,
                        line=line,
                    )
                    issues.append(
                        BuildIssue(
                            kind="broken-reference",
                            document_id=document.doc_id,
                            message=(
                                f"reference to '{site.raw_target}' does not resolve"
                            ),
                            target=site.raw_target,
                            line=line,
                        )
                    )
        output_index = {doc.output_path: doc.doc_id for doc in self.documents}
        table = ReferenceTable(entries=entries, output_index=output_index)
        logger.info(
            "REFERENCES_RESOLVED", resolved=len(table.resolved), broken=len(issues)
        )
        return table, issues

    def resolve_one(
        self,
        source: Document,
        raw_target: str,
        markdown_link: bool = False,
        line: int | None = None,
    ) -> CrossReference | BrokenReference:
        """Resolve ``raw_target`` as written in ``source``."""
        path, _sep, fragment = raw_target.strip().partition("#")
        target: Document | None
        if not path:
            target = source
        else:
            target = None
            for candidate in _candidates(path, source.directory, markdown_link):
                target = self._names.get(candidate)
                if target is not None:
                    break
        if target is None:
            return BrokenReference(
                source_id=source.doc_id, raw_target=raw_target, line=line
            )
        return CrossReference(
            source_id=source.doc_id,
            target_id=target.doc_id,
            target_output_path=target.output_path,
            raw_target=raw_target,
            fragment=fragment,
            line=line,
        )


class ReferenceCollectorExtension(Extension):
    """Record the href of every relative Markdown link in the parsed tree."""

    def __init__(self) -> None:
        super().__init__()
        self.hrefs: list[str] = []

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the collecting treeprocessor after inline parsing."""
        md.treeprocessors.register(
            _ReferenceCollector(md, self.hrefs), "book_reference_collector", 15
        )


class _ReferenceCollector(Treeprocessor):
    def __init__(self, md: Markdown, hrefs: list[str]) -> None:
        super().__init__(md)
        self.hrefs = hrefs

    def run(self, root: Element) -> None:
        for element in root.iter("a"):
            href = element.get("href")
            if href and is_relative_markdown_link(href):
                self.hrefs.append(href)


def collect_markdown_links(body: str) -> list[str]:
    """Return relative ``.md`` hrefs as Python-Markdown parses ``body``.

    Fenced and indented code, inline code spans, and raw HTML never yield
    links, and reference-style definitions are honoured.
    """
    collector = ReferenceCollectorExtension()
    extensions: list[Extension | str] = [*MARKDOWN_EXTENSIONS, collector]
    Markdown(extensions=extensions).convert(normalize_fences(body))
    return collector.hrefs


def find_references(body: str) -> list[ReferenceSite]:
    """Return every reference in ``body`` outside fenced code, in order."""
    prose = list(iter_prose_lines(body))
    found: list[tuple[tuple[int, int], ReferenceSite]] = []
    for lineno, line in prose:
        for match in RELREF_PATTERN.finditer(line):
            site = ReferenceSite(match["target"], lineno)
            found.append(((lineno, match.start()), site))
        for match in SHORTCODE_TAG_PATTERN.finditer(line):
            if match["name"] in ("relref", "ref"):
                continue
            for param in REF_PARAM_PATTERN.finditer(match["params"]):
                site = ReferenceSite(param["target"], lineno)
                found.append(((lineno, match.start()), site))
    seen: dict[str, int] = {}
    for href in collect_markdown_links(body):
        positions = _href_positions(prose, href)
        index = seen.get(href, 0)
        seen[href] = index + 1
        position = positions[min(index, len(positions) - 1)] if positions else None
        line = position[0] if position is not None else None
        site = ReferenceSite(href, line, markdown_link=True)
        found.append((position or (len(body), 0), site))
    return [site for _pos, site in sorted(found, key=lambda item: item[0])]


def _href_positions(
    prose: list[tuple[int, str]], href: str
) -> list[tuple[int, int]]:
    """Return ``(line, column)`` for each place ``href`` is written.

    Occurrences inside shortcode tags belong to ``relref`` targets and are
    skipped.
    """
    pattern = re.compile(HREF_BOUNDARY.format(href=re.escape(href)))
    positions: list[tuple[int, int]] = []
    for lineno, line in prose:
        tags = [m.span() for m in SHORTCODE_SPAN_PATTERN.finditer(line)]
        for match in pattern.finditer(line):
            if not any(start <= match.start() < end for start, end in tags):
                positions.append((lineno, match.start()))
    return positions


def is_relative_markdown_link(target: str) -> bool:
    """Return ``True`` for links such as ``../chapter.md`` that name content."""
    if "://" in target or target.startswith(("//", "#", "mailto:")):
        return False
    path = target.partition("#")[0]
    return path.lower().endswith(MARKDOWN_SUFFIXES)


def _candidates(path: str, source_dir: str, markdown_link: bool) -> list[str]:
    """Return normalised logical names to try for ``path``, in priority order."""
    if path.startswith("/"):
        raw = [path.lstrip("/")]
    elif markdown_link:
        raw = [posixpath.join(source_dir, path)]
    else:
        raw = [posixpath.join(source_dir, path), path]
    names: list[str] = []
    for item in raw:
        name = _normalise(item)
        if name is not None and name not in names:
            names.append(name)
    return names


def _normalise(path: str) -> str | None:
    """Strip suffixes and ``_index`` so paths match :attr:`Document.logical_names`."""
    stripped = path.strip().rstrip("/")
    normalised = posixpath.normpath(stripped) if stripped else "."
    if normalised == ".":
        return ""
    if normalised == ".." or normalised.startswith("../"):
        return None
    stem, suffix = posixpath.splitext(normalised)
    if suffix.lower() in MARKDOWN_SUFFIXES:
        normalised = stem
    if posixpath.basename(normalised) == SECTION_INDEX_STEM:
        normalised = posixpath.dirname(normalised)
    return normalised


__all__ = [
    "RELREF_PATTERN",
    "SHORTCODE_TAG_PATTERN",
    "CrossReferenceResolver",
    "ReferenceCollectorExtension",
    "ReferenceSite",
    "ReferenceTable",
    "collect_markdown_links",
    "find_references",
    "is_relative_markdown_link",
]
