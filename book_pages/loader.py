"""Discover Markdown chapters under a content root and parse them.

:class:`ContentLoader` scans the content root, parses every file on a thread
pool, and returns a :class:`LoadResult`. A file with malformed front matter
or unreadable bytes is excluded and reported; it never aborts the load.

Example
-------
>>> from pathlib import Path
>>> from book_pages.config import SiteConfig
>>> from book_pages.loader import ContentLoader
>>> result = ContentLoader(Path("content"), SiteConfig()).load()  # doctest: +SKIP
>>> [doc.doc_id for doc in result.documents]  # doctest: +SKIP
['_index', 'docs/_index', 'docs/chapter-01']
"""

from __future__ import annotations

import dataclasses as dc
import posixpath
import typing as typ
from concurrent.futures import ThreadPoolExecutor

import structlog

from ._constants import MARKDOWN_SUFFIXES, SECTION_INDEX_STEM
from .errors import ContentRootError, FrontMatterError
from .front_matter import derive_title, split_front_matter
from .models import BuildIssue, Document

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .config import SiteConfig

logger = structlog.get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class LoadResult:
    """Documents that loaded cleanly plus the issues for those that did not."""

    documents: tuple[Document, ...]
    issues: tuple[BuildIssue, ...] = ()
    drafts: tuple[str, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class _Outcome:
    document: Document | None = None
    issue: BuildIssue | None = None


class ContentLoader:
    """Load every Markdown document beneath ``content_root``."""

    def __init__(self, content_root: Path, config: SiteConfig) -> None:
        self.content_root = content_root
        self.config = config

    def load(self) -> LoadResult:
        """Discover and parse documents, tolerating per-document failures.

        Returns
        -------
        LoadResult
            Documents in lexical source-path order, the per-document issues,
            and the ids of drafts that were skipped.

        Raises
        ------
        ContentRootError
            If the content root does not exist, is not a directory, or
            cannot be listed.
        """
        paths = self.discover()
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            outcomes = list(pool.map(self._load_one, paths))

        documents: list[Document] = []
        issues: list[BuildIssue] = []
        drafts: list[str] = []
        for outcome in outcomes:
            if outcome.issue is not None:
                issues.append(outcome.issue)
                continue
            document = outcome.document
            if document is None:
                continue
            if document.draft and not self.config.include_drafts:
                logger.info("DRAFT_SKIPPED", document=document.doc_id)
                drafts.append(document.doc_id)
                continue
            documents.append(document)

        documents, collisions = _drop_output_collisions(documents)
        issues.extend(collisions)
        logger.info("CONTENT_LOADED", documents=len(documents), issues=len(issues))
        return LoadResult(
            documents=tuple(documents), issues=tuple(issues), drafts=tuple(drafts)
        )

    def discover(self) -> list[Path]:
        """Return Markdown files under the content root in lexical order.

        Dot-prefixed files and directories are ignored.
        """
        root = self.content_root
        if not root.exists():
            raise ContentRootError(root)
        if not root.is_dir():
            raise ContentRootError(root, "is not a directory")
        try:
            candidates = list(root.rglob("*"))
        except OSError as exc:
            raise ContentRootError(root, f"cannot be read ({exc})") from exc

        found: list[Path] = []
        for path in candidates:
            relative = path.relative_to(root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.suffix.lower() in MARKDOWN_SUFFIXES and path.is_file():
                found.append(path)
        return sorted(found, key=lambda item: item.relative_to(root).as_posix())

    def _load_one(self, path: Path) -> _Outcome:
        """Read and parse a single file into a Document or an issue."""
        doc_id = self._doc_id(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("DOCUMENT_UNREADABLE", document=doc_id, error=str(exc))
            return _Outcome(
                issue=BuildIssue(
                    kind="unreadable",
                    document_id=doc_id,
                    message=f"cannot read source file: {exc}",
                )
            )
        try:
            parsed = split_front_matter(text)
        except FrontMatterError as exc:
            logger.warning("FRONT_MATTER_INVALID", document=doc_id, error=str(exc))
            return _Outcome(
                issue=BuildIssue(
                    kind="front-matter",
                    document_id=doc_id,
                    message=f"malformed front matter: {exc}",
                )
            )

        return _Outcome(
            document=Document(
                doc_id=doc_id,
                source_path=path,
                title=parsed.title or self._default_title(doc_id),
                weight=parsed.weight,
                collapse_section=parsed.collapse_section,
                hidden=parsed.hidden,
                draft=parsed.draft,
                body=parsed.body,
                front_matter=parsed.raw,
                body_line_offset=parsed.line_offset,
            )
        )

    def _doc_id(self, path: Path) -> str:
        relative = path.relative_to(self.content_root).as_posix()
        stem, _suffix = posixpath.splitext(relative)
        return stem

    def _default_title(self, doc_id: str) -> str:
        """Derive a title from the file name, or the directory for ``_index``."""
        directory, name = posixpath.split(doc_id)
        if name == SECTION_INDEX_STEM:
            if not directory:
                return self.config.site_name
            name = posixpath.basename(directory)
        return derive_title(name)


def _drop_output_collisions(
    documents: list[Document],
) -> tuple[list[Document], list[BuildIssue]]:
    """Keep the first document per output path; report the others."""
    seen: dict[str, Document] = {}
    kept: list[Document] = []
    issues: list[BuildIssue] = []
    ordered = sorted(documents, key=_source_key)
    for document in ordered:
        existing = seen.get(document.output_path)
        if existing is not None:
            logger.warning(
                "OUTPUT_PATH_COLLISION",
                document=document.doc_id,
                kept=existing.doc_id,
                output_path=document.output_path,
            )
            issues.append(
                BuildIssue(
                    kind="duplicate-output",
                    document_id=document.doc_id,
                    message=(
                        f"output path '{document.output_path}' is already "
                        f"produced by '{existing.doc_id}'"
                    ),
                    target=existing.doc_id,
                )
            )
            continue
        seen[document.output_path] = document
        kept.append(document)
    return kept, issues


def _source_key(document: Document) -> str:
    return document.source_path.as_posix()


__all__ = ["ContentLoader", "LoadResult"]
