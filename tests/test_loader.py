"""Tests for content discovery and per-document failure isolation."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

import pytest

from book_pages.config import SiteConfig
from book_pages.errors import ContentRootError
from book_pages.loader import ContentLoader, LoadResult

if typ.TYPE_CHECKING:
    from conftest import ContentWriter


def _load(root: Path, **overrides: typ.Any) -> LoadResult:
    config = dc.replace(SiteConfig(workers=2), **overrides)
    return ContentLoader(root, config).load()


def test_documents_load_in_lexical_order(write_content: ContentWriter) -> None:
    root = write_content(
        {
            "docs/chapter-02.md": "---\ntitle: Two\n---\n",
            "docs/chapter-01.md": "# One\n",
            "_index.md": "Welcome\n",
            ".hidden/secret.md": "skip me\n",
            "docs/notes.txt": "not markdown\n",
        }
    )
    result = _load(root, site_name="Manual")
    assert [doc.doc_id for doc in result.documents] == [
        "_index",
        "docs/chapter-01",
        "docs/chapter-02",
    ]
    titles = {doc.doc_id: doc.title for doc in result.documents}
    assert titles == {
        "_index": "Manual",
        "docs/chapter-01": "Chapter 01",
        "docs/chapter-02": "Two",
    }
    assert result.issues == ()


def test_section_index_title_falls_back_to_directory(
    write_content: ContentWriter,
) -> None:
    root = write_content({"user-guide/_index.md": "Intro\n"})
    (document,) = _load(root).documents
    assert document.title == "User Guide"
    assert document.output_path == "user-guide/index.html"


def test_malformed_front_matter_is_isolated(write_content: ContentWriter) -> None:
    root = write_content(
        {
            "docs/good.md": "---\ntitle: Good\n---\n",
            "docs/bad.md": "---\ntitle: [oops\n---\n",
        }
    )
    result = _load(root)
    assert [doc.doc_id for doc in result.documents] == ["docs/good"]
    (issue,) = result.issues
    assert issue.kind == "front-matter"
    assert issue.document_id == "docs/bad"


def test_undecodable_file_is_reported(write_content: ContentWriter) -> None:
    root = write_content({"docs/good.md": "fine\n"})
    (root / "docs" / "binary.md").write_bytes(b"\xff\xfe\xfa not utf-8")
    result = _load(root)
    assert [doc.doc_id for doc in result.documents] == ["docs/good"]
    assert [issue.kind for issue in result.issues] == ["unreadable"]


def test_drafts_are_skipped_unless_enabled(write_content: ContentWriter) -> None:
    root = write_content(
        {
            "docs/published.md": "text\n",
            "docs/draft.md": "---\ndraft: true\n---\ntext\n",
        }
    )
    skipped = _load(root)
    assert [doc.doc_id for doc in skipped.documents] == ["docs/published"]
    assert skipped.drafts == ("docs/draft",)

    included = _load(root, include_drafts=True)
    assert [doc.doc_id for doc in included.documents] == [
        "docs/draft",
        "docs/published",
    ]


def test_output_path_collision_keeps_first_source(
    write_content: ContentWriter,
) -> None:
    root = write_content(
        {
            "docs/guide.md": "page\n",
            "docs/guide/_index.md": "section\n",
        }
    )
    result = _load(root)
    assert [doc.doc_id for doc in result.documents] == ["docs/guide"]
    (issue,) = result.issues
    assert issue.kind == "duplicate-output"
    assert issue.document_id == "docs/guide/_index"
    assert issue.target == "docs/guide"


def test_missing_content_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ContentRootError, match="does not exist"):
        ContentLoader(tmp_path / "missing", SiteConfig()).load()


def test_content_root_must_be_directory(tmp_path: Path) -> None:
    target = tmp_path / "file.md"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(ContentRootError, match="is not a directory"):
        ContentLoader(target, SiteConfig()).load()
