"""End-to-end tests for ``build_site`` and the site emitter.

These tests drive the whole pipeline over small content trees written into
``tmp_path`` and inspect the output root: page placement, the navigation
manifest, idempotent rebuilds, and the guarantee that a failed or cancelled
build never leaves a partially written output root behind.
"""

from __future__ import annotations

import json
import threading
import typing as typ
from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from book_pages.config import SiteConfig
from book_pages.emitter import SiteEmitter
from book_pages.errors import BuildCancelledError, ContentRootError, OutputRootError
from book_pages.pipeline import build_site, check_site

if typ.TYPE_CHECKING:
    from conftest import ContentWriter

SAMPLE_BOOK = {
    "_index.md": "---\ntitle: Handbook\n---\nWelcome.\n",
    "docs/_index.md": "---\ntitle: Docs\nweight: 1\n---\nOverview.\n",
    "docs/chapter-01.md": (
        "---\ntitle: One\nweight: 10\n---\n# Intro\n\nStart here.\n"
    ),
    "docs/chapter-02.md": (
        "---\ntitle: Two\nweight: 5\n---\n"
        'Read [chapter one]({{< relref "chapter-01#intro" >}}).\n'
    ),
    "reference/api.md": "API notes.\n",
}


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def _config(**overrides: typ.Any) -> SiteConfig:
    return SiteConfig(**{"workers": 2, **overrides})


def test_build_writes_pretty_url_pages(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    report = build_site(content, output, _config())
    assert report.ok, [issue.describe() for issue in report.issues]
    assert sorted(_snapshot(output)) == [
        "docs/chapter-01/index.html",
        "docs/chapter-02/index.html",
        "docs/index.html",
        "index.html",
        "manifest.json",
        "reference/api/index.html",
    ]
    assert report.written == sorted(output / rel for rel in _snapshot(output))
    assert report.output_root == output


def test_manifest_lists_children_in_weight_order(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    build_site(content, output, _config(site_name="Field Guide"))
    manifest = json.loads((output / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["site_name"] == "Field Guide"
    root = manifest["root"]
    assert root["title"] == "Handbook"
    assert [child["key"] for child in root["children"]] == ["reference", "docs"]
    docs = root["children"][1]
    assert docs["doc_id"] == "docs/_index"
    assert [child["doc_id"] for child in docs["children"]] == [
        "docs/chapter-02",
        "docs/chapter-01",
    ]
    reference = root["children"][0]
    assert reference["doc_id"] is None, "synthetic sections have no page"
    assert reference["title"] == "Reference"


def test_rebuild_is_byte_identical(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    first = tmp_path / "first"
    second = tmp_path / "second"
    build_site(content, first, _config(workers=1))
    build_site(content, second, _config(workers=4))
    assert _snapshot(first) == _snapshot(second)

    before = _snapshot(first)
    build_site(content, first, _config(workers=3))
    assert _snapshot(first) == before


def test_rebuild_replaces_stale_output(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    output.mkdir()
    (output / "stale.html").write_text("old", encoding="utf-8")
    build_site(content, output, _config())
    assert not (output / "stale.html").exists()
    leftovers = [p.name for p in tmp_path.iterdir() if p.name.startswith(".book-")]
    assert leftovers == [], "staging and backup directories are cleaned up"


def test_broken_reference_is_reported_not_fatal(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(
        {"docs/chapter-03.md": 'See [later]({{< relref "docs/chapter-99" >}}).\n'}
    )
    report = build_site(content, tmp_path / "public", _config())
    (issue,) = report.issues_of("broken-reference")
    assert issue.document_id == "docs/chapter-03"
    assert issue.target == "docs/chapter-99"
    assert issue.line == 1
    assert not report.ok


def test_invalid_documents_are_listed_as_skipped(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(
        {"docs/good.md": "fine\n", "docs/bad.md": "---\nweight: [\n---\n"}
    )
    output = tmp_path / "public"
    report = build_site(content, output, _config())
    assert set(report.skipped) == {"docs/bad"}
    assert not (output / "docs" / "bad").exists()
    manifest = json.loads((output / "manifest.json").read_text(encoding="utf-8"))
    assert [entry["document"] for entry in manifest["skipped"]] == ["docs/bad"]


def test_sitemap_written_when_base_url_set(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    build_site(content, output, _config(base_url="https://docs.example.org/"))
    soup = BeautifulSoup(
        (output / "sitemap.xml").read_text(encoding="utf-8"), "html.parser"
    )
    locations = [loc.get_text() for loc in soup.find_all("loc")]
    assert "https://docs.example.org/" in locations
    assert "https://docs.example.org/docs/chapter-01/" in locations


def test_missing_content_root_leaves_output_untouched(tmp_path: Path) -> None:
    output = tmp_path / "public"
    output.mkdir()
    (output / "keep.html").write_text("keep", encoding="utf-8")
    with pytest.raises(ContentRootError):
        build_site(tmp_path / "missing", output, _config())
    assert (output / "keep.html").read_text(encoding="utf-8") == "keep"


def test_output_root_that_is_a_file_is_fatal(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    output.write_text("not a directory", encoding="utf-8")
    with pytest.raises(OutputRootError):
        build_site(content, output, _config())
    assert output.read_text(encoding="utf-8") == "not a directory"


def test_cancelled_build_writes_nothing(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(BuildCancelledError):
        build_site(content, output, _config(), cancel_event=cancel)
    assert not output.exists()


def test_failed_promotion_discards_staging(
    write_content: ContentWriter, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    content = write_content(SAMPLE_BOOK)
    output = tmp_path / "public"
    output.mkdir()
    (output / "keep.html").write_text("keep", encoding="utf-8")

    def _fail(self: SiteEmitter, staging: Path) -> None:
        raise OutputRootError(self.output_root, "disk full")

    monkeypatch.setattr(SiteEmitter, "_promote", _fail)
    with pytest.raises(OutputRootError, match="disk full"):
        build_site(content, output, _config())
    assert sorted(p.name for p in output.iterdir()) == ["keep.html"]
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".book-")] == []


def test_check_site_reports_without_writing(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content({"docs/a.md": "[b](b.md)\n"})
    report = check_site(content, _config())
    assert [issue.kind for issue in report.issues] == ["broken-reference"]
    assert report.written == []
    assert sorted(p.name for p in tmp_path.iterdir()) == ["content"]


def test_missing_reference_style_link_is_reported_once(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content({"docs/a.md": "See [x][m].\n\n[m]: missing.md\n"})
    output = tmp_path / "public"
    report = build_site(content, output, _config())
    (issue,) = report.issues_of("broken-reference")
    assert issue.target == "missing.md"
    assert issue.line == 3
    html = (output / "docs" / "a" / "index.html").read_text(encoding="utf-8")
    marker = BeautifulSoup(html, "html.parser").select_one("article a.broken-link")
    assert marker is not None
    assert marker["data-broken-ref"] == "missing.md"
