"""Tests for the ``book`` command-line interface."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from book_pages.cli import main

if typ.TYPE_CHECKING:
    from conftest import ContentWriter


def _run(argv: list[str]) -> int:
    """Invoke the CLI and return its exit status, however Cyclopts reports it."""
    try:
        return main(argv)
    except SystemExit as exc:
        return int(exc.code or 0)


def test_build_succeeds_with_warnings(
    write_content: ContentWriter,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    content = write_content(
        {
            "docs/chapter-01.md": "One\n",
            "docs/chapter-03.md": '{{< relref "chapter-99" >}}\n',
        }
    )
    output = tmp_path / "public"
    status = _run(["build", str(content), str(output), "--workers", "2"])
    captured = capsys.readouterr()
    assert status == 0
    assert "wrote" in captured.out
    assert captured.err.count("chapter-99") == 1, "each issue is printed once"
    assert "1 warning(s)" in captured.err
    assert (output / "docs" / "chapter-01" / "index.html").is_file()


def test_build_reads_config_file(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content({"_index.md": "Home\n"})
    config = tmp_path / "custom.yaml"
    config.write_text("site_name: Custom Book\n", encoding="utf-8")
    output = tmp_path / "public"
    assert _run(["build", str(content), str(output), "--config", str(config)]) == 0
    html = (output / "index.html").read_text(encoding="utf-8")
    assert "<title>Custom Book</title>" in html


def test_build_fails_for_missing_content_root(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = tmp_path / "public"
    status = _run(["build", str(tmp_path / "missing"), str(output)])
    captured = capsys.readouterr()
    assert status == 1
    assert "missing" in captured.err
    assert not output.exists()


def test_build_fails_for_invalid_config(
    write_content: ContentWriter,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    content = write_content({"a.md": "A\n"})
    (tmp_path / "book.yaml").write_text("workers: -1\n", encoding="utf-8")
    status = _run(["build", str(content), str(tmp_path / "public")])
    assert status == 1
    assert "workers" in capsys.readouterr().err


def test_drafts_flag_includes_drafts(
    write_content: ContentWriter, tmp_path: Path
) -> None:
    content = write_content({"wip.md": "---\ndraft: true\n---\nSoon\n"})
    output = tmp_path / "public"
    assert _run(["build", str(content), str(output)]) == 0
    assert not (output / "wip").exists()
    assert _run(["build", str(content), str(output), "--drafts"]) == 0
    assert (output / "wip" / "index.html").is_file()


def test_check_gates_on_issues(
    write_content: ContentWriter, capsys: pytest.CaptureFixture[str]
) -> None:
    content = write_content({"a.md": "[b](b.md)\n"})
    assert _run(["check", str(content)]) == 1
    assert "b.md" in capsys.readouterr().err

    (content / "b.md").write_text("B\n", encoding="utf-8")
    assert _run(["check", str(content)]) == 0
    assert "ok" in capsys.readouterr().out


def test_verbose_build_logs_reference_events(
    write_content: ContentWriter,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    content = write_content({"a.md": '{{< relref "gone" >}}\n'})
    output = tmp_path / "public"
    assert _run(["build", str(content), str(output), "--verbose"]) == 0
    err = capsys.readouterr().err
    assert "BROKEN_REFERENCE" in err
    assert "warning: " in err
