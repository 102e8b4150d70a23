"""Tests for loading ``book.yaml`` configuration files."""

from __future__ import annotations

from pathlib import Path

import pytest

from book_pages.config import (
    SiteConfig,
    SiteConfigError,
    discover_config_path,
    load_site_config,
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "book.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_no_file() -> None:
    config = load_site_config(None)
    assert config == SiteConfig(workers=config.workers)
    assert config.site_name == "Documentation"
    assert config.title_suffix == "Documentation"
    assert config.manifest_filename == "manifest.json"
    assert config.base_url is None


def test_values_are_parsed(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "site_name: Field Manual\n"
        "base_url: https://docs.example.org\n"
        "pygments_style: friendly\n"
        "highlight: false\n"
        "workers: 3\n"
        "include_drafts: true\n"
        "page_title_suffix: FM\n",
    )
    config = load_site_config(path)
    assert config.site_name == "Field Manual"
    assert config.base_url == "https://docs.example.org/"
    assert config.pygments_style == "friendly"
    assert config.highlight is False
    assert config.workers == 3
    assert config.include_drafts is True
    assert config.title_suffix == "FM"


@pytest.mark.parametrize(
    "text",
    [
        "site_name: [unclosed\n",
        "- just\n- a list\n",
        "workers: 0\n",
        "workers: many\n",
        "highlight: sometimes\n",
        "manifest_filename: nested/manifest.json\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, text: str) -> None:
    with pytest.raises(SiteConfigError):
        load_site_config(_write(tmp_path, text))


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_site_config(tmp_path / "absent.yaml")


def test_discover_config_beside_content_root(tmp_path: Path) -> None:
    content = tmp_path / "content"
    content.mkdir()
    assert discover_config_path(content) is None
    path = _write(tmp_path, "site_name: Found\n")
    assert discover_config_path(content) == path.resolve()
