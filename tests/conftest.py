"""Shared pytest fixtures for the book build test suite."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
import structlog

if typ.TYPE_CHECKING:
    import collections.abc as cabc

ContentWriter = typ.Callable[[dict[str, str]], Path]


@pytest.fixture(autouse=True)
def _reset_structlog() -> cabc.Iterator[None]:
    """Undo any logging configuration applied by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_content(tmp_path: Path) -> ContentWriter:
    """Return a helper that writes ``{relative_path: text}`` under ``content/``."""
    root = tmp_path / "content"

    def _write(files: dict[str, str]) -> Path:
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return _write
