"""Exception types raised by the book build pipeline.

Fatal conditions derive from :class:`BookBuildError` and abort a build.
Per-document problems are raised as :class:`FrontMatterError` inside the
loader and converted into report entries rather than propagated.
"""

from __future__ import annotations

from pathlib import Path


class BookBuildError(RuntimeError):
    """Base class for failures that abort a whole build."""


class ContentRootError(BookBuildError):
    """Raised when the content root is missing or unreadable."""

    def __init__(self, path: Path, reason: str = "does not exist") -> None:
        self.path = path
        super().__init__(f"Content root '{path}' {reason}.")


class OutputRootError(BookBuildError):
    """Raised when the output root cannot be created or replaced."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Output root '{path}' cannot be written: {reason}")


class BuildCancelledError(BookBuildError):
    """Raised between stages when a build has been cancelled."""


class FrontMatterError(ValueError):
    """Raised when a document's front matter block cannot be parsed."""


__all__ = [
    "BookBuildError",
    "BuildCancelledError",
    "ContentRootError",
    "FrontMatterError",
    "OutputRootError",
]
