"""Typed dataclasses describing book site configuration."""

from __future__ import annotations

import dataclasses as dc
import os

from book_pages._constants import DEFAULT_MANIFEST_FILENAME


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


def _default_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


@dc.dataclass(slots=True)
class SiteConfig:
    """Build options shared by every stage of one build.

    Attributes
    ----------
    site_name : str
        Title of the synthetic root section and the page title suffix source.
    base_url : str | None
        Absolute site URL; enables ``sitemap.xml`` when set.
    pygments_style : str
        Pygments style used for highlighted code blocks.
    highlight : bool
        When ``False`` code blocks are emitted as plain ``<pre><code>``.
    workers : int
        Thread pool size for loading and rendering.
    include_drafts : bool
        Load documents whose front matter sets ``draft: true``.
    manifest_filename : str
        Name of the navigation manifest written at the output root.
    page_title_suffix : str | None
        Text appended to every HTML ``<title>``; defaults to ``site_name``.
    """

    site_name: str = "Documentation"
    base_url: str | None = None
    pygments_style: str = "monokai"
    highlight: bool = True
    workers: int = dc.field(default_factory=_default_workers)
    include_drafts: bool = False
    manifest_filename: str = DEFAULT_MANIFEST_FILENAME
    page_title_suffix: str | None = None

    @property
    def title_suffix(self) -> str:
        """Return the configured title suffix, falling back to the site name."""
        return self.page_title_suffix or self.site_name


__all__ = ["SiteConfig", "SiteConfigError"]
