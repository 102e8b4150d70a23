"""Cyclopts CLI entrypoint for building book sites from Markdown content.

The ``book`` console script defined here renders a directory of Markdown
chapters into a static HTML site with navigation and a JSON manifest.
``book build`` writes the site; ``book check`` only loads the content and
reports broken cross-references and front matter problems, which makes it
suitable as a CI gate.

Examples
--------
Build the book in ``content`` into ``public``:

>>> from book_pages.cli import main
>>> main(["build", "content", "public"])  # doctest: +SKIP
0

Check the content without writing anything:

>>> from book_pages.cli import app
>>> app(["check", "content"])  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import logging
import sys
import typing as typ
from pathlib import Path

import structlog
from cyclopts import App, Parameter

from .config import SiteConfig, SiteConfigError, discover_config_path, load_site_config
from .errors import BookBuildError
from .pipeline import build_site, check_site

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import BuildReport

app = App(name="book", help="Build static documentation books from Markdown.")


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(*, verbose: bool) -> None:
    """Route structlog output to stderr when verbose.

    Per-document problems are already printed as ``warning:`` lines, so
    without ``--verbose`` only errors are logged.
    """
    level = logging.INFO if verbose else logging.ERROR
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _resolve_config(
    content_root: Path,
    config: Path | None,
    *,
    workers: int | None = None,
    drafts: bool = False,
) -> SiteConfig:
    """Load the configuration file and apply command-line overrides."""
    path = config if config is not None else discover_config_path(content_root)
    site_config = load_site_config(path)
    overrides: dict[str, typ.Any] = {}
    if workers is not None:
        if workers < 1:
            msg = f"'--workers' must be a positive integer, got {workers}."
            raise SiteConfigError(msg)
        overrides["workers"] = workers
    if drafts:
        overrides["include_drafts"] = True
    return dc.replace(site_config, **overrides) if overrides else site_config


def _print_issues(report: BuildReport) -> None:
    for issue in report.issues:
        print(f"warning: {issue.describe()}", file=sys.stderr)


@app.command(help="Render Markdown content into a static HTML book.")
def build(
    content_root: typ.Annotated[
        Path, Parameter(help="Directory containing the Markdown content")
    ],
    output_root: typ.Annotated[
        Path, Parameter(help="Directory that receives the rendered site")
    ],
    *,
    config: typ.Annotated[
        Path | None,
        Parameter(help="Path to book.yaml; defaults to one beside the content"),
    ] = None,
    workers: typ.Annotated[
        int | None, Parameter(help="Worker threads for rendering")
    ] = None,
    drafts: typ.Annotated[
        bool, Parameter(help="Include documents marked as drafts")
    ] = False,
    verbose: typ.Annotated[
        bool, Parameter(help="Log every build stage to stderr")
    ] = False,
) -> int:
    """Build the book at ``content_root`` into ``output_root``.

    Parameters
    ----------
    content_root : Path
        Directory holding the Markdown sources.
    output_root : Path
        Directory replaced by the rendered site once the build succeeds.
    config : Path or None, optional
        Configuration file; ``book.yaml`` beside the content root is used when
        omitted and present.
    workers : int or None, optional
        Override the configured worker count.
    drafts : bool, optional
        Render documents whose front matter sets ``draft: true``.
    verbose : bool, optional
        Emit INFO level build logs.

    Returns
    -------
    int
        ``0`` when the site was written, even with warnings; ``1`` when the
        build failed and the output root was left untouched.
    """
    _configure_logging(verbose=verbose)
    try:
        site_config = _resolve_config(
            content_root, config, workers=workers, drafts=drafts
        )
        report = build_site(content_root, output_root, site_config)
    except (BookBuildError, SiteConfigError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _print_issues(report)
    print(f"wrote {_format_path(output_root)}")
    if report.issues:
        print(f"{len(report.issues)} warning(s)", file=sys.stderr)
    return 0


@app.command(help="Report broken references and invalid front matter.")
def check(
    content_root: typ.Annotated[
        Path, Parameter(help="Directory containing the Markdown content")
    ],
    *,
    config: typ.Annotated[
        Path | None,
        Parameter(help="Path to book.yaml; defaults to one beside the content"),
    ] = None,
    drafts: typ.Annotated[
        bool, Parameter(help="Include documents marked as drafts")
    ] = False,
    verbose: typ.Annotated[
        bool, Parameter(help="Log every build stage to stderr")
    ] = False,
) -> int:
    """Load and resolve the book without writing output.

    Returns ``1`` when any issue was found so the command can gate CI.
    """
    _configure_logging(verbose=verbose)
    try:
        site_config = _resolve_config(content_root, config, drafts=drafts)
        report = check_site(content_root, site_config)
    except (BookBuildError, SiteConfigError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _print_issues(report)
    if report.issues:
        print(f"{len(report.issues)} warning(s)", file=sys.stderr)
        return 1
    print(f"ok {_format_path(content_root)}")
    return 0


def main(argv: cabc.Sequence[str] | None = None) -> int:
    """Invoke the Cyclopts application that powers the ``book`` console command.

    Parameters
    ----------
    argv : Sequence[str] or None, optional
        Arguments to parse; ``sys.argv[1:]`` when omitted.

    Returns
    -------
    int
        Exit status returned by the selected subcommand.

    Examples
    --------
    >>> main(["build", "content", "public"])  # doctest: +SKIP
    0
    """
    result = app(list(argv) if argv is not None else None)
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    sys.exit(main())
