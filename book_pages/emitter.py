"""Write rendered pages and the navigation manifest to the output root.

Everything is written into a staging directory beside the output root first.
Only once every file is on disk does the staging directory replace the output
root, so an interrupted or failed build never leaves a half-written site
behind.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import typing as typ
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import (
    BACKUP_PREFIX,
    PAGE_FILENAME,
    SITEMAP_FILENAME,
    STAGING_PREFIX,
)
from .errors import BuildCancelledError, OutputRootError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import BuildContext, RenderedPage, SectionNode
    from .tree import SectionTree

logger = structlog.get_logger(__name__)

_DIR_MODE = 0o755
_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class SiteEmitter:
    """Persist a build's pages, manifest, and sitemap."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.config = context.config
        self.output_root = context.output_root

    def emit(
        self, pages: cabc.Sequence[RenderedPage], tree: SectionTree
    ) -> list[Path]:
        """Write ``pages`` and the manifest, then promote them to the output root.

        Returns
        -------
        list[Path]
            Final paths of every written file, sorted.

        Raises
        ------
        OutputRootError
            If the staging directory or the output root cannot be created or
            replaced.
        BuildCancelledError
            If the build was cancelled before promotion; nothing is promoted.
        """
        staging = self._create_staging()
        try:
            relative: list[str] = []
            for page in sorted(pages, key=lambda item: item.output_path):
                self._write(staging, page.output_path, page.html)
                relative.append(page.output_path)
            manifest = json.dumps(
                self.manifest(tree), indent=2, sort_keys=True, ensure_ascii=False
            )
            self._write(staging, self.config.manifest_filename, manifest + "\n")
            relative.append(self.config.manifest_filename)
            if self.config.base_url:
                self._write(staging, SITEMAP_FILENAME, self._sitemap(pages))
                relative.append(SITEMAP_FILENAME)
            if self.context.cancelled:
                msg = "Build cancelled before the output was promoted."
                raise BuildCancelledError(msg)
            self._promote(staging)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        written = sorted(self.output_root / path for path in relative)
        logger.info(
            "SITE_EMITTED", output_root=str(self.output_root), files=len(written)
        )
        return written

    def manifest(self, tree: SectionTree) -> dict[str, typ.Any]:
        """Return the navigation manifest describing the full section tree."""
        skipped = [
            {"document": doc_id, "reason": reason}
            for doc_id, reason in sorted(self.context.report.skipped.items())
        ]
        return {
            "site_name": self.config.site_name,
            "root": _node_payload(tree.root),
            "skipped": skipped,
        }

    def _create_staging(self) -> Path:
        parent = self.output_root.parent
        if self.output_root.exists() and not self.output_root.is_dir():
            reason = "path exists and is not a directory"
            raise OutputRootError(self.output_root, reason)
        try:
            parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=parent))
            staging.chmod(_DIR_MODE)
        except OSError as exc:
            raise OutputRootError(self.output_root, str(exc)) from exc
        return staging

    @staticmethod
    def _write(staging: Path, relative: str, content: str) -> None:
        target = staging / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(content)

    def _promote(self, staging: Path) -> None:
        """Replace the output root with ``staging``, restoring it on failure."""
        output = self.output_root
        backup: Path | None = None
        try:
            if output.exists():
                holder = Path(tempfile.mkdtemp(prefix=BACKUP_PREFIX, dir=output.parent))
                backup = holder / "previous"
                output.rename(backup)
            staging.rename(output)
        except OSError as exc:
            if backup is not None and backup.exists() and not output.exists():
                backup.rename(output)
                shutil.rmtree(backup.parent, ignore_errors=True)
            raise OutputRootError(output, str(exc)) from exc
        if backup is not None:
            shutil.rmtree(backup.parent, ignore_errors=True)

    def _sitemap(self, pages: cabc.Sequence[RenderedPage]) -> str:
        base_url = self.config.base_url or "/"
        urls = []
        for page in sorted(pages, key=lambda item: item.output_path):
            location = page.output_path.removesuffix(PAGE_FILENAME)
            urls.append(f"{base_url}{location}")
        env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=select_autoescape(["xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        return env.get_template("sitemap.jinja").render(urls=urls)


def _node_payload(node: SectionNode) -> dict[str, typ.Any]:
    document = node.document
    return {
        "title": node.title,
        "key": node.key,
        "doc_id": document.doc_id if document else None,
        "output_path": node.output_path,
        "weight": node.weight,
        "section": node.is_section,
        "collapsed": node.collapsed,
        "hidden": node.hidden,
        "children": [_node_payload(child) for child in node.children],
    }


__all__ = ["SiteEmitter"]
