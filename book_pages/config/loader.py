"""Load book configuration YAML into a typed dataclass."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .helpers import (
    _normalize_base_url,
    _optional_str,
    _require_bool,
    _require_positive_int,
)
from .models import SiteConfig, SiteConfigError

DEFAULT_CONFIG_NAME = "book.yaml"


def load_site_config(path: Path | None) -> SiteConfig:
    """Load the YAML configuration describing site-wide build options.

    Parameters
    ----------
    path : Path or None
        Filesystem path to the YAML configuration file. ``None`` returns the
        defaults.

    Returns
    -------
    SiteConfig
        Parsed configuration with defaults applied for absent keys.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    SiteConfigError
        If the file cannot be parsed, is not a mapping, or holds values of
        the wrong type.

    Examples
    --------
    >>> from book_pages.config import load_site_config
    >>> load_site_config(None).site_name
    'Documentation'
    """
    if path is None:
        return SiteConfig()
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle) or {}
    except YAMLError as exc:
        msg = f"Configuration file '{path}' is not valid YAML: {exc}"
        raise SiteConfigError(msg) from exc
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise SiteConfigError(msg)
    return _build_site_config(dict(loaded))


def discover_config_path(content_root: Path) -> Path | None:
    """Return ``book.yaml`` beside the content root when it exists."""
    candidate = content_root.resolve().parent / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


def _build_site_config(raw: typ.Mapping[str, typ.Any]) -> SiteConfig:
    """Build a SiteConfig from the raw mapping using dataclass defaults."""
    defaults = SiteConfig()
    site_name = _optional_str(raw.get("site_name")) or defaults.site_name
    pygments_style = _optional_str(raw.get("pygments_style")) or defaults.pygments_style
    manifest_filename = (
        _optional_str(raw.get("manifest_filename")) or defaults.manifest_filename
    )
    if "/" in manifest_filename or manifest_filename.startswith("."):
        msg = (
            "'manifest_filename' must be a plain file name, "
            f"got {manifest_filename!r}."
        )
        raise SiteConfigError(msg)

    return SiteConfig(
        site_name=site_name,
        base_url=_normalize_base_url(raw.get("base_url")),
        pygments_style=pygments_style,
        highlight=_require_bool(raw, "highlight", defaults.highlight),
        workers=_require_positive_int(raw, "workers", defaults.workers),
        include_drafts=_require_bool(raw, "include_drafts", defaults.include_drafts),
        manifest_filename=manifest_filename,
        page_title_suffix=_optional_str(raw.get("page_title_suffix")),
    )


__all__ = ["DEFAULT_CONFIG_NAME", "discover_config_path", "load_site_config"]
