"""Load and validate book configuration YAML.

This subpackage parses an optional ``book.yaml`` file, applies defaults, and
produces a typed :class:`SiteConfig` that the build pipeline consumes. The
primary entry point is :func:`load_site_config`.

Examples
--------
>>> from pathlib import Path
>>> from book_pages.config import load_site_config
>>> config = load_site_config(Path("book.yaml"))  # doctest: +SKIP
>>> config.pygments_style  # doctest: +SKIP
'monokai'
"""

from .loader import DEFAULT_CONFIG_NAME, discover_config_path, load_site_config
from .models import SiteConfig, SiteConfigError

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "SiteConfig",
    "SiteConfigError",
    "discover_config_path",
    "load_site_config",
]
