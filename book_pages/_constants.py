"""Common literal values used across book_pages.

These constants keep file names and front matter keys centralized so the
loader, emitter, and tests can import the same values without drifting.

Examples
--------
>>> from book_pages import _constants
>>> _constants.SECTION_INDEX_STEM
'_index'
>>> ".md" in _constants.MARKDOWN_SUFFIXES
True
"""

MARKDOWN_SUFFIXES = (".md", ".markdown")
SECTION_INDEX_STEM = "_index"
PAGE_FILENAME = "index.html"
DEFAULT_MANIFEST_FILENAME = "manifest.json"
SITEMAP_FILENAME = "sitemap.xml"
STAGING_PREFIX = ".book-staging-"
BACKUP_PREFIX = ".book-previous-"
MARKDOWN_EXTENSIONS = ("fenced_code", "tables", "sane_lists", "toc")

FRONT_MATTER_TITLE = "title"
FRONT_MATTER_WEIGHT = "weight"
FRONT_MATTER_COLLAPSE = "bookCollapseSection"
FRONT_MATTER_HIDDEN = "bookHidden"
FRONT_MATTER_DRAFT = "draft"
