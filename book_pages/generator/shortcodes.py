"""Expand Hugo Book style shortcodes into HTML.

Supported shortcodes:

* ``{{< relref "target" >}}`` (and ``ref``): the page-relative href of the
  resolved target, or a visible broken-link marker.
* ``{{< button href="..." >}}Label{{< /button >}}``, also with ``relref=``.
* ``{{< columns >}} left <---> right {{< /columns >}}``.
* ``{{< hint info >}}...{{< /hint >}}`` (``info``, ``warning``, ``danger``).
* ``{{< details "Title" open >}}...{{< /details >}}``.

Block shortcodes render their inner text as Markdown and are swapped in after
the surrounding Markdown has been converted. Shortcodes that are not listed
above are left untouched. Fenced code blocks are masked first so directives
inside code samples reach the output verbatim.
"""

from __future__ import annotations

import re
import shlex
import typing as typ
from html import escape

from book_pages.fences import mask_code, unmask_code
from book_pages.models import CrossReference
from book_pages.xref import RELREF_PATTERN

from .link_rewriter import BROKEN_LINK_CLASS, broken_href

if typ.TYPE_CHECKING:
    import collections.abc as cabc

BLOCK_SHORTCODES = ("columns", "hint", "details")
BLOCK_PLACEHOLDER = "BOOKSHORTCODEBLOCK{index}END"
BLOCK_PLACEHOLDER_PATTERN = re.compile(
    r"(?:<p>)?BOOKSHORTCODEBLOCK(\d+)END(?:</p>)?"
)
BUTTON_PATTERN = re.compile(
    r"\{\{[<%]\s*button\b(?P<params>[^}]*?)\s*[>%]\}\}(?P<label>.*?)"
    r"\{\{[<%]\s*/\s*button\s*[>%]\}\}",
    re.DOTALL,
)
COLUMN_SEPARATOR = re.compile(r"^\s*<--->\s*$", re.MULTILINE)
HINT_KINDS = ("info", "warning", "danger")
LINK_CONTEXT_PATTERN = re.compile(r"\]\(\s*<?\s*$")
BLOCK_OPEN_PATTERN = re.compile(
    r"\{\{[<%]\s*(?P<name>" + "|".join(BLOCK_SHORTCODES) + r")\b"
    r"(?P<params>[^}]*?)\s*[>%]\}\}"
)


def _tag_pattern(name: str) -> re.Pattern[str]:
    return re.compile(
        r"\{\{[<%]\s*(?P<close>/\s*)?" + name + r"\b[^}]*?[>%]\}\}"
    )


BLOCK_TAG_PATTERNS = {name: _tag_pattern(name) for name in BLOCK_SHORTCODES}

ReferenceLookup = typ.Callable[[str], CrossReference | None]


class ShortcodeExpander:
    """Expand shortcodes for one document.

    Parameters
    ----------
    lookup : Callable[[str], CrossReference | None]
        Returns the resolved reference for a raw target written in the
        document, or ``None`` when it is broken.
    href_for : Callable[[CrossReference], str]
        Turns a resolved reference into an href relative to the page.
    render_markdown : Callable[[str], str]
        Converts the Markdown inside block shortcodes to HTML.
    """

    def __init__(
        self,
        lookup: ReferenceLookup,
        href_for: cabc.Callable[[CrossReference], str],
        render_markdown: cabc.Callable[[str], str],
    ) -> None:
        self.lookup = lookup
        self.href_for = href_for
        self.render_markdown = render_markdown

    def expand(self, text: str) -> tuple[str, list[str]]:
        """Return Markdown with shortcodes expanded and the stashed block HTML.

        Block shortcodes are replaced by placeholders; pass the converted HTML
        and the returned list to :func:`restore_blocks`.
        """
        masked, code_blocks = mask_code(text)
        stash: list[str] = []
        masked = self._expand_blocks(masked, code_blocks, stash)
        masked = BUTTON_PATTERN.sub(self._button, masked)
        masked = RELREF_PATTERN.sub(self._relref, masked)
        return unmask_code(masked, code_blocks), stash

    def _expand_blocks(
        self, text: str, code_blocks: list[str], stash: list[str]
    ) -> str:
        """Replace outermost block shortcodes with placeholders.

        Nested blocks stay in the inner text and are expanded when that text
        is rendered, so every placeholder belongs to the stash it indexes.
        """
        parts: list[str] = []
        pos = 0
        while True:
            opening = BLOCK_OPEN_PATTERN.search(text, pos)
            if opening is None:
                break
            name = opening["name"]
            closing = _find_closing(text, name, opening.end())
            if closing is None:
                parts.append(text[pos : opening.end()])
                pos = opening.end()
                continue
            inner = unmask_code(text[opening.end() : closing.start()], code_blocks)
            params = _parse_params(opening["params"])
            stash.append(getattr(self, f"_render_{name}")(inner, params))
            placeholder = BLOCK_PLACEHOLDER.format(index=len(stash) - 1)
            parts.append(text[pos : opening.start()])
            parts.append(f"\n\n{placeholder}\n\n")
            pos = closing.end()
        parts.append(text[pos:])
        return "".join(parts)

    def _render_columns(self, inner: str, _params: list[str]) -> str:
        columns = [
            f'<div class="book-columns__column">{self.render_markdown(part)}</div>'
            for part in COLUMN_SEPARATOR.split(inner)
        ]
        return f'<div class="book-columns">{"".join(columns)}</div>'

    def _render_hint(self, inner: str, params: list[str]) -> str:
        kind = next((p for p in params if p in HINT_KINDS), "info")
        body = self.render_markdown(inner)
        return f'<div class="book-hint book-hint--{kind}">{body}</div>'

    def _render_details(self, inner: str, params: list[str]) -> str:
        positional = [p for p in params if "=" not in p and p != "open"]
        named = dict(p.split("=", 1) for p in params if "=" in p)
        title = named.get("title") or (positional[0] if positional else "Details")
        is_open = "open" in params or named.get("open") == "true"
        open_attr = " open" if is_open else ""
        body = self.render_markdown(inner)
        return (
            f'<details class="book-details"{open_attr}>'
            f"<summary>{escape(title)}</summary>{body}</details>"
        )

    def _button(self, match: re.Match[str]) -> str:
        params = dict(
            p.split("=", 1) for p in _parse_params(match["params"]) if "=" in p
        )
        label = escape(match["label"].strip())
        raw_target = params.get("relref") or params.get("ref")
        if raw_target is not None:
            reference = self.lookup(raw_target)
            if reference is None:
                return (
                    f'<a class="book-btn {BROKEN_LINK_CLASS}" href="#" '
                    f'data-broken-ref="{escape(raw_target, quote=True)}" '
                    f'title="Broken reference: {escape(raw_target, quote=True)}">'
                    f"{label}</a>"
                )
            href = self.href_for(reference)
        else:
            href = params.get("href", "#")
        return f'<a class="book-btn" href="{escape(href, quote=True)}">{label}</a>'

    def _relref(self, match: re.Match[str]) -> str:
        raw_target = match["target"]
        reference = self.lookup(raw_target)
        start = match.start()
        in_link = (
            LINK_CONTEXT_PATTERN.search(match.string, max(0, start - 16), start)
            is not None
        )
        if reference is not None:
            return self.href_for(reference)
        if in_link:
            return broken_href(raw_target)
        safe = escape(raw_target, quote=True)
        return (
            f'<span class="{BROKEN_LINK_CLASS}" data-broken-ref="{safe}">'
            f"broken link: {escape(raw_target)}</span>"
        )


def restore_blocks(html: str, stash: list[str]) -> str:
    """Swap block placeholders in converted HTML for the stashed markup."""
    if not stash:
        return html

    def _repl(match: re.Match[str]) -> str:
        return stash[int(match.group(1))]

    return BLOCK_PLACEHOLDER_PATTERN.sub(_repl, html)


def _find_closing(text: str, name: str, start: int) -> re.Match[str] | None:
    """Return the close tag balancing a ``name`` block opened before ``start``."""
    depth = 1
    for match in BLOCK_TAG_PATTERNS[name].finditer(text, start):
        depth += -1 if match["close"] is not None else 1
        if depth == 0:
            return match
    return None


def _parse_params(raw: str) -> list[str]:
    """Split shortcode parameters, honouring quotes."""
    try:
        return shlex.split(raw)
    except ValueError:
        return raw.split()


__all__ = ["ShortcodeExpander", "restore_blocks"]
