"""Locate fenced code blocks so directive processing can skip them.

Code samples are opaque: relref shortcodes, other shortcodes, and Markdown
links inside a fenced block must reach the output verbatim. Both the
cross-reference resolver and the renderer split bodies with
:func:`split_fenced` so they agree on what counts as code.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

FENCE_OPEN_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>[^\n]*)$"
)
FENCED_INDENT_PATTERN = re.compile(r"^[ ]{1,3}([`~]{3,})", re.MULTILINE)
FENCE_LABEL_PATTERN = re.compile(
    r"^([`~]{3,})([A-Za-z0-9_+#.-]+)?(,[^\r\n]+)$", re.MULTILINE
)
MASK_TEMPLATE = "\x00BOOKCODE{index}\x00"
MASK_PATTERN = re.compile(r"\x00BOOKCODE(\d+)\x00")


@dc.dataclass(frozen=True, slots=True)
class Segment:
    """A run of consecutive lines that is either prose or one fenced block.

    ``start_line`` is 1-based relative to the text that was split. For code
    segments ``language`` holds the first word of the info string.
    """

    text: str
    start_line: int
    is_code: bool = False
    language: str | None = None


def split_fenced(text: str) -> list[Segment]:
    """Split ``text`` into alternating prose and fenced code segments.

    An unterminated fence extends to the end of the text, as CommonMark
    specifies.
    """
    segments: list[Segment] = []
    buffer: list[str] = []
    buffer_start = 1
    fence: str | None = None
    language: str | None = None

    def _flush(next_start: int, *, is_code: bool) -> None:
        nonlocal buffer, buffer_start
        if buffer:
            segments.append(
                Segment(
                    text="".join(buffer),
                    start_line=buffer_start,
                    is_code=is_code,
                    language=language if is_code else None,
                )
            )
        buffer = []
        buffer_start = next_start

    for lineno, line in enumerate(text.splitlines(keepends=True), start=1):
        stripped = line.rstrip("\r\n")
        if fence is None:
            match = FENCE_OPEN_PATTERN.match(stripped)
            if match and not (match["fence"][0] == "`" and "`" in match["info"]):
                _flush(lineno, is_code=False)
                fence = match["fence"]
                language = _info_language(match["info"])
            buffer.append(line)
            continue
        buffer.append(line)
        if _closes(stripped, fence):
            fence = None
            _flush(lineno + 1, is_code=True)
            language = None
    _flush(0, is_code=fence is not None)
    return segments


def iter_prose_lines(text: str) -> cabc.Iterator[tuple[int, str]]:
    """Yield ``(line_number, line)`` pairs for lines outside fenced blocks."""
    for segment in split_fenced(text):
        if segment.is_code:
            continue
        for offset, line in enumerate(segment.text.splitlines()):
            yield segment.start_line + offset, line


def mask_code(text: str) -> tuple[str, list[str]]:
    """Replace fenced blocks with placeholders and return them in order.

    Placeholders sit on their own line so block-level parsing of the
    surrounding prose is unaffected.
    """
    blocks: list[str] = []
    parts: list[str] = []
    for segment in split_fenced(text):
        if not segment.is_code:
            parts.append(segment.text)
            continue
        parts.append(MASK_TEMPLATE.format(index=len(blocks)) + "\n")
        blocks.append(segment.text)
    return "".join(parts), blocks


def unmask_code(text: str, blocks: list[str]) -> str:
    """Restore the fenced blocks hidden by :func:`mask_code`."""

    def _repl(match: re.Match[str]) -> str:
        block = blocks[int(match.group(1))]
        return block.rstrip("\n")

    return MASK_PATTERN.sub(_repl, text)


def normalize_fences(text: str) -> str:
    """Outdent fence markers and drop ``lang,attrs`` info suffixes.

    Python-Markdown's ``fenced_code`` only recognises fences at the left
    margin with a bare language label.
    """
    without_indent = FENCED_INDENT_PATTERN.sub(r"\1", text)

    def _strip_labels(match: re.Match[str]) -> str:
        fence, language, _extras = match.groups()
        return f"{fence}{language or ''}"

    return FENCE_LABEL_PATTERN.sub(_strip_labels, without_indent)


def _closes(line: str, fence: str) -> bool:
    candidate = line.strip()
    return len(candidate) >= len(fence) and set(candidate) == {fence[0]}


def _info_language(info: str) -> str | None:
    words = info.strip().lstrip("{").split()
    if not words:
        return None
    language = re.split(r"[,{}]", words[0], maxsplit=1)[0].lstrip(".")
    return language or None


__all__ = [
    "Segment",
    "iter_prose_lines",
    "mask_code",
    "normalize_fences",
    "split_fenced",
    "unmask_code",
]
