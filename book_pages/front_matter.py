r"""Split Markdown chapters into front matter and body text.

YAML front matter is delimited by ``---`` lines and TOML front matter by
``+++`` lines, as in Hugo content trees. Only a handful of keys carry meaning
for the book build; all others are kept and otherwise ignored.

Example
-------
>>> from book_pages.front_matter import split_front_matter
>>> parsed = split_front_matter("---\ntitle: Intro\nweight: 5\n---\nBody\n")
>>> parsed.title, parsed.weight, parsed.body
('Intro', 5, 'Body\n')
"""

from __future__ import annotations

import dataclasses as dc
import re
import tomllib
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ._constants import (
    FRONT_MATTER_COLLAPSE,
    FRONT_MATTER_DRAFT,
    FRONT_MATTER_HIDDEN,
    FRONT_MATTER_TITLE,
    FRONT_MATTER_WEIGHT,
)
from .errors import FrontMatterError

_DELIMITERS = {"---": "yaml", "+++": "toml"}
_TITLE_SEPARATORS = re.compile(r"[-_\s]+")


@dc.dataclass(frozen=True, slots=True)
class FrontMatter:
    """Recognised front matter values, the raw mapping, and the body.

    Attributes
    ----------
    title : str | None
        Explicit title, or ``None`` when the caller should derive one.
    weight : int
        Ordering weight, ``0`` when absent.
    collapse_section : bool
        ``bookCollapseSection`` flag.
    hidden : bool
        ``bookHidden`` flag.
    draft : bool
        ``draft`` flag.
    raw : Mapping[str, object]
        Every key from the block.
    body : str
        Text after the closing delimiter.
    line_offset : int
        Number of lines the block occupied, delimiters included.
    """

    title: str | None = None
    weight: int = 0
    collapse_section: bool = False
    hidden: bool = False
    draft: bool = False
    raw: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    body: str = ""
    line_offset: int = 0


def split_front_matter(text: str) -> FrontMatter:
    """Return the parsed front matter and body of a Markdown document.

    Parameters
    ----------
    text : str
        Full document text.

    Returns
    -------
    FrontMatter
        Defaults with the whole text as body when no block is present.

    Raises
    ------
    FrontMatterError
        If the block is unterminated, cannot be parsed, is not a mapping, or
        a recognised key has the wrong type.
    """
    text = text.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines:
        return FrontMatter()
    opener = lines[0].strip()
    fmt = _DELIMITERS.get(opener)
    if fmt is None:
        return FrontMatter(body=text)

    closing = None
    for idx in range(1, len(lines)):
        if lines[idx].strip() == opener:
            closing = idx
            break
    if closing is None:
        msg = f"Front matter opened with '{opener}' is never closed."
        raise FrontMatterError(msg)

    block = "".join(lines[1:closing])
    raw = _parse_yaml(block) if fmt == "yaml" else _parse_toml(block)
    body = "".join(lines[closing + 1 :])
    return FrontMatter(
        title=_title_value(raw),
        weight=_weight_value(raw),
        collapse_section=_flag_value(raw, FRONT_MATTER_COLLAPSE),
        hidden=_flag_value(raw, FRONT_MATTER_HIDDEN),
        draft=_flag_value(raw, FRONT_MATTER_DRAFT),
        raw=raw,
        body=body,
        line_offset=closing + 1,
    )


def derive_title(name: str) -> str:
    """Turn a file or directory name such as ``chapter-01`` into ``Chapter 01``."""
    words = [word for word in _TITLE_SEPARATORS.split(name) if word]
    if not words:
        return name
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _parse_yaml(block: str) -> dict[str, typ.Any]:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        loaded = loader.load(block)
    except YAMLError as exc:
        msg = f"Invalid YAML front matter: {exc}"
        raise FrontMatterError(msg) from exc
    return _as_mapping(loaded)


def _parse_toml(block: str) -> dict[str, typ.Any]:
    try:
        loaded = tomllib.loads(block)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML front matter: {exc}"
        raise FrontMatterError(msg) from exc
    return _as_mapping(loaded)


def _as_mapping(loaded: object) -> dict[str, typ.Any]:
    match loaded:
        case None:
            return {}
        case dict():
            return {str(key): value for key, value in loaded.items()}
        case _:
            msg = "Front matter must be a mapping of keys to values."
            raise FrontMatterError(msg)


def _title_value(raw: typ.Mapping[str, typ.Any]) -> str | None:
    value = raw.get(FRONT_MATTER_TITLE)
    match value:
        case None:
            return None
        case str():
            return value.strip() or None
        case bool() | dict() | list():
            msg = f"'{FRONT_MATTER_TITLE}' must be a string, got {value!r}."
            raise FrontMatterError(msg)
        case _:
            return str(value)


def _weight_value(raw: typ.Mapping[str, typ.Any]) -> int:
    value = raw.get(FRONT_MATTER_WEIGHT, 0)
    match value:
        case bool():
            pass
        case int():
            return value
        case str() if re.fullmatch(r"[+-]?\d+", value.strip()):
            return int(value)
    msg = f"'{FRONT_MATTER_WEIGHT}' must be an integer, got {value!r}."
    raise FrontMatterError(msg)


def _flag_value(raw: typ.Mapping[str, typ.Any], key: str) -> bool:
    value = raw.get(key, False)
    if not isinstance(value, bool):
        msg = f"'{key}' must be true or false, got {value!r}."
        raise FrontMatterError(msg)
    return value


__all__ = ["FrontMatter", "derive_title", "split_front_matter"]
