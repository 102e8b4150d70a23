"""Utility helpers shared by the book configuration loader."""

from __future__ import annotations

import typing as typ

from .models import SiteConfigError


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_bool(payload: typ.Mapping[str, typ.Any], key: str, default: bool) -> bool:
    """Return ``payload[key]`` as a bool, rejecting non-boolean values."""
    value = payload.get(key, default)
    if not isinstance(value, bool):
        msg = f"'{key}' must be true or false, got {value!r}."
        raise SiteConfigError(msg)
    return value


def _require_positive_int(
    payload: typ.Mapping[str, typ.Any], key: str, default: int
) -> int:
    """Return ``payload[key]`` as a positive integer."""
    value = payload.get(key, default)
    match value:
        case bool():
            valid = False
        case int():
            valid = value > 0
        case _:
            valid = False
    if not valid:
        msg = f"'{key}' must be a positive integer, got {value!r}."
        raise SiteConfigError(msg)
    return value


def _normalize_base_url(value: object | None) -> str | None:
    """Return ``value`` with exactly one trailing slash, or None when unset."""
    text = _optional_str(value)
    if text is None:
        return None
    return text.rstrip("/") + "/"


__all__ = [
    "_normalize_base_url",
    "_optional_str",
    "_require_bool",
    "_require_positive_int",
]
