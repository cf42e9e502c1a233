"""Sanitization of untrusted form input.

``clean`` walks nested mappings and sequences and runs every scalar leaf
through ``sanitize_text_field``. Nesting deeper than the configured cap
(cyclic input included) is dropped instead of followed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import bleach
from email_validator import EmailNotValidError, validate_email

from syndication.config import settings

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_PERCENT_OCTET = re.compile(r"%[a-fA-F0-9]{2}")
_WHITESPACE = re.compile(r"[\r\n\t ]+")
_KEY_UNSAFE = re.compile(r"[^a-z0-9_\-]")
_URL_UNSAFE = re.compile(r"[^a-zA-Z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]\x80-\uffff]")

_TRUTHY = {"on", "1", "true", "yes"}


class _Discarded:
    """Marker for a subtree dropped for exceeding the depth cap."""


_DISCARDED = _Discarded()


def sanitize_text_field(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = _CONTROL_CHARS.sub("", str(value))
    if "<" in text:
        text = bleach.clean(text, tags=[], attributes={}, strip=True, strip_comments=True)
    while True:
        stripped = _PERCENT_OCTET.sub("", text)
        if stripped == text:
            break
        text = stripped
    return _WHITESPACE.sub(" ", text).strip()


def sanitize_key(value: Any) -> str:
    """Lowercase and keep only ``[a-z0-9_-]``."""
    if value is None:
        return ""
    return _KEY_UNSAFE.sub("", str(value).lower())


def sanitize_email(value: Any) -> str:
    text = sanitize_text_field(value)
    if not text:
        return ""
    try:
        return validate_email(text, check_deliverability=False).normalized
    except EmailNotValidError:
        return ""


def sanitize_url(value: Any) -> str:
    """Return a normalized absolute http(s) URL, or ``""``."""
    if value is None:
        return ""
    text = _CONTROL_CHARS.sub("", str(value)).strip().replace(" ", "%20")
    text = _URL_UNSAFE.sub("", text)
    if not text:
        return ""
    try:
        parts = urlsplit(text)
        hostname = parts.hostname
    except ValueError:
        return ""
    if parts.scheme.lower() not in ("http", "https") or not hostname:
        return ""
    netloc = parts.netloc.rsplit("@", 1)
    netloc[-1] = netloc[-1].lower()
    return urlunsplit((
        parts.scheme.lower(),
        "@".join(netloc),
        parts.path or "/",
        parts.query,
        parts.fragment,
    ))


def sanitize_toggle(value: Any) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    return "on" if sanitize_text_field(value).lower() in _TRUTHY else "off"


def clean(value: Any, max_depth: int | None = None) -> Any:
    """Recursively sanitize *value*.

    Mappings become dicts, lists and tuples keep their order, sets come back
    as sorted lists. Anything nested beyond *max_depth* is discarded; a
    top-level value that is itself discarded yields ``None``.
    """
    limit = settings.sanitizer_max_depth if max_depth is None else max_depth
    result = _clean(value, 0, limit)
    return None if result is _DISCARDED else result


def _clean(value: Any, depth: int, limit: int) -> Any:
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        if depth >= limit:
            logger.warning("Discarding input nested deeper than %d levels", limit)
            return _DISCARDED
        if isinstance(value, Mapping):
            return {
                sanitize_text_field(k): v
                for k, v in _clean_items(value.items(), depth, limit)
            }
        items = [v for _, v in _clean_items(enumerate(value), depth, limit)]
        if isinstance(value, (set, frozenset)):
            return sorted(items, key=str)
        return items
    return sanitize_text_field(value)


def _clean_items(pairs: Iterable[tuple[Any, Any]], depth: int, limit: int):
    for key, item in pairs:
        cleaned = _clean(item, depth + 1, limit)
        if cleaned is not _DISCARDED:
            yield key, cleaned
