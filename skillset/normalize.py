"""Kebab-case normalisation for aliases, names and refs."""

from __future__ import annotations

import re

_SEPARATORS_RE = re.compile(r"[_\s]+")
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z0-9])")
_INVALID_RE = re.compile(r"[^a-zA-Z0-9-]")
_DASHES_RE = re.compile(r"-+")


def normalize_segment(value: str) -> str:
    """`FrontEnd_Design` -> `front-end-design`."""
    text = _SEPARATORS_RE.sub("-", value)
    text = _CAMEL_RE.sub(r"\1-\2", text)
    text = _ACRONYM_RE.sub(r"\1-\2", text)
    text = _INVALID_RE.sub("-", text)
    return _DASHES_RE.sub("-", text).strip("-").lower()


def normalize_ref(value: str) -> str:
    """Normalise every `:` and `/` separated part of a ref."""
    parts = []
    for section in value.split(":"):
        segments = [normalize_segment(part) for part in section.split("/")]
        joined = "/".join(segment for segment in segments if segment)
        if joined:
            parts.append(joined)
    return ":".join(parts)
