"""Extract `$alias` invocation tokens from raw prompt text.

Tokens inside fenced code blocks (``` or ~~~) and inline code spans are
never produced. The sigil is a parameter so alternative front ends such as
`w/alias` share the same pipeline.
"""

from __future__ import annotations

import re
from typing import Iterator

from .normalize import normalize_ref, normalize_segment
from .types import InvocationToken

DEFAULT_SIGIL = "$"

_FENCE_RE = re.compile(r"^[ \t]*(`{3,}|~{3,})(.*)$")
_BACKTICKS_RE = re.compile(r"`+")
# Optional `set:` or `skill:` kind prefix, then an optional namespace. Aliases
# start with a letter so prices like `$5` are not tokens.
_BODY_RE = re.compile(
    r"(?:((?i:set|skill)):)?(?:([A-Za-z][A-Za-z0-9_-]*):)?([A-Za-z][A-Za-z0-9_/-]*)"
)
_OPENERS = "([{\"'"
_TRAILING = "-_/"


def _code_ranges(line: str) -> list[tuple[int, int]]:
    """Offsets of inline code spans in a single line.

    An unclosed backtick run opens a span that lasts to the end of the line.
    """
    ranges: list[tuple[int, int]] = []
    runs = list(_BACKTICKS_RE.finditer(line))
    i = 0
    while i < len(runs):
        opener = runs[i]
        closer_idx = next(
            (j for j in range(i + 1, len(runs)) if len(runs[j].group()) == len(opener.group())),
            None,
        )
        if closer_idx is None:
            ranges.append((opener.start(), len(line)))
            break
        ranges.append((opener.start(), runs[closer_idx].end()))
        i = closer_idx + 1
    return ranges


def _visible_lines(text: str) -> Iterator[tuple[int, str, list[tuple[int, int]]]]:
    """Yield (offset, text, code_ranges) for every line segment outside a fence."""
    fence: str | None = None
    offset = 0
    for line in text.splitlines(keepends=True):
        start = offset
        offset += len(line)
        content = line.rstrip("\r\n")
        match = _FENCE_RE.match(content)
        if fence is not None:
            if match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence):
                fence = None
                # Text after a closing fence on the same line is visible again.
                remainder = match.group(2)
                if remainder.strip():
                    yield start + match.start(2), remainder, _code_ranges(remainder)
            continue
        if match and not (match.group(1)[0] == "`" and "`" in match.group(2)):
            fence = match.group(1)
            continue
        yield start, content, _code_ranges(content)


def _sigil_allowed(line: str, index: int) -> bool:
    if index == 0:
        return True
    before = line[index - 1]
    return before.isspace() or before in _OPENERS


def tokenize(text: str, sigil: str = DEFAULT_SIGIL) -> list[InvocationToken]:
    """Return invocation tokens in order of appearance."""
    if not sigil:
        raise ValueError("sigil must not be empty")

    tokens: list[InvocationToken] = []
    for line_offset, line, code_ranges in _visible_lines(text):
        index = line.find(sigil)
        while index != -1:
            next_index = index + len(sigil)
            in_code = any(lo <= index < hi for lo, hi in code_ranges)
            if not in_code and _sigil_allowed(line, index):
                token = _match_token(line, index, sigil, line_offset)
                if token is not None:
                    tokens.append(token)
                    next_index = token.span[1] - line_offset
            index = line.find(sigil, next_index)
    return tokens


def _match_token(
    line: str, index: int, sigil: str, line_offset: int
) -> InvocationToken | None:
    body_start = index + len(sigil)
    match = _BODY_RE.match(line, body_start)
    if not match:
        return None

    kind, namespace, alias = match.group(1), match.group(2), match.group(3)
    trimmed = alias.rstrip(_TRAILING)
    alias_norm = normalize_ref(trimmed) if "/" in trimmed else normalize_segment(trimmed)
    if not alias_norm:
        return None

    end = match.end() - (len(alias) - len(trimmed))
    return InvocationToken(
        raw=line[index:end],
        namespace=normalize_segment(namespace) if namespace else None,
        alias=alias_norm,
        span=(line_offset + index, line_offset + end),
        kind=kind.lower() if kind else None,
    )
