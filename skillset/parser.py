"""Parsing helpers for SKILL.md documents."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import aiofiles
import yaml

SKILL_FILENAME = "SKILL.md"


def split_frontmatter(text: str) -> tuple[dict[str, object], str]:
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text

    end_idx = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end_idx = i
            break

    if end_idx is None:
        return {}, text

    yaml_text = "\n".join(lines[1:end_idx])
    body = "\n".join(lines[end_idx + 1 :])

    try:
        data = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError:
        return {}, text

    if not isinstance(data, dict):
        return {}, body

    return data, body


def strip_frontmatter(text: str) -> str:
    """Return the document body without a leading metadata block."""
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return text
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            return "\n".join(lines[i + 1 :]).lstrip("\n")
    return text


async def read_text(path: Path) -> str:
    async with aiofiles.open(path, encoding="utf-8") as handle:
        return await handle.read()


@dataclass(frozen=True)
class SkillDocument:
    """A raw SKILL.md split into its metadata block and body."""

    path: Path
    frontmatter: dict[str, object]
    body: str

    @classmethod
    def from_text(cls, path: Path, text: str) -> "SkillDocument":
        frontmatter, body = split_frontmatter(text)
        return cls(path=path, frontmatter=frontmatter, body=body)


@dataclass(frozen=True)
class Extracted:
    name: str | None = None
    description: str | None = None


def _clean(value: object) -> str | None:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return None
    text = " ".join(str(value).split())
    return text or None


def from_frontmatter(doc: SkillDocument) -> Extracted:
    return Extracted(
        name=_clean(doc.frontmatter.get("name")),
        description=_clean(doc.frontmatter.get("description")),
    )


def from_markdown(doc: SkillDocument) -> Extracted:
    """First heading as name, first paragraph as description."""
    name = None
    paragraph: list[str] = []
    in_fence = False
    for line in doc.body.splitlines():
        stripped = line.strip()
        if stripped.startswith(("```", "~~~")):
            in_fence = not in_fence
            if paragraph:
                break
            continue
        if in_fence:
            continue
        if stripped.startswith("#"):
            if paragraph:
                break
            if name is None:
                name = _clean(stripped.lstrip("#"))
            continue
        if not stripped:
            if paragraph:
                break
            continue
        if stripped.startswith("<!--"):
            continue
        paragraph.append(stripped)
    return Extracted(name=name, description=_clean(" ".join(paragraph)))


def from_directory(doc: SkillDocument) -> Extracted:
    return Extracted(name=doc.path.parent.name or None)


# Ordered; the first strategy yielding a value for a field wins that field.
EXTRACTORS: tuple[Callable[[SkillDocument], Extracted], ...] = (
    from_frontmatter,
    from_markdown,
    from_directory,
)


def extract_metadata(doc: SkillDocument) -> Extracted:
    name = None
    description = None
    for extractor in EXTRACTORS:
        found = extractor(doc)
        name = name or found.name
        description = description or found.description
        if name and description:
            break
    return Extracted(name=name or doc.path.parent.name, description=description)
