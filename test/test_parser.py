"""Tests for SKILL.md parsing and metadata extraction."""

import textwrap
from pathlib import Path

import pytest

from skillset.parser import (
    SkillDocument,
    extract_metadata,
    from_markdown,
    read_text,
    split_frontmatter,
    strip_frontmatter,
)


def doc(text: str, directory: str = "ship") -> SkillDocument:
    return SkillDocument.from_text(Path("/skills") / directory / "SKILL.md", textwrap.dedent(text))


def test_split_frontmatter() -> None:
    data, body = split_frontmatter("---\nname: ship\ndescription: Release it.\n---\nBody")
    assert data == {"name": "ship", "description": "Release it."}
    assert body == "Body"


def test_split_frontmatter_invalid_yaml_keeps_text() -> None:
    text = "---\nname: [unclosed\n---\nBody"
    assert split_frontmatter(text) == ({}, text)


def test_strip_frontmatter() -> None:
    assert strip_frontmatter("---\nname: x\n---\n\n# Title\nBody") == "# Title\nBody"
    assert strip_frontmatter("# No metadata") == "# No metadata"
    assert strip_frontmatter("---\nunterminated") == "---\nunterminated"


def test_frontmatter_wins() -> None:
    meta = extract_metadata(
        doc(
            """\
            ---
            name: Ship It
            description: Cut a release.
            ---
            # Other heading

            Other paragraph.
            """
        )
    )
    assert meta.name == "Ship It"
    assert meta.description == "Cut a release."


def test_markdown_fallback_per_field() -> None:
    meta = extract_metadata(
        doc(
            """\
            ---
            name: ship
            ---
            # Release

            Tag and publish
            the package.

            Later text.
            """
        )
    )
    assert meta.name == "ship"
    assert meta.description == "Tag and publish the package."


def test_markdown_skips_fences_and_comments() -> None:
    found = from_markdown(
        doc(
            """\
            <!-- generated -->
            ```
            not a description
            ```
            # Lint
            Run the linters.
            """
        )
    )
    assert found.name == "Lint"
    assert found.description == "Run the linters."


def test_directory_name_is_last_resort() -> None:
    meta = extract_metadata(doc("", directory="deploy-prod"))
    assert meta.name == "deploy-prod"
    assert meta.description is None


def test_non_string_frontmatter_values_ignored() -> None:
    meta = extract_metadata(doc("---\nname: [a, b]\ndescription: true\n---\n# Title\n"))
    assert meta.name == "Title"
    assert meta.description is None


@pytest.mark.asyncio
async def test_read_text(tmp_path) -> None:
    path = tmp_path / "SKILL.md"
    path.write_text("# Héllo\n", encoding="utf-8")
    assert await read_text(path) == "# Héllo\n"
