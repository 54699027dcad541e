"""End-to-end injection: prompt text in, context block and diagnostics out."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from config import Config
from utils import get_logger
from utils.runtime import get_cache_file, get_project_root

from .cache import CacheStore
from .errors import ConfigError, SkillIndexError, UnresolvedSkillsError
from .indexer import describe_layout
from .parser import SkillDocument, from_frontmatter, from_markdown, read_text
from .render import format_injection
from .resolver import resolve_all
from .settings import ConfigLoader
from .tokenizer import tokenize
from .types import (
    CacheSnapshot,
    Diagnostic,
    EffectiveConfig,
    InjectResult,
    InvocationToken,
    Resolved,
    ResolvedSet,
    ResolveResult,
    Skill,
)
from .usage import log_usage

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BLOCKED = 2


def _with_document_metadata(skill: Skill, text: str) -> Skill:
    """Name and describe an out-of-index file from its front-matter or headings."""
    doc = SkillDocument.from_text(skill.path, text)
    found = [from_frontmatter(doc), from_markdown(doc)]
    name = next((f.name for f in found if f.name), skill.name)
    description = next((f.description for f in found if f.description), None)
    return replace(skill, name=name, description=description)


class SkillInjector:
    """Runs tokenize, index, resolve and format for one project."""

    def __init__(
        self,
        project_root: str | Path | None = None,
        timeout: float | None = None,
        sigil: str | None = None,
    ) -> None:
        self.project_root = Path(project_root or get_project_root()).resolve()
        self.timeout = timeout if timeout is not None else Config.HOOK_TIMEOUT
        self.sigil = sigil or Config.TOKEN_SIGIL
        self.loader = ConfigLoader(self.project_root)
        self.config: EffectiveConfig | None = None

    def cache_store(self, config: EffectiveConfig) -> CacheStore:
        return CacheStore(
            get_cache_file(str(self.project_root)),
            config.scan_roots,
            max_depth=Config.MAX_SCAN_DEPTH,
            ttl_seconds=Config.CACHE_TTL_SECONDS,
        )

    async def inject(self, raw_text: str, source: str = "inject") -> InjectResult:
        tokens = tokenize(raw_text, self.sigil)
        if not tokens:
            return InjectResult(text="")

        self.config = None
        try:
            try:
                text, diagnostics, results = await asyncio.wait_for(
                    self._run(tokens), timeout=self.timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Injection exceeded {self.timeout}s, using last cached index")
                # Defaults stand in when the deadline hit before config loaded.
                config = self.config or EffectiveConfig()
                store = self.cache_store(config)
                snapshot = await store.read() or CacheSnapshot(
                    version=Config.CACHE_VERSION, generated_at=0, ttl_seconds=store.ttl_seconds
                )
                timeout_diag = Diagnostic(
                    kind="timeout",
                    message=f"Skill resolution exceeded {self.timeout:g}s; "
                    "results come from the last cached index",
                )
                text, diagnostics, results = await self._render(
                    tokens, config, snapshot, extra=(timeout_diag,)
                )
        except ConfigError as e:
            logger.error(f"Config error: {e}")
            return InjectResult(
                text="",
                diagnostics=(Diagnostic(kind="config", message=str(e), severity="error"),),
                exit_code=EXIT_FAILED,
            )
        except SkillIndexError as e:
            logger.error(f"Index error: {e}")
            return InjectResult(
                text="",
                diagnostics=(Diagnostic(kind="index", message=str(e), severity="error"),),
                exit_code=EXIT_FAILED,
            )
        except UnresolvedSkillsError as e:
            logger.info(f"Injection blocked: {e}")
            return InjectResult(text="", diagnostics=e.diagnostics, exit_code=EXIT_BLOCKED)

        await log_usage(results, source)
        return InjectResult(text=text, diagnostics=diagnostics, results=tuple(results))

    async def _run(
        self, tokens: list[InvocationToken]
    ) -> tuple[str, tuple[Diagnostic, ...], list[ResolveResult]]:
        self.config = await self.loader.load_effective()
        snapshot = await self.cache_store(self.config).load()
        return await self._render(tokens, self.config, snapshot)

    async def _render(
        self,
        tokens: list[InvocationToken],
        config: EffectiveConfig,
        snapshot: CacheSnapshot,
        extra: Sequence[Diagnostic] = (),
    ) -> tuple[str, tuple[Diagnostic, ...], list[ResolveResult]]:
        results = resolve_all(tokens, snapshot, config)
        skills: dict[str, Skill] = {}
        wants_layout: set[str] = set()
        for result in results:
            if isinstance(result, Resolved):
                skills[result.skill.skill_ref] = result.skill
                if result.include_layout or (
                    result.include_layout is None and config.output.include_layout
                ):
                    wants_layout.add(result.skill.skill_ref)
            elif isinstance(result, ResolvedSet):
                for member in result.members:
                    skills[member.skill_ref] = member
                    if config.output.include_layout:
                        wants_layout.add(member.skill_ref)
        refs = sorted(skills)

        texts = await asyncio.gather(
            *(read_text(skills[ref].path) for ref in refs), return_exceptions=True
        )
        contents: dict[str, str | None] = {}
        for ref, text in zip(refs, texts):
            if isinstance(text, (OSError, UnicodeDecodeError)):
                logger.warning(f"Could not read {skills[ref].path}: {text}")
                contents[ref] = None
            elif isinstance(text, BaseException):
                raise text
            else:
                contents[ref] = text

        # Files named by a `skills:` path entry are described by their own text.
        results = [
            replace(r, skill=_with_document_metadata(r.skill, contents[r.skill.skill_ref]))
            if isinstance(r, Resolved) and r.strategy == "path" and contents[r.skill.skill_ref]
            else r
            for r in results
        ]

        layout_refs = sorted(wants_layout)
        listings = await asyncio.gather(
            *(
                asyncio.to_thread(
                    describe_layout, skills[ref].directory, max_lines=config.output.max_lines
                )
                for ref in layout_refs
            )
        )
        layouts = dict(zip(layout_refs, listings))

        text, diagnostics = format_injection(
            tokens,
            results,
            contents,
            config.mode,
            output=config.output,
            rules=config.rules,
            layouts=layouts,
            extra=extra,
        )
        return text, diagnostics, results


async def inject_prompt(
    raw_text: str,
    *,
    project_root: str | Path | None = None,
    timeout: float | None = None,
    sigil: str | None = None,
    source: str = "inject",
) -> InjectResult:
    """Resolve every skill token in raw_text and build the context block.

    Exit codes: 0 success (possibly with warnings), 1 config or index
    failure, 2 blocked by strict mode or an ``error`` rule.
    """
    injector = SkillInjector(project_root=project_root, timeout=timeout, sigil=sigil)
    return await injector.inject(raw_text, source=source)
