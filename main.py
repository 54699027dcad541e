"""Main entry point for skillset."""

import argparse
import asyncio
import importlib.metadata
import sys

from config import Config, ensure_settings_file
from skillset import CacheStore, ConfigError, ConfigLoader, SkillIndexError
from skillset.hook import run_prompt_hook
from skillset.inject import EXIT_FAILED, EXIT_OK, inject_prompt
from utils import get_log_file_path, setup_logger, terminal_ui
from utils.runtime import ensure_runtime_dirs, get_cache_file, get_project_root


def _run_hook() -> int:
    """Read the hook payload from stdin and answer on stdout."""
    payload = sys.stdin.read()
    output, exit_code, stderr = asyncio.run(run_prompt_hook(payload))
    sys.stdout.write(output)
    sys.stdout.flush()
    if stderr:
        sys.stderr.write(stderr + "\n")
    return exit_code


def _run_inject(text: str) -> int:
    result = asyncio.run(inject_prompt(text))
    if result.text:
        terminal_ui.console.print(result.text, markup=False, highlight=False, end="")
    terminal_ui.print_diagnostics(result.diagnostics)
    if result.exit_code == EXIT_FAILED:
        terminal_ui.print_error(
            "\n".join(d.message for d in result.diagnostics), title="Injection Failed"
        )
    elif not result.ok:
        terminal_ui.print_warning("Prompt blocked: unresolved skill references")
    return result.exit_code


async def _index(force: bool) -> int:
    project_root = get_project_root()
    try:
        config = await ConfigLoader(project_root).load_effective()
    except ConfigError as e:
        terminal_ui.print_error(str(e), title="Configuration Error")
        return EXIT_FAILED

    cache_path = get_cache_file(project_root)
    store = CacheStore(
        cache_path,
        config.scan_roots,
        max_depth=Config.MAX_SCAN_DEPTH,
        ttl_seconds=Config.CACHE_TTL_SECONDS,
    )
    try:
        snapshot = await (store.rebuild() if force else store.load())
    except SkillIndexError as e:
        terminal_ui.print_error(str(e), title="Index Error")
        return EXIT_FAILED

    terminal_ui.print_index_summary(snapshot, cache_path)
    return EXIT_OK


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Resolve $alias skill tokens in prompts and inject SKILL.md documents"
    )

    try:
        version = importlib.metadata.version("skillset")
    except importlib.metadata.PackageNotFoundError:
        version = "dev"
    parser.add_argument("--version", "-V", action="version", version=f"skillset {version}")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging to ~/.skillset/logs/",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("hook", help="Run as a UserPromptSubmit hook (JSON on stdin/stdout)")
    inject_parser = subparsers.add_parser("inject", help="Print the context injected for TEXT")
    inject_parser.add_argument("text", help="Prompt text containing $alias tokens")
    index_parser = subparsers.add_parser("index", help="Scan skill roots and refresh the cache")
    index_parser.add_argument(
        "--force", "-f", action="store_true", help="Rebuild even if the cache is fresh"
    )

    args = parser.parse_args()

    # Initialize runtime directories (create logs dir only in verbose mode)
    ensure_runtime_dirs(create_logs=args.verbose)
    ensure_settings_file()

    # Initialize logging only in verbose mode
    if args.verbose:
        setup_logger()

    # Validate config
    try:
        Config.validate()
    except ValueError as e:
        terminal_ui.print_error(str(e), title="Configuration Error")
        return EXIT_FAILED

    if args.command == "hook":
        exit_code = _run_hook()
    elif args.command == "inject":
        exit_code = _run_inject(args.text)
    else:
        exit_code = asyncio.run(_index(args.force))

    log_file = get_log_file_path()
    if args.verbose and log_file and args.command != "hook":
        terminal_ui.print_log_location(log_file)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
