"""Terminal UI utilities using Rich library for CLI output.

Everything except the injected text itself goes to stderr so that
`skillset hook` keeps stdout clean for the agent's JSON protocol.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from skillset.types import CacheSnapshot, Diagnostic


@dataclass(frozen=True)
class Colors:
    """Color palette for terminal output."""

    primary: str = "#00D9FF"  # Bright cyan
    success: str = "#10B981"  # Emerald green
    warning: str = "#F59E0B"  # Amber
    error: str = "#EF4444"  # Red
    text_secondary: str = "#8B949E"  # Gray
    text_muted: str = "#484F58"  # Dark gray


COLORS = Colors()

# stdout: injected text only
console = Console()
# stderr: diagnostics, status and errors
err_console = Console(stderr=True)


def print_error(message: str, title: str = "Error") -> None:
    """Print an error message.

    Args:
        message: Error message
        title: Error title (default: "Error")
    """
    err_console.print(
        Panel(
            f"[{COLORS.error}]{message}[/{COLORS.error}]",
            title=f"[bold {COLORS.error}]{title}[/bold {COLORS.error}]",
            border_style=COLORS.error,
            box=box.ROUNDED,
        )
    )


def print_warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: Warning message
    """
    err_console.print(f"[{COLORS.warning}]{message}[/{COLORS.warning}]")


def print_success(message: str) -> None:
    """Print a success message.

    Args:
        message: Success message
    """
    err_console.print(f"[{COLORS.success}]✓ {message}[/{COLORS.success}]")


def print_info(message: str) -> None:
    """Print an info message.

    Args:
        message: Info message
    """
    err_console.print(f"[{COLORS.primary}]ℹ {message}[/{COLORS.primary}]")


def print_log_location(log_file: str) -> None:
    """Print log file location.

    Args:
        log_file: Path to log file
    """
    err_console.print()
    err_console.print(f"[{COLORS.text_muted}]Detailed logs: {log_file}[/{COLORS.text_muted}]")


def print_markdown(markdown_text: str) -> None:
    """Print formatted markdown.

    Args:
        markdown_text: Markdown text to render
    """
    console.print(Markdown(markdown_text))


def print_diagnostics(diagnostics: Iterable["Diagnostic"]) -> None:
    """Print resolution diagnostics as a table."""
    rows = list(diagnostics)
    if not rows:
        return

    table = Table(box=box.SIMPLE, border_style=COLORS.text_muted, padding=(0, 1))
    table.add_column("Token", style=f"{COLORS.primary} bold")
    table.add_column("Kind")
    table.add_column("Detail", style=COLORS.text_secondary)

    for diag in rows:
        color = COLORS.error if diag.severity == "error" else COLORS.warning
        table.add_row(
            diag.raw or diag.alias or "-",
            f"[{color}]{diag.kind}[/{color}]",
            diag.message,
        )

    err_console.print(table)


def print_index_summary(snapshot: "CacheSnapshot", cache_path: Optional[str] = None) -> None:
    """Print the skills and collisions recorded in a snapshot."""
    table = Table(show_header=True, box=box.SIMPLE, border_style=COLORS.text_muted)
    table.add_column("Skill", style=f"{COLORS.primary} bold")
    table.add_column("Name")
    table.add_column("Path", style=COLORS.text_secondary)
    for ref, skill in snapshot.skills.items():
        table.add_row(ref, skill.name, str(skill.path))
    err_console.print(table)

    for collision in snapshot.collisions:
        print_warning(
            f"Collision on {collision.skill_ref}: kept {collision.kept}, "
            f"ignored {collision.discarded}"
        )

    summary = f"Indexed {len(snapshot.skills)} skills"
    if cache_path:
        summary += f" into {cache_path}"
    print_success(summary)
