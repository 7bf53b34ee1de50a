"""
Functions for formatting and displaying backend results in the console using Rich.
"""

from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from audiodock.exceptions import ErrorKind
from audiodock.models.result import CommandResult
from audiodock.utils.formatting import format_size

SUGGESTIONS = {
    ErrorKind.PATH_SECURITY: [
        "• The path must live inside one of the application's folders.",
        "• Run `audiodock roots` to see where those folders are.",
    ],
    ErrorKind.VALIDATION: [
        "• Date folders may only contain digits and dashes.",
        "• Session ids and log stamps may only contain digits and underscores.",
    ],
    ErrorKind.IO: [
        "• Check that the folder exists and that you can write to it.",
        "• Run `audiodock diagnose` for a full report.",
    ],
    ErrorKind.NOT_FOUND: [
        "• The bundled tools (ffmpeg, ffprobe, yt-dlp) could not be found.",
        "• Reinstall the application, or place the tools in a 'binaries' folder"
        " next to the executable.",
        "• Run `audiodock binaries` to see every location that was searched.",
    ],
    ErrorKind.PROCESS_SPAWN: [
        "• The transcoder could not be started; it may lack execute permission.",
    ],
    ErrorKind.PROCESS_EXIT: [
        "• The transcoder reported an error. The session trace log has the"
        " full output.",
    ],
    ErrorKind.CONFIGURATION: [
        "• The settings file could not be saved. Check the application folder.",
    ],
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    kind = getattr(error, "kind", None)
    message = getattr(error, "public_message", None) or str(error)
    return _error_panel(error_type, message, kind, context)


def format_failed_result(result: CommandResult, command: str) -> Panel:
    """Formats a failed CommandResult the same way as a raised error."""
    return _error_panel(
        command, result.message or "Unknown error", result.error_kind, None
    )


def _error_panel(
    title: str, message: str, kind: ErrorKind | None, context: dict | None
) -> Panel:
    suggestions = SUGGESTIONS.get(kind, ["• Run the command with -vv for detailed logs."])

    error_text = Text()
    error_text.append(f"{title}: ", style="bold red")
    error_text.append(message)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def _printable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return f"<{format_size(len(value))} of binary data>"
    return value


def print_result(console: Console, command: str, result: CommandResult) -> None:
    """Prints a command result as JSON, or as an error panel if it failed."""
    if not result.ok:
        console.print(format_failed_result(result, command))
        return
    payload = result.model_dump(mode="json", exclude_none=True, exclude={"value"})
    payload["value"] = _printable(result.value)
    console.print_json(data=payload)


def print_roots(console: Console, roots: dict[str, str]) -> None:
    """Displays the resolved runtime roots."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for name, value in roots.items():
        style = "red" if value.startswith("UNAVAILABLE") else "green"
        table.add_row(f"{name}:", f"[{style}]{value}[/{style}]")
    console.print(
        Panel(table, title="[bold]Runtime Roots[/bold]", border_style="cyan", expand=False)
    )


def print_trail(console: Console, trail: tuple[str, ...], found: str | None) -> None:
    """Displays the sidecar search trail, highlighting the matching probe."""
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Probe")
    for i, entry in enumerate(trail, 1):
        style = "green" if "-> found" in entry or entry.startswith("selected") else ""
        table.add_row(str(i), Text(entry, style=style))
    title = (
        f"[bold green]✓ Binaries: {found}[/bold green]"
        if found
        else "[bold red]✗ Binaries not found[/bold red]"
    )
    console.print(Panel(table, title=title, border_style="green" if found else "red"))
