"""
Defines the command-line interface for the backend using Typer.

Each subcommand maps onto one `BackendCommands` operation and prints the
structured result, so the backend can be driven and debugged without the UI.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from audiodock import __version__
from audiodock.api.commands import BackendCommands
from audiodock.core.app_paths import get_app_root
from audiodock.exceptions import NotFoundError

from .formatters import print_result, print_roots, print_trail

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=False,
        )
    ],
)
log = logging.getLogger("audiodock")

app = typer.Typer(
    name="audiodock",
    help=(
        "Backend commands of the audio desktop app: runtime folders, sidecar"
        " binaries, sandboxed files and black-video export."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def _backend(ctx: typer.Context) -> BackendCommands:
    return ctx.obj["backend"]


def _emit(command: str, result) -> None:
    print_result(console, command, result)
    if not result.ok:
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    home: Path | None = typer.Option(
        None,
        "--home",
        help="Use this application root instead of the platform default.",
    ),
):
    """audiodock backend CLI"""
    if version:
        console.print(f"[bold]audiodock[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("audiodock").setLevel(log_level)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    app_root = home or get_app_root()
    log.debug(f"Using application root '{app_root}'.")
    backend = BackendCommands(app_root=app_root)
    ctx.obj = {"backend": backend}
    ctx.call_on_close(backend.close)


# ── Roots ────────────────────────────────────────────────────────────────────


@app.command()
def roots(ctx: typer.Context):
    """Show every runtime root, resolving and validating each one."""
    print_roots(console, _backend(ctx).provisioner.describe())


@app.command(name="download-root")
def download_root(
    ctx: typer.Context,
    set_to: str | None = typer.Option(
        None, "--set", help="New download root. An empty string restores the default."
    ),
):
    """Show or change the download root."""
    backend = _backend(ctx)
    if set_to is None:
        _emit("get_download_root", backend.get_download_root())
    else:
        _emit("set_download_root", backend.set_download_root(set_to))


@app.command(name="export-root")
def export_root(
    ctx: typer.Context,
    set_to: str | None = typer.Option(
        None, "--set", help="New export root. An empty string restores the default."
    ),
):
    """Show or change the export root."""
    backend = _backend(ctx)
    if set_to is None:
        _emit("get_export_root", backend.get_export_root())
    else:
        _emit("set_export_root", backend.set_export_root(set_to))


# ── Downloads ────────────────────────────────────────────────────────────────


@app.command(name="prepare-download")
def prepare_download(
    ctx: typer.Context,
    date_folder: str = typer.Argument(..., help="Dated subfolder, e.g. 2024-05-01."),
    log_stamp: str = typer.Argument(..., help="Log stamp, e.g. 20240501_101500."),
):
    """Create the download folder and return the paths a downloader run needs."""
    _emit(
        "prepare_download",
        _backend(ctx).prepare_download(date_folder, log_stamp),
    )


@app.command(name="latest-download")
def latest_download(
    ctx: typer.Context,
    download_dir: str = typer.Argument(..., help="Folder inside the download root."),
):
    """Show the most recently downloaded audio file."""
    _emit("find_latest_download", _backend(ctx).find_latest_download(download_dir))


# ── Export ───────────────────────────────────────────────────────────────────


@app.command(name="export-video")
def export_video(
    ctx: typer.Context,
    input_audio: str = typer.Argument(..., help="Audio file inside an app folder."),
    session_id: str = typer.Argument(..., help="Session id (digits and underscores)."),
    output_root: str | None = typer.Option(
        None,
        "--output-root",
        "-o",
        help="Absolute folder inside the export or download root to write to instead.",
    ),
):
    """Render the audio over a black 1280x720 video."""
    _emit(
        "export_black_video",
        _backend(ctx).export_black_video(input_audio, session_id, output_root),
    )


@app.command(name="trace")
def trace(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session id (digits and underscores)."),
    line: str = typer.Argument(..., help="Text to append to the session trace."),
):
    """Append a line to a session's trace log."""
    _emit("append_video_trace", _backend(ctx).append_video_trace(session_id, line))


# ── Diagnostics ──────────────────────────────────────────────────────────────


@app.command()
def binaries(ctx: typer.Context):
    """Locate the sidecar binaries and show every probe that was made."""
    locator = _backend(ctx).locator
    try:
        result = locator.locate()
    except NotFoundError as e:
        print_trail(console, e.trail, None)
        raise typer.Exit(code=1) from e
    print_trail(console, result.trail, str(result.directory))


@app.command(name="support-bundle")
def support_bundle(ctx: typer.Context):
    """Write a support bundle for bug reports."""
    _emit("write_support_bundle", _backend(ctx).write_support_bundle())


@app.command()
def diagnose(ctx: typer.Context):
    """Diagnose common installation issues."""
    backend = _backend(ctx)
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False

    report = backend.provisioner.describe()
    for name, value in report.items():
        if value.startswith("UNAVAILABLE"):
            console.print(f"[red]✗ {name} root is unusable:[/] {value}")
            issues_found = True
        else:
            console.print(f"[green]✓[/] {name}: [dim]{value}[/dim]")

    result = backend.get_binaries_dir()
    if result.ok:
        console.print(f"[green]✓[/] Sidecar binaries found in [dim]{result.value}[/dim]")
    else:
        console.print(
            "[red]✗ Sidecar binaries not found.[/] Run [cyan]audiodock binaries[/cyan]"
            " for the search trail."
        )
        issues_found = True

    console.print()
    if not issues_found:
        console.print("[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n")
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
