"""
Main entry point for the audiodock backend CLI.

Errors that escape a command are rendered once, through the same suggestion
panel the commands use, and turned into an exit status.
"""

import logging
import os
import sys

import typer
from rich.console import Console

from audiodock.cli.app import app
from audiodock.cli.formatters import format_error_with_suggestions
from audiodock.exceptions import AudioDockError

log = logging.getLogger("audiodock")


def _use_utf8_console() -> None:
    """Windows consoles default to a legacy code page."""
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError) as e:
            log.debug(f"Cannot switch {stream!r} to UTF-8: {e}")


def main(argv: list[str] | None = None) -> None:
    """Runs the CLI with *argv*, or with the process arguments when omitted."""
    _use_utf8_console()
    console = Console()

    try:
        app(args=argv, prog_name="audiodock")
    except (typer.Exit, typer.Abort):
        pass
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        sys.exit(0)
    except AudioDockError as e:
        log.debug(f"{e.kind.value}: {e.detail}")
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        log.debug("Full traceback:", exc_info=True)
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        sys.exit(1)


if __name__ == "__main__":
    main()
