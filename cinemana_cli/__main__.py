"""
Main entry point for the cinemana-cli application.
This module handles top-level exception handling and CLI invocation.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from cinemana_cli.cli.app import app
from cinemana_cli.cli.formatters import format_error_with_suggestions
from cinemana_cli.exceptions import CinemanaCliError


def main() -> None:
    """Main entry point function."""
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    log = logging.getLogger("cinemana_cli")
    console = Console()

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Interrupted; unfinished downloads were discarded.[/yellow]")
        sys.exit(130)
    except CinemanaCliError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
