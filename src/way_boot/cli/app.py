"""CLI application entry point for way-boot.

This module is the **sole error boundary** for the entire application.
It catches :class:`~way_boot.exceptions.WayBootError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No bootstrap logic lives here; all work is delegated to
  :class:`~way_boot.bootstrap.Bootstrap`.
* ``-V``/``--version`` is handled by argparse only when it is the sole
  argument.  Otherwise every token, including those two, is handed to the
  option registry, which forwards the ones it does not recognize to the
  application.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import sys

from way_boot.cli import exit_codes
from way_boot.cli.console import console
from way_boot.exceptions import WayBootError
from way_boot.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

_VERSION_REQUESTS: tuple[list[str], ...] = (["-V"], ["--version"])


def _build_parser() -> argparse.ArgumentParser:
    """Construct the launcher-level argument parser.

    ``add_help`` and abbreviations are disabled so that flags meant for the
    option registry or the application are never swallowed here.
    """
    parser = argparse.ArgumentParser(
        prog="way-boot",
        description="Bootstraps and launches an Objectos Way application.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the launcher.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    from way_boot.bootstrap import Bootstrap

    args = list(sys.argv[1:] if argv is None else argv)
    if args in _VERSION_REQUESTS:
        _build_parser().parse_args(args)

    entry_point = Bootstrap().start(args)
    entry_point.close()
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except WayBootError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.__cause__ is not None:
            console.print(
                f"[dim]Caused by {type(exc.__cause__).__name__}: {exc.__cause__}[/dim]"
            )
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
