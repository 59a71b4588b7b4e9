"""Allow ``python -m way_boot`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m way_boot`` behaves identically to the ``way-boot``
console script.
"""

from __future__ import annotations

from way_boot.cli.app import cli

if __name__ == "__main__":
    cli()
