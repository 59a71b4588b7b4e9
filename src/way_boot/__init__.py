"""way-boot: self-bootstrapping launcher for Objectos Way applications.

Fetches and verifies the launcher's artifacts, then hands off to the
application entry point selected by the running stage.
"""

from way_boot.version import __version__

__all__: list[str] = ["__version__"]
