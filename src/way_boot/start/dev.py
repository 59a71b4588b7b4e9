"""Development entry point.

Styles are generated from the locally compiled classes on each request,
so the class output directory is registered as the styles scan
directory.
"""

from __future__ import annotations

from way_boot.core.models import Stage
from way_boot.core.options import CLASS_OUTPUT
from way_boot.start.base import Start

STYLES_SCAN_DIRECTORY: str = "STYLES_SCAN_DIRECTORY"


class StartDev(Start):
    stage = Stage.DEV

    def configure_stage(self) -> None:
        self.services[STYLES_SCAN_DIRECTORY] = self.boot_option(CLASS_OUTPUT)
