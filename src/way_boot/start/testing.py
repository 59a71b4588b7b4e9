"""Test-stage entry point, used by end-to-end suites."""

from __future__ import annotations

from way_boot.core.models import Stage
from way_boot.start.dev import StartDev


class StartTest(StartDev):
    stage = Stage.TEST
