"""Production entry point: everything comes from the verified JARs."""

from __future__ import annotations

from way_boot.core.models import Stage
from way_boot.start.base import Start


class StartProd(Start):
    stage = Stage.PROD
