"""Built-in application entry points, one per stage.

The launcher hands off to these through :mod:`way_boot.core.dispatcher`.
They receive the resolved boot options and the forwarded arguments; the
web application they host is outside this package.
"""

from way_boot.start.base import Start
from way_boot.start.dev import StartDev
from way_boot.start.prod import StartProd
from way_boot.start.testing import StartTest

__all__: list[str] = ["Start", "StartDev", "StartProd", "StartTest"]
