"""Infrastructure: the bootstrap log.

Every event becomes a single line::

    2025-01-01 10:00:00.000 INFO  (boot) way-boot v0.1.0

and is handed to a pluggable sink.  The default sink renders through the
CLI console; tests inject a list-backed sink and a fixed clock.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from way_boot.core.protocols import LogSink

Clock = Callable[[], datetime]


def console_sink(line: str) -> None:
    """Write *line* to the console with Rich markup disabled."""
    from way_boot.cli.console import console

    console.print(line, markup=False, highlight=False)


class BootLog:
    """Formats log events and writes them to a sink.

    Parameters
    ----------
    sink:
        Receives each formatted line.  Defaults to :func:`console_sink`.
    clock:
        Returns the timestamp for each line.  Defaults to local time.
    """

    def __init__(self, sink: LogSink | None = None, clock: Clock | None = None) -> None:
        self.sink: LogSink = sink if sink is not None else console_sink
        self.clock: Clock = clock if clock is not None else datetime.now

    def info(self, source: str, message: str) -> None:
        self._log("INFO", source, message)

    def error(self, source: str, message: str) -> None:
        self._log("ERROR", source, message)

    def _log(self, level: str, source: str, message: str) -> None:
        now = self.clock()
        time = now.strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"
        self.sink(f"{time} {level:<5} ({source}) {message}")
