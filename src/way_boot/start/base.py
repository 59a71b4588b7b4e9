"""Shared behaviour of the stage entry points."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from way_boot.core.models import Stage
from way_boot.core.options import PORT, PROJECT_FILE, STAGE
from way_boot.infra.log import BootLog


class Start:
    """Base entry point: reads boot options and reports its lifecycle.

    Subclasses set :attr:`stage` and may override :meth:`configure_stage`.
    """

    stage: Stage = Stage.PROD

    def __init__(self, config: Mapping[str, Any]) -> None:
        self._config: dict[str, Any] = dict(config)
        self.logger: BootLog = self.boot_option("logger")
        self.port: int = self.boot_option(PORT)
        self.project_file: Path = self.boot_option(PROJECT_FILE)
        self.args: list[str] = []
        self.services: dict[str, Any] = {}
        self._running: bool = False

        configured = Stage(self.boot_option(STAGE))
        if configured is not self.stage:
            raise ValueError(
                f"{type(self).__name__} cannot run with --stage {configured.value}"
            )

    def __enter__(self) -> Start:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    @property
    def running(self) -> bool:
        return self._running

    def boot_option(self, name: str) -> Any:
        """Return the boot option *name*; ``KeyError`` when it was never set."""
        value = self._config.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def configure_stage(self) -> None:
        """Hook for stage-specific services."""

    def start(self, args: Sequence[str]) -> None:
        self.args = list(args)
        self.configure_stage()
        self._running = True
        self.logger.info(
            type(self).__name__,
            f"STA port={self.port} project={self.project_file}",
        )

    def close(self) -> None:
        if self._running:
            self._running = False
            self.logger.info(type(self).__name__, "STO")
