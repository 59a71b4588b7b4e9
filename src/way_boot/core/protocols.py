"""Protocols (interfaces) consumed by the bootstrap.

These define the contracts that infrastructure adapters and application
entry points must satisfy.  The orchestrator depends ONLY on these
protocols, never on concrete implementations, so tests can substitute
any collaborator.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from way_boot.core.models import Artifact

LogSink = Callable[[str], None]
"""Receives one fully formatted log line (no trailing newline)."""


class Fetcher(Protocol):
    """Contract for artifact retrieval backends.

    Implementations must map every backend-specific exception to
    :class:`~way_boot.exceptions.FetchFailedError`.
    """

    def fetch(self, artifact: Artifact, uri: str, target: Path) -> None:
        """Write the bytes found at *uri* to *target*.

        Raises
        ------
        FetchFailedError
            When the bytes cannot be retrieved for any reason.
        """
        ...  # pragma: no cover

    def close(self) -> None:
        """Release any held resources (idempotent)."""
        ...  # pragma: no cover


class EntryPoint(Protocol):
    """Contract for the application the launcher hands off to.

    An entry point is constructed with the resolved configuration map:
    every launcher option keyed by its name (e.g. ``"--stage"``), plus
    ``"logger"`` (the active :class:`~way_boot.infra.log.BootLog`) and
    ``"module-path"`` (the directories its code is resolved from).
    """

    def __init__(self, config: Mapping[str, Any]) -> None:
        ...  # pragma: no cover

    def start(self, args: Sequence[str]) -> None:
        """Start the application with the arguments the launcher did not claim."""
        ...  # pragma: no cover

    def close(self) -> None:
        """Stop the application (idempotent)."""
        ...  # pragma: no cover
