"""Custom exception hierarchy for way-boot.

All exceptions that cross layer boundaries must inherit from
:class:`WayBootError`.  Raw third-party exceptions (``OSError``,
``httpx.HTTPError``, pydantic validation errors) must NEVER propagate
beyond the layer that triggered them. They are caught there and
re-raised as a typed subclass defined here, with the original attached
as ``__cause__``.

Every error is fatal: the launcher performs no automatic recovery.

Hierarchy
---------
WayBootError
├── ConfigurationError
│   ├── MissingValueError
│   └── InvalidValueError
├── EnvironmentError
├── FetchFailedError
├── ChecksumFailedError
├── IntegrityError
└── DispatchError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from way_boot.core.models import Artifact


class WayBootError(Exception):
    """Base exception for all way-boot errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ----------------------------------------------------------

class ConfigurationError(WayBootError):
    """Raised when the command-line options cannot be accepted."""


class MissingValueError(ConfigurationError):
    """Raised when a recognized option is the last token on the command line."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"{name} requires a value",
            hint=f"Pass the value right after the flag, e.g. '{name} <value>'.",
        )
        self.name: str = name


class InvalidValueError(ConfigurationError):
    """Raised when an option value cannot be coerced or fails validation."""

    def __init__(self, name: str, message: str, *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.name: str = name


# --- Environment ------------------------------------------------------------

class EnvironmentError(WayBootError):
    """Raised when the runtime environment cannot be prepared.

    Examples: the local artifact cache directory cannot be created, or
    the digest algorithm is unavailable.
    """


# --- Artifacts --------------------------------------------------------------

class FetchFailedError(WayBootError):
    """Raised when an artifact cannot be retrieved from its remote location."""

    def __init__(self, artifact: Artifact, uri: str, reason: str) -> None:
        super().__init__(
            f"Failed to download: {uri}: {reason}",
            hint="Check your network connection or the --repo-remote value.",
        )
        self.artifact: Artifact = artifact
        self.uri: str = uri


class ChecksumFailedError(WayBootError):
    """Raised when a local artifact file cannot be read for hashing."""


class IntegrityError(WayBootError):
    """Raised when a local artifact does not hash to its expected digest.

    The offending file is left in place for inspection.
    """

    def __init__(self, artifact: Artifact, actual: str) -> None:
        super().__init__(
            f"Checksum mismatch for {artifact.coordinates}: "
            f"expected {artifact.sha1}, got {actual}",
            hint="Inspect or remove the cached file and run again.",
        )
        self.artifact: Artifact = artifact
        self.actual: str = actual


# --- Dispatch ---------------------------------------------------------------

class DispatchError(WayBootError):
    """Raised when the stage entry point cannot be created or started."""

    def __init__(self, phase: str, message: str) -> None:
        super().__init__(message)
        self.phase: str = phase
