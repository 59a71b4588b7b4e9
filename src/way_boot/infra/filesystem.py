"""Infrastructure: local artifact cache directory management."""

from __future__ import annotations

from pathlib import Path

from way_boot.exceptions import EnvironmentError


def ensure_directory(directory: Path) -> None:
    """Create *directory* and any missing parents; an existing one is fine.

    Raises
    ------
    EnvironmentError
        When the directory cannot be created (or a file is in the way).
    """
    if directory.is_dir():
        return
    try:
        directory.parent.mkdir(parents=True, exist_ok=True)
        directory.mkdir(exist_ok=True)
    except OSError as exc:
        raise EnvironmentError(
            f"Failed to create local repository directory: {directory}",
            hint="Check permissions or pass a different --repo-boot.",
        ) from exc
