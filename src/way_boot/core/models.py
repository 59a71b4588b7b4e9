"""Domain models for way-boot.

Artifacts are **frozen** dataclasses: immutable value objects whose only
behaviour is deriving their remote location and local cache paths.  They
are rebuilt from the hardcoded manifest on every run; nothing here is
persisted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

_SHA1_HEX = re.compile(r"[0-9a-f]{40}")


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------

class Stage(str, Enum):
    """Deployment mode selecting the entry point and its code sources."""

    DEV = "dev"
    PROD = "prod"
    TEST = "test"


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Artifact:
    """A versioned JAR identified by Maven coordinates and trusted by SHA-1.

    The local cache key is the content digest, not the coordinates: a
    coordinate change that keeps the bytes reuses the cached file, and
    any byte change lands in a new cache entry.
    """

    group_id: str
    """Maven group, dot separated (e.g. ``br.com.objectos``)."""

    artifact_id: str
    """Maven artifact name (e.g. ``objectos.way``)."""

    version: str
    """Maven version string."""

    sha1: str
    """Expected SHA-1 of the JAR bytes, lower-case hex."""

    _local: dict[Path, Path] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        normalized = self.sha1.strip().lower()
        if not _SHA1_HEX.fullmatch(normalized):
            raise ValueError(f"Not a SHA-1 hex digest: {self.sha1!r}")
        object.__setattr__(self, "sha1", normalized)

    @property
    def coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def file_name(self) -> str:
        return f"{self.artifact_id}-{self.version}.jar"

    def remote_uri(self, repo_remote: str) -> str:
        """Return the Maven-layout location of this JAR under *repo_remote*.

        *repo_remote* must end in ``/``; option validation guarantees it.
        """
        group_path = self.group_id.replace(".", "/")
        return (
            f"{repo_remote}{group_path}/{self.artifact_id}/{self.version}/"
            f"{self.file_name}"
        )

    def local_path(self, repo_boot: Path) -> Path:
        """Return ``repo_boot/<sha1>.jar``, memoized per cache directory."""
        local = self._local.get(repo_boot)
        if local is None:
            local = repo_boot / f"{self.sha1}.jar"
            self._local[repo_boot] = local
        return local

    def partial_path(self, repo_boot: Path) -> Path:
        """Return the download target used before the digest is verified."""
        local = self.local_path(repo_boot)
        return local.with_name(local.name + ".part")

    def exists(self, repo_boot: Path) -> bool:
        """Presence check only; the content is verified separately."""
        return self.local_path(repo_boot).exists()
