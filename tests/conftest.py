"""Shared pytest fixtures and configuration for the way-boot test suite.

Guidelines
----------
* No internet access in any test: HTTP goes through ``httpx.MockTransport``
  and repositories are local directories under ``tmp_path``.
* Log output is captured through a list-backed sink with a fixed clock.
* Entry points are replaced by :class:`RecordingEntryPoint` unless a test
  exercises the built-in ones.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from way_boot.core.dispatcher import StageTarget
from way_boot.core.models import Artifact, Stage

JAR_BYTES: bytes = b"PK\x03\x04 pretend this is a jar file" * 64


class RecordingEntryPoint:
    """Entry point double that remembers what the launcher handed it."""

    def __init__(self, config: Mapping[str, Any]) -> None:
        self.config: dict[str, Any] = dict(config)
        self.args: list[str] | None = None
        self.closed: bool = False

    def start(self, args: Sequence[str]) -> None:
        self.args = list(args)

    def close(self) -> None:
        self.closed = True


@dataclass
class LocalRepo:
    """A Maven-layout directory holding one artifact."""

    root: Path
    artifact: Artifact
    content: bytes

    @property
    def remote(self) -> str:
        return f"{self.root}/"


@pytest.fixture()
def log_lines() -> list[str]:
    return []


@pytest.fixture()
def clock() -> Any:
    return lambda: datetime(2025, 1, 1, 10, 0, 0, 123456)


@pytest.fixture()
def recording_targets() -> dict[Stage, StageTarget]:
    return {
        Stage.DEV: StageTarget(RecordingEntryPoint, uses_class_output=True),
        Stage.PROD: StageTarget(RecordingEntryPoint, uses_class_output=False),
        Stage.TEST: StageTarget(RecordingEntryPoint, uses_class_output=True),
    }


@pytest.fixture()
def local_repo(tmp_path: Path) -> LocalRepo:
    """Build ``repo/g/a/1.0/a-1.0.jar`` whose SHA-1 is the artifact digest."""
    root = tmp_path / "repo"
    jar = root / "g" / "a" / "1.0" / "a-1.0.jar"
    jar.parent.mkdir(parents=True)
    jar.write_bytes(JAR_BYTES)

    artifact = Artifact("g", "a", "1.0", hashlib.sha1(JAR_BYTES).hexdigest())
    return LocalRepo(root=root, artifact=artifact, content=JAR_BYTES)
