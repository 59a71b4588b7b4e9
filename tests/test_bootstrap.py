"""Tests for the bootstrap state machine.

Every test runs against a local Maven-layout mirror under ``tmp_path``;
no network access is required.

Coverage:
* Step-wise driving and intermediate log assertions.
* End-to-end fetch, verify and hand-off.
* Idempotence across runs (no second fetch).
* Digest mismatch for cached and freshly fetched files.
* Fatal configuration, environment and fetch failures.
* Argument forwarding and the configuration map.
"""

from __future__ import annotations

import hashlib
from datetime import timedelta
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from way_boot.bootstrap import Bootstrap, State
from way_boot.core.dispatcher import StageTarget
from way_boot.core.models import Artifact, Stage
from way_boot.exceptions import (
    EnvironmentError,
    FetchFailedError,
    IntegrityError,
    InvalidValueError,
    MissingValueError,
)
from way_boot.infra.fetcher import ArtifactFetcher
from way_boot.infra.log import BootLog

from conftest import LocalRepo, RecordingEntryPoint


class CountingFetcher:
    """Wraps the real fetcher and counts fetches."""

    calls: list[Artifact] = []

    def __init__(self, connect: timedelta, request: timedelta) -> None:
        self._inner = ArtifactFetcher(connect, request)

    def fetch(self, artifact: Artifact, uri: str, target: Path) -> None:
        CountingFetcher.calls.append(artifact)
        self._inner.fetch(artifact, uri, target)

    def close(self) -> None:
        self._inner.close()


@pytest.fixture(autouse=True)
def _reset_counter() -> None:
    CountingFetcher.calls = []


@pytest.fixture()
def make_bootstrap(
    tmp_path: Path,
    log_lines: list[str],
    clock: Any,
    local_repo: LocalRepo,
    recording_targets: dict[Stage, StageTarget],
) -> Any:
    def factory(**overrides: Any) -> Bootstrap:
        kwargs: dict[str, Any] = {
            "sink": log_lines.append,
            "clock": clock,
            "manifest": lambda stage: [local_repo.artifact],
            "targets": recording_targets,
            "fetcher_factory": CountingFetcher,
            "cwd": tmp_path / "project",
        }
        kwargs.update(overrides)
        return Bootstrap(**kwargs)

    return factory


def _log_containing(lines: list[str], substring: str) -> str:
    for line in lines:
        if substring in line:
            return line
    raise AssertionError(f"No log line contains {substring!r}")


def _cache(tmp_path: Path) -> Path:
    return tmp_path / "project" / ".objectos" / "boot"


# ---------------------------------------------------------------------------
# Step-wise driving
# ---------------------------------------------------------------------------

class TestStepping:
    def test_options_then_init_logs_cli_value(
        self, make_bootstrap: Any, log_lines: list[str],
    ) -> None:
        boot = make_bootstrap()
        boot.args = ["--repo-remote", "work/test-repo/"]

        assert boot.execute(State.OPTIONS, State.BOOT_DEPS) is State.BOOT_DEPS

        line = _log_containing(log_lines, "(CLI) --repo-remote")
        assert line.endswith("work/test-repo/")

    def test_parse_consumes_one_pair_per_step(self, make_bootstrap: Any) -> None:
        boot = make_bootstrap()
        boot.args = ["--stage", "dev", "extra", "--port", "80"]

        boot.execute(State.OPTIONS, State.OPTIONS_PARSE)
        assert boot.cursor == 0

        assert boot.step() is State.OPTIONS_PARSE
        assert boot.cursor == 2
        assert boot.step() is State.OPTIONS_PARSE
        assert boot.cursor == 3
        assert boot.step() is State.OPTIONS_PARSE
        assert boot.cursor == 5
        assert boot.step() is State.INIT

    def test_no_io_before_init_try(self, make_bootstrap: Any, tmp_path: Path) -> None:
        boot = make_bootstrap()
        boot.execute(State.OPTIONS, State.INIT_TRY)
        assert not _cache(tmp_path).exists()

        boot.step()
        assert _cache(tmp_path).is_dir()
        assert boot.verifier is not None
        assert boot.verifier.buffer_size == 16 * 1024

    def test_log_format(self, make_bootstrap: Any, log_lines: list[str]) -> None:
        boot = make_bootstrap()
        boot.execute(State.OPTIONS, State.INIT_TRY)
        assert log_lines[0] == "2025-01-01 10:00:00.123 INFO  (boot) way-boot v0.1.0"
        assert log_lines[1].startswith("2025-01-01 10:00:00.123 INFO  (options) (DEF) --stage")

    def test_iterates_manifest(
        self, make_bootstrap: Any, local_repo: LocalRepo,
    ) -> None:
        boot = make_bootstrap()
        boot.args = ["--repo-remote", local_repo.remote]
        boot.execute(State.OPTIONS, State.BOOT_DEPS_HAS_NEXT)

        assert boot.manifest == [local_repo.artifact]
        assert boot.step() is State.BOOT_DEPS_EXISTS
        assert boot.current is local_repo.artifact
        assert boot.step() is State.BOOT_DEPS_FETCH
        assert boot.step() is State.BOOT_DEPS_CHECKSUM
        assert boot.step() is State.BOOT_DEPS_HAS_NEXT
        assert boot.step() is State.LAYER
        assert boot.current is None

    def test_empty_manifest_goes_straight_to_layer(self, make_bootstrap: Any) -> None:
        boot = make_bootstrap(manifest=lambda stage: [])
        boot.execute(State.OPTIONS, State.BOOT_DEPS_HAS_NEXT)
        assert boot.step() is State.LAYER

    def test_unknown_state(self, make_bootstrap: Any) -> None:
        boot = make_bootstrap()
        boot.state = State.RUNNING
        with pytest.raises(AssertionError, match="Unexpected state"):
            boot.step()

    def test_dependency_step_without_current_artifact(self, make_bootstrap: Any) -> None:
        boot = make_bootstrap()
        boot.execute(State.OPTIONS, State.BOOT_DEPS)
        boot.state = State.BOOT_DEPS_EXISTS
        with pytest.raises(AssertionError, match="No current artifact"):
            boot.step()

    def test_checksum_step_without_verifier(
        self, make_bootstrap: Any, local_repo: LocalRepo,
    ) -> None:
        boot = make_bootstrap()
        boot.execute(State.OPTIONS, State.INIT_TRY)
        boot.current = local_repo.artifact
        boot.state = State.BOOT_DEPS_CHECKSUM
        with pytest.raises(AssertionError, match="verifier"):
            boot.step()


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_fresh_cache(
        self,
        make_bootstrap: Any,
        local_repo: LocalRepo,
        tmp_path: Path,
        log_lines: list[str],
    ) -> None:
        boot = make_bootstrap()
        entry = boot.start(["--repo-remote", local_repo.remote])

        cached = _cache(tmp_path) / f"{local_repo.artifact.sha1}.jar"
        assert boot.state is State.RUNNING
        assert cached.read_bytes() == local_repo.content
        assert not local_repo.artifact.partial_path(_cache(tmp_path)).exists()
        assert isinstance(entry, RecordingEntryPoint)
        assert CountingFetcher.calls == [local_repo.artifact]

        _log_containing(log_lines, f"DEP {local_repo.artifact.remote_uri(local_repo.remote)}")
        _log_containing(log_lines, f"CHK {cached}")

    def test_fresh_cache_over_http(
        self,
        make_bootstrap: Any,
        local_repo: LocalRepo,
        tmp_path: Path,
        log_lines: list[str],
    ) -> None:
        remote = "https://repo.example.test/maven2/"
        wanted = local_repo.artifact.remote_uri(remote)
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            if str(request.url) == wanted:
                return httpx.Response(200, content=local_repo.content)
            return httpx.Response(404)

        def http_fetcher(connect: timedelta, request: timedelta) -> ArtifactFetcher:
            client = httpx.Client(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
            return ArtifactFetcher(connect, request, client=client)

        boot = make_bootstrap(fetcher_factory=http_fetcher)
        entry = boot.start(["--repo-remote", remote, "extra"])

        cached = _cache(tmp_path) / f"{local_repo.artifact.sha1}.jar"
        assert boot.state is State.RUNNING
        assert requested == [wanted]
        assert cached.read_bytes() == local_repo.content
        assert not local_repo.artifact.partial_path(_cache(tmp_path)).exists()
        assert entry.args == ["extra"]

        _log_containing(log_lines, f"DEP {wanted} -> {cached}")
        _log_containing(log_lines, f"CHK {cached}")

    def test_second_run_does_not_fetch(
        self, make_bootstrap: Any, local_repo: LocalRepo,
    ) -> None:
        args = ["--repo-remote", local_repo.remote]
        make_bootstrap().start(args)
        assert len(CountingFetcher.calls) == 1

        second = make_bootstrap()
        second.start(args)
        assert len(CountingFetcher.calls) == 1
        assert second.fetched == []
        assert second.state is State.RUNNING

    def test_manifest_receives_resolved_stage(
        self, make_bootstrap: Any, local_repo: LocalRepo,
    ) -> None:
        stages: list[Stage] = []

        def manifest(stage: Stage) -> list[Artifact]:
            stages.append(stage)
            return [local_repo.artifact]

        make_bootstrap(manifest=manifest).start(
            ["--stage", "dev", "--repo-remote", local_repo.remote],
        )
        assert stages == [Stage.DEV]


# ---------------------------------------------------------------------------
# Hand-off
# ---------------------------------------------------------------------------

class TestHandOff:
    def test_forwarded_arguments(
        self, make_bootstrap: Any, local_repo: LocalRepo,
    ) -> None:
        entry = make_bootstrap().start(
            ["--port", "4000", "extra-flag", "value", "--repo-remote", local_repo.remote],
        )
        assert entry.args == ["extra-flag", "value"]
        assert entry.config["--port"] == 4000

    def test_configuration_map(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
    ) -> None:
        boot = make_bootstrap()
        entry = boot.start(["--repo-remote", local_repo.remote])

        assert entry.config["--stage"] == "prod"
        assert entry.config["--repo-boot"] == _cache(tmp_path)
        assert isinstance(entry.config["logger"], BootLog)
        assert entry.config["logger"] is boot.log
        assert entry.config["module-path"] == (_cache(tmp_path),)

    def test_dev_module_path_includes_class_output(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
    ) -> None:
        classes = tmp_path / "work" / "main"
        entry = make_bootstrap().start([
            "--stage", "dev",
            "--class-output", str(classes),
            "--repo-remote", local_repo.remote,
        ])
        assert entry.config["module-path"] == (_cache(tmp_path), classes)


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------

class TestIntegrity:
    def test_cached_mismatch_reaches_error(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
        log_lines: list[str],
    ) -> None:
        cache = _cache(tmp_path)
        cache.mkdir(parents=True)
        cached = local_repo.artifact.local_path(cache)
        cached.write_bytes(b"tampered")

        boot = make_bootstrap()
        boot.args = ["--repo-remote", local_repo.remote]

        assert boot.execute(State.OPTIONS, State.RUNNING) is State.ERROR
        assert boot.entry_point is None
        assert CountingFetcher.calls == []
        assert cached.read_bytes() == b"tampered"

        line = _log_containing(log_lines, "Checksum mismatch")
        assert " ERROR " in line
        assert hashlib.sha1(b"tampered").hexdigest() in line

    def test_start_raises_on_mismatch(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
    ) -> None:
        cache = _cache(tmp_path)
        cache.mkdir(parents=True)
        local_repo.artifact.local_path(cache).write_bytes(b"tampered")

        with pytest.raises(IntegrityError) as exc_info:
            make_bootstrap().start(["--repo-remote", local_repo.remote])
        assert exc_info.value.artifact == local_repo.artifact
        assert exc_info.value.actual == hashlib.sha1(b"tampered").hexdigest()

    def test_fetched_mismatch_is_never_promoted(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
    ) -> None:
        wrong = Artifact("g", "a", "1.0", "0" * 40)
        boot = make_bootstrap(manifest=lambda stage: [wrong])
        boot.args = ["--repo-remote", local_repo.remote]

        assert boot.execute(State.OPTIONS, State.RUNNING) is State.ERROR
        assert not wrong.exists(_cache(tmp_path))
        assert wrong.partial_path(_cache(tmp_path)).read_bytes() == local_repo.content

    def test_leftover_partial_is_refetched(
        self, make_bootstrap: Any, local_repo: LocalRepo, tmp_path: Path,
    ) -> None:
        cache = _cache(tmp_path)
        cache.mkdir(parents=True)
        local_repo.artifact.partial_path(cache).write_bytes(b"half a jar")

        make_bootstrap().start(["--repo-remote", local_repo.remote])

        assert CountingFetcher.calls == [local_repo.artifact]
        assert local_repo.artifact.local_path(cache).read_bytes() == local_repo.content


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------

class TestFatalErrors:
    def test_invalid_repo_remote_aborts_before_io(
        self, make_bootstrap: Any, tmp_path: Path,
    ) -> None:
        with pytest.raises(InvalidValueError):
            make_bootstrap().start(["--repo-remote", "http://example.com/repo"])
        assert not _cache(tmp_path).exists()

    def test_class_output_in_prod(self, make_bootstrap: Any) -> None:
        with pytest.raises(InvalidValueError, match="--stage prod"):
            make_bootstrap().start(["--stage", "prod", "--class-output", "/tmp/x"])

    def test_missing_value(self, make_bootstrap: Any) -> None:
        with pytest.raises(MissingValueError):
            make_bootstrap().start(["--repo-boot"])

    def test_cache_directory_blocked_by_file(
        self, make_bootstrap: Any, tmp_path: Path,
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(EnvironmentError, match="local repository directory"):
            make_bootstrap().start(["--repo-boot", str(blocker / "boot")])

    def test_fetch_failure_halts(
        self, make_bootstrap: Any, tmp_path: Path,
    ) -> None:
        empty = tmp_path / "empty-repo"
        empty.mkdir()
        boot = make_bootstrap()
        with pytest.raises(FetchFailedError):
            boot.start(["--repo-remote", f"{empty}/"])
        assert boot.entry_point is None

    def test_buffer_size_too_large_aborts_before_io(
        self, make_bootstrap: Any, tmp_path: Path,
    ) -> None:
        boot = make_bootstrap()
        boot.args = ["--buffer-size", "1000000000000000"]
        with pytest.raises(InvalidValueError, match="--buffer-size"):
            boot.execute(State.OPTIONS, State.INIT_TRY)
        assert boot.verifier is None
        assert not _cache(tmp_path).exists()

    def test_buffer_allocation_failure_is_environment_error(
        self, make_bootstrap: Any, tmp_path: Path,
    ) -> None:
        boot = make_bootstrap()
        boot.execute(State.OPTIONS, State.INIT_TRY)
        with patch("way_boot.infra.digest.bytearray", create=True, side_effect=MemoryError):
            with pytest.raises(EnvironmentError, match="I/O buffer"):
                boot.step()
        assert not _cache(tmp_path).exists()
