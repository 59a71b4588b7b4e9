"""The bootstrap state machine.

Sequence::

    OPTIONS -> OPTIONS_PARSE (one token per step) -> INIT -> INIT_TRY
      -> BOOT_DEPS -> BOOT_DEPS_HAS_NEXT
           -> BOOT_DEPS_EXISTS -> [BOOT_DEPS_FETCH] -> BOOT_DEPS_CHECKSUM
           -> back to BOOT_DEPS_HAS_NEXT
      -> LAYER -> RUNNING

Every state method returns the next state.  :meth:`Bootstrap.execute`
drives the machine between two states, so a test can stop after any
step and inspect the log or the cache directory.  A checksum mismatch
moves to ``ERROR`` instead of raising, so that step-wise callers can
observe it; every other fatal condition raises a
:class:`~way_boot.exceptions.WayBootError`.

Downloads land in ``<sha1>.jar.part`` and are moved onto ``<sha1>.jar``
only after their digest matches, so the cache never holds unverified
bytes under the final name.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from datetime import timedelta
from enum import IntEnum
from pathlib import Path

from way_boot.core.dispatcher import StageTarget, default_targets, dispatch, module_path
from way_boot.core.manifest import build_manifest
from way_boot.core.models import Artifact, Stage
from way_boot.core.options import (
    BUFFER_SIZE,
    CLASS_OUTPUT,
    HTTP_CONNECT_TIMEOUT,
    HTTP_REQUEST_TIMEOUT,
    REPO_BOOT,
    REPO_REMOTE,
    STAGE,
    OptionRegistry,
    build_registry,
)
from way_boot.core.protocols import EntryPoint, Fetcher, LogSink
from way_boot.exceptions import EnvironmentError, IntegrityError, WayBootError
from way_boot.infra.digest import DigestVerifier
from way_boot.infra.fetcher import ArtifactFetcher
from way_boot.infra.filesystem import ensure_directory
from way_boot.infra.log import BootLog, Clock
from way_boot.version import __version__

FetcherFactory = Callable[[timedelta, timedelta], Fetcher]
ManifestFactory = Callable[[Stage], Sequence[Artifact]]


class State(IntEnum):
    """Bootstrap states in execution order; ``ERROR`` sorts last."""

    OPTIONS = 0
    OPTIONS_PARSE = 1
    INIT = 2
    INIT_TRY = 3
    BOOT_DEPS = 4
    BOOT_DEPS_HAS_NEXT = 5
    BOOT_DEPS_EXISTS = 6
    BOOT_DEPS_FETCH = 7
    BOOT_DEPS_CHECKSUM = 8
    LAYER = 9
    RUNNING = 10
    ERROR = 11


class Bootstrap:
    """Fetches, verifies and launches.  One instance per process run.

    Parameters
    ----------
    sink:
        Log line receiver; defaults to the console.
    clock:
        Timestamp source for log lines; defaults to local time.
    manifest:
        Returns the artifacts required for a stage.
    targets:
        Stage table used by ``LAYER``; defaults to the built-in entry points.
    fetcher_factory:
        Builds the fetcher from the connect and request timeouts.
    cwd:
        Directory the ``--basedir`` default is taken from.
    """

    def __init__(
        self,
        *,
        sink: LogSink | None = None,
        clock: Clock | None = None,
        manifest: ManifestFactory = build_manifest,
        targets: dict[Stage, StageTarget] | None = None,
        fetcher_factory: FetcherFactory = ArtifactFetcher,
        cwd: Path | None = None,
    ) -> None:
        self.sink = sink
        self.clock = clock
        self._manifest_factory = manifest
        self._targets = targets
        self._fetcher_factory = fetcher_factory
        self._cwd = cwd

        self.state: State = State.OPTIONS
        self.log: BootLog | None = None
        self.options: OptionRegistry | None = None
        self.verifier: DigestVerifier | None = None
        self._fetcher: Fetcher | None = None

        # OPTIONS phase
        self.args: list[str] = []
        self.cursor: int = 0

        # BOOT_DEPS phase
        self.manifest: list[Artifact] = []
        self.index: int = 0
        self.current: Artifact | None = None
        self.fetched: list[Artifact] = []
        self.mismatch: IntegrityError | None = None

        # LAYER phase
        self.entry_point: EntryPoint | None = None

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def start(self, args: Sequence[str]) -> EntryPoint:
        """Run the whole bootstrap and return the live entry point.

        Raises
        ------
        WayBootError
            On any fatal condition; :class:`IntegrityError` on a digest
            mismatch.
        """
        self.args = list(args)
        try:
            self.execute(State.OPTIONS, State.RUNNING)
        finally:
            self.close()

        if self.state is State.ERROR:
            if self.mismatch is None:
                raise AssertionError("Reached ERROR without a recorded mismatch")
            raise self.mismatch

        if self.entry_point is None:
            raise AssertionError("Reached RUNNING without an entry point")
        return self.entry_point

    def execute(self, from_: State, to: State) -> State:
        """Run states starting at *from_* until reaching *to* or ``ERROR``."""
        self.state = from_
        while self.state < to:
            self.step()
        return self.state

    def step(self) -> State:
        handler = self._handlers.get(self.state)
        if handler is None:
            raise AssertionError(f"Unexpected state={self.state.name}")
        self.state = handler(self)
        return self.state

    def close(self) -> None:
        """Release the fetcher's network resources."""
        if self._fetcher is not None:
            self._fetcher.close()
            self._fetcher = None

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def _options(self) -> State:
        self.options = build_registry(self._cwd)
        self.cursor = 0
        return State.OPTIONS_PARSE

    def _options_parse(self) -> State:
        if self.cursor == len(self.args):
            return State.INIT
        self.cursor = self._registry.parse_next(self.args, self.cursor)
        return State.OPTIONS_PARSE

    # ------------------------------------------------------------------
    # Init
    # ------------------------------------------------------------------

    def _init(self) -> State:
        self._registry.finalize()

        if self.log is None:
            self.log = BootLog(self.sink, self.clock)

        self.log.info("boot", f"way-boot v{__version__}")
        for line in self._registry.log_table():
            self.log.info("options", line)

        return State.INIT_TRY

    def _init_try(self) -> State:
        self.verifier = DigestVerifier(self._registry[BUFFER_SIZE].integer())
        ensure_directory(self._repo_boot)
        return State.BOOT_DEPS

    # ------------------------------------------------------------------
    # Boot dependencies
    # ------------------------------------------------------------------

    def _boot_deps(self) -> State:
        self.manifest = list(self._manifest_factory(self._stage))
        self.index = 0
        self.current = None
        return State.BOOT_DEPS_HAS_NEXT

    def _boot_deps_has_next(self) -> State:
        if self.index < len(self.manifest):
            self.current = self.manifest[self.index]
            self.index += 1
            return State.BOOT_DEPS_EXISTS
        self.current = None
        return State.LAYER

    def _boot_deps_exists(self) -> State:
        if self._artifact.exists(self._repo_boot):
            return State.BOOT_DEPS_CHECKSUM
        return State.BOOT_DEPS_FETCH

    def _boot_deps_fetch(self) -> State:
        artifact = self._artifact
        uri = artifact.remote_uri(self._registry[REPO_REMOTE].string())
        target = artifact.partial_path(self._repo_boot)

        self._logger.info("deps", f"DEP {uri} -> {artifact.local_path(self._repo_boot)}")
        self.fetcher.fetch(artifact, uri, target)
        self.fetched.append(artifact)

        return State.BOOT_DEPS_CHECKSUM

    def _boot_deps_checksum(self) -> State:
        artifact = self._artifact
        local = artifact.local_path(self._repo_boot)
        partial = artifact.partial_path(self._repo_boot)
        file = local if local.exists() else partial

        if self.verifier is None:
            raise AssertionError("Digest verifier has not been created yet")
        ok, actual = self.verifier.matches(file, artifact.sha1)

        if not ok:
            self._logger.error("deps", f"Checksum mismatch for {file}: got {actual}")
            self.mismatch = IntegrityError(artifact, actual)
            return State.ERROR

        if file == partial:
            try:
                os.replace(partial, local)
            except OSError as exc:
                raise EnvironmentError(
                    f"Failed to move verified artifact into place: {local}",
                ) from exc

        self._logger.info("deps", f"CHK {local}")
        return State.BOOT_DEPS_HAS_NEXT

    # ------------------------------------------------------------------
    # Layer
    # ------------------------------------------------------------------

    def _layer(self) -> State:
        targets = self._targets if self._targets is not None else default_targets()
        target = targets[self._stage]

        class_output = self._registry[CLASS_OUTPUT].value
        config = self._registry.as_map()
        config["logger"] = self._logger
        config["module-path"] = module_path(target, self._repo_boot, class_output)

        self._logger.info("layer", f"Starting {target.entry_point.__name__}")
        self.entry_point = dispatch(target, config, self._registry.forwarded_args)
        return State.RUNNING

    _handlers: dict[State, Callable[[Bootstrap], State]] = {
        State.OPTIONS: _options,
        State.OPTIONS_PARSE: _options_parse,
        State.INIT: _init,
        State.INIT_TRY: _init_try,
        State.BOOT_DEPS: _boot_deps,
        State.BOOT_DEPS_HAS_NEXT: _boot_deps_has_next,
        State.BOOT_DEPS_EXISTS: _boot_deps_exists,
        State.BOOT_DEPS_FETCH: _boot_deps_fetch,
        State.BOOT_DEPS_CHECKSUM: _boot_deps_checksum,
        State.LAYER: _layer,
    }

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def fetcher(self) -> Fetcher:
        """The fetcher, built on first use from the timeout options."""
        if self._fetcher is None:
            self._fetcher = self._fetcher_factory(
                self._registry[HTTP_CONNECT_TIMEOUT].duration(),
                self._registry[HTTP_REQUEST_TIMEOUT].duration(),
            )
        return self._fetcher

    @property
    def _registry(self) -> OptionRegistry:
        if self.options is None:
            raise WayBootError("Options have not been parsed yet")
        return self.options

    @property
    def _logger(self) -> BootLog:
        if self.log is None:
            raise AssertionError("Boot log has not been created yet")
        return self.log

    @property
    def _artifact(self) -> Artifact:
        if self.current is None:
            raise AssertionError(f"No current artifact in state={self.state.name}")
        return self.current

    @property
    def _repo_boot(self) -> Path:
        return self._registry[REPO_BOOT].path()

    @property
    def _stage(self) -> Stage:
        return Stage(self._registry[STAGE].string())
