"""Command-line option registry and the launcher's option schema.

Options are declared in a fixed order; that order is significant twice:

* the resolved configuration is logged in declaration order, and
* defaults may read options declared *earlier* (``--workdir`` defaults
  relative to ``--basedir``), so a dependent option must always be
  declared after the options it reads.  There is no cycle detection.

Parsing happens in two phases.  :meth:`OptionRegistry.parse_next`
coerces raw command-line values to their typed form, one token at a
time.  :meth:`OptionRegistry.finalize` then runs each option's resolver,
which applies its default and validates it.  Resolvers run only after
every raw value is known, so a rule such as "``--class-output`` is not
allowed with ``--stage prod``" sees the final stage.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from way_boot.exceptions import InvalidValueError, MissingValueError


class OptionKind(Enum):
    """Value type of an option."""

    DURATION = "duration"
    INTEGER = "integer"
    PATH = "path"
    STRING = "string"


class OptionSource(str, Enum):
    """Where an option's value came from."""

    DEFAULT = "DEF"
    COMMAND_LINE = "CLI"


_ADAPTERS: dict[OptionKind, TypeAdapter[Any]] = {
    OptionKind.DURATION: TypeAdapter(timedelta),
    OptionKind.INTEGER: TypeAdapter(int),
    OptionKind.PATH: TypeAdapter(Path),
    OptionKind.STRING: TypeAdapter(str),
}

Resolver = Callable[["Option"], None]
"""Applies an option's default and validates its final value."""


# ---------------------------------------------------------------------------
# Option
# ---------------------------------------------------------------------------

class Option:
    """A single named, typed setting.

    Options compare and hash by name only.  The typed accessors
    (:meth:`duration`, :meth:`integer`, :meth:`path`, :meth:`string`)
    raise :class:`TypeError` when used on an option of another kind.
    """

    __slots__ = ("kind", "name", "resolver", "source", "value")

    def __init__(self, kind: OptionKind, name: str, resolver: Resolver | None = None) -> None:
        self.kind: OptionKind = kind
        self.name: str = name
        self.resolver: Resolver | None = resolver
        self.source: OptionSource | None = None
        self.value: Any = None

    def __eq__(self, other: object) -> bool:
        return other is self or (isinstance(other, Option) and other.name == self.name)

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Option({self.kind.name}, {self.name!r}, value={self.value!r})"

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, raw_value: str, source: OptionSource = OptionSource.COMMAND_LINE) -> None:
        """Coerce *raw_value* to this option's kind and store it."""
        try:
            self.value = _ADAPTERS[self.kind].validate_python(raw_value)
        except PydanticValidationError as exc:
            raise InvalidValueError(
                self.name,
                f"{self.name}: invalid {self.kind.value} value {raw_value!r}",
                hint=_KIND_HINTS[self.kind],
            ) from exc
        self.source = source

    def resolve(self) -> None:
        """Apply the default and validate; unset options end up as ``DEF``."""
        if self.resolver is not None:
            self.resolver(self)
        if self.source is None:
            self.source = OptionSource.DEFAULT

    # ------------------------------------------------------------------
    # Defaults and validation helpers (used by resolvers)
    # ------------------------------------------------------------------

    @property
    def is_set(self) -> bool:
        return self.value is not None

    def set_default(self, value: Any) -> None:
        self.source = OptionSource.DEFAULT
        self.value = value

    def try_default(self, value: Any) -> bool:
        """Set *value* as the default when unset; return whether it was applied."""
        if self.value is None:
            self.set_default(value)
            return True
        return False

    def allowed_values(self, *allowed: Any) -> None:
        if self.value in allowed:
            return
        values = ", ".join(str(v) for v in allowed)
        raise InvalidValueError(
            self.name,
            f"{self.name} allowed values: {values}",
        )

    # ------------------------------------------------------------------
    # Typed access
    # ------------------------------------------------------------------

    def duration(self) -> timedelta:
        return self._value(OptionKind.DURATION)

    def integer(self) -> int:
        return self._value(OptionKind.INTEGER)

    def path(self) -> Path:
        return self._value(OptionKind.PATH)

    def string(self) -> str:
        return self._value(OptionKind.STRING)

    def _value(self, expected: OptionKind) -> Any:
        if self.kind is not expected:
            raise TypeError(
                f"Operation is only allowed for kind={expected.name} "
                f"but kind={self.kind.name}"
            )
        return self.value

    def display_value(self) -> str:
        """Render the value for the configuration log."""
        if self.value is None:
            return "<unset>"
        if self.kind is OptionKind.DURATION:
            return str(_ADAPTERS[OptionKind.DURATION].dump_python(self.value, mode="json"))
        return str(self.value)


_KIND_HINTS: dict[OptionKind, str] = {
    OptionKind.DURATION: "Durations use ISO-8601 syntax, e.g. PT10S or PT1M.",
    OptionKind.INTEGER: "Expected a whole number.",
    OptionKind.PATH: "Expected a filesystem path.",
    OptionKind.STRING: "Expected a text value.",
}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class OptionRegistry:
    """Ordered set of declared options plus the arguments they did not claim.

    Unrecognized tokens are not errors: they are collected, in order, and
    forwarded verbatim to the application entry point, which may define
    flags of its own.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, Option] = {}
        self._forwarded: list[str] = []
        self._max_length: int = 0

    def declare(self, kind: OptionKind, name: str, resolver: Resolver | None = None) -> Option:
        """Register a new option; a duplicate *name* is a programming error."""
        if name in self._by_name:
            raise ValueError(f"Duplicate option name: {name}")
        option = Option(kind, name, resolver)
        self._by_name[name] = option
        self._max_length = max(self._max_length, len(name))
        return option

    def __getitem__(self, name: str) -> Option:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Option]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    @property
    def forwarded_args(self) -> list[str]:
        return list(self._forwarded)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_next(self, args: Sequence[str], cursor: int) -> int:
        """Consume the token at *cursor* (and its value); return the new cursor.

        Raises
        ------
        MissingValueError
            When a declared name is the last token.
        InvalidValueError
            When the value cannot be coerced to the option's kind.
        """
        arg = args[cursor]
        cursor += 1

        option = self._by_name.get(arg)
        if option is None:
            self._forwarded.append(arg)
            return cursor

        if cursor == len(args):
            raise MissingValueError(arg)

        option.parse(args[cursor])
        return cursor + 1

    def parse(self, args: Sequence[str]) -> None:
        cursor = 0
        while cursor < len(args):
            cursor = self.parse_next(args, cursor)

    def finalize(self) -> None:
        """Run every resolver in declaration order."""
        for option in self._by_name.values():
            option.resolve()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def log_table(self) -> list[str]:
        """Return one ``(SRC) name value`` line per option, names aligned."""
        width = self._max_length
        lines: list[str] = []
        for option in self._by_name.values():
            source = option.source.value if option.source is not None else "---"
            lines.append(f"({source:>3}) {option.name:<{width}} {option.display_value()}")
        return lines

    def as_map(self) -> dict[str, Any]:
        return {name: option.value for name, option in self._by_name.items()}


# ---------------------------------------------------------------------------
# Launcher schema
# ---------------------------------------------------------------------------

STAGE = "--stage"
BASEDIR = "--basedir"
BUFFER_SIZE = "--buffer-size"
CLASS_OUTPUT = "--class-output"
HTTP_CONNECT_TIMEOUT = "--http-connect-timeout"
HTTP_REQUEST_TIMEOUT = "--http-request-timeout"
WORKDIR = "--workdir"
REPO_BOOT = "--repo-boot"
REPO_REMOTE = "--repo-remote"
PORT = "--port"
PROJECT_FILE = "--project-file"

DEFAULT_REPO_REMOTE = "https://repo.maven.apache.org/maven2/"
MAX_BUFFER_SIZE = 64 * 1024 * 1024


def build_registry(cwd: Path | None = None) -> OptionRegistry:
    """Declare the launcher options.  Order is significant: see module docs.

    Parameters
    ----------
    cwd:
        Directory used for the ``--basedir`` default.  ``None`` means the
        process working directory.
    """
    registry = OptionRegistry()

    def _stage(opt: Option) -> None:
        if not opt.try_default("prod"):
            opt.allowed_values("dev", "prod", "test")

    stage = registry.declare(OptionKind.STRING, STAGE, _stage)

    def _basedir(opt: Option) -> None:
        if not opt.is_set:
            base = cwd if cwd is not None else Path.cwd()
            opt.set_default(base.absolute())

    basedir = registry.declare(OptionKind.PATH, BASEDIR, _basedir)

    def _buffer_size(opt: Option) -> None:
        if opt.try_default(16 * 1024):
            return
        if opt.integer() <= 0:
            raise InvalidValueError(
                opt.name,
                f"{opt.name} must be a positive number of bytes, but was: {opt.value}",
            )
        if opt.integer() > MAX_BUFFER_SIZE:
            raise InvalidValueError(
                opt.name,
                f"{opt.name} must be at most {MAX_BUFFER_SIZE} bytes, but was: {opt.value}",
            )

    registry.declare(OptionKind.INTEGER, BUFFER_SIZE, _buffer_size)

    def _class_output(opt: Option) -> None:
        if opt.is_set and stage.string() == "prod":
            raise InvalidValueError(
                opt.name,
                "--class-output must not be set with --stage prod",
                hint="Use --stage dev or --stage test to run locally compiled classes.",
            )

    registry.declare(OptionKind.PATH, CLASS_OUTPUT, _class_output)

    registry.declare(
        OptionKind.DURATION,
        HTTP_CONNECT_TIMEOUT,
        lambda opt: opt.try_default(timedelta(seconds=10)),
    )
    registry.declare(
        OptionKind.DURATION,
        HTTP_REQUEST_TIMEOUT,
        lambda opt: opt.try_default(timedelta(minutes=1)),
    )

    workdir = registry.declare(
        OptionKind.PATH,
        WORKDIR,
        lambda opt: opt.try_default(basedir.path() / ".objectos"),
    )
    registry.declare(
        OptionKind.PATH,
        REPO_BOOT,
        lambda opt: opt.try_default(workdir.path() / "boot"),
    )

    def _repo_remote(opt: Option) -> None:
        if opt.try_default(DEFAULT_REPO_REMOTE):
            return
        value = opt.string()
        if not value:
            raise InvalidValueError(opt.name, "--repo-remote must not be empty")
        if value.isspace():
            raise InvalidValueError(opt.name, "--repo-remote must not be blank")
        if not value.endswith("/"):
            raise InvalidValueError(
                opt.name,
                f"--repo-remote path must end in a '/' character, but was: {value}",
                hint=f"Try: --repo-remote {value}/",
            )

    registry.declare(OptionKind.STRING, REPO_REMOTE, _repo_remote)

    def _port(opt: Option) -> None:
        if not opt.try_default(4000) and not 0 <= opt.integer() <= 65535:
            raise InvalidValueError(
                opt.name, f"--port must be between 0 and 65535, but was: {opt.value}",
            )

    registry.declare(OptionKind.INTEGER, PORT, _port)

    registry.declare(
        OptionKind.PATH,
        PROJECT_FILE,
        lambda opt: opt.try_default(workdir.path() / "project.toml"),
    )

    return registry
