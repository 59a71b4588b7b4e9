"""Stage dispatch: the seam between the launcher and the application.

Each stage maps to one concrete entry point class from a closed table;
nothing is loaded by name at runtime.  ``dev`` and ``test`` also put the
locally compiled class output on the entry point's module path so that
uncommitted code is picked up.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from way_boot.core.models import Stage
from way_boot.core.protocols import EntryPoint
from way_boot.exceptions import DispatchError, WayBootError


@dataclass(frozen=True, slots=True)
class StageTarget:
    """What a stage launches and where its code comes from."""

    entry_point: type[EntryPoint]
    """Class constructed with the configuration map."""

    uses_class_output: bool
    """Whether ``--class-output`` is added to the module path."""


def default_targets() -> dict[Stage, StageTarget]:
    """Return the built-in stage table."""
    from way_boot.start.dev import StartDev
    from way_boot.start.prod import StartProd
    from way_boot.start.testing import StartTest

    return {
        Stage.DEV: StageTarget(StartDev, uses_class_output=True),
        Stage.PROD: StageTarget(StartProd, uses_class_output=False),
        Stage.TEST: StageTarget(StartTest, uses_class_output=True),
    }


def module_path(
    target: StageTarget,
    repo_boot: Path,
    class_output: Path | None,
) -> tuple[Path, ...]:
    """Return the directories the entry point resolves its code from."""
    if target.uses_class_output and class_output is not None:
        return (repo_boot, class_output)
    return (repo_boot,)


def dispatch(
    target: StageTarget,
    config: Mapping[str, Any],
    args: Sequence[str],
) -> EntryPoint:
    """Construct the entry point with *config* and start it with *args*.

    Raises
    ------
    DispatchError
        When construction or start fails; ``phase`` names which one.
    """
    name = target.entry_point.__name__

    try:
        instance = target.entry_point(config)
    except Exception as exc:
        raise DispatchError(
            "construct", f"Failed to create the {name} entry point: {exc}",
        ) from exc

    try:
        instance.start(list(args))
    except WayBootError:
        raise
    except Exception as exc:
        raise DispatchError(
            "start", f"Failed to invoke {name}.start: {exc}",
        ) from exc

    return instance
