"""Core layer: option rules, artifact model, manifest and stage dispatch.

Rules
-----
* No network I/O and no user-facing output.
* No imports from ``cli``, ``infra`` or ``bootstrap``.
* Collaborators are reached through :mod:`way_boot.core.protocols`.
"""

from way_boot.core.dispatcher import StageTarget, default_targets, dispatch, module_path
from way_boot.core.manifest import build_manifest
from way_boot.core.models import Artifact, Stage
from way_boot.core.options import (
    Option,
    OptionKind,
    OptionRegistry,
    OptionSource,
    build_registry,
)
from way_boot.core.protocols import EntryPoint, Fetcher, LogSink

__all__: list[str] = [
    "Artifact",
    "EntryPoint",
    "Fetcher",
    "LogSink",
    "Option",
    "OptionKind",
    "OptionRegistry",
    "OptionSource",
    "Stage",
    "StageTarget",
    "build_manifest",
    "build_registry",
    "default_targets",
    "dispatch",
    "module_path",
]
