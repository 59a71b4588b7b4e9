"""Infrastructure layer: external system integration.

This layer wraps all interaction with the network (httpx), the local
filesystem, the digest engine and the log sink.  Every raw exception
must be caught here and re-raised as a
:class:`~way_boot.exceptions.WayBootError` subclass.

Rules
-----
* No imports from ``cli`` at module level.
* No user-facing output apart from the log sink.
* Must expose clean, typed interfaces consumed by the bootstrap.
"""

from way_boot.infra.digest import DigestVerifier
from way_boot.infra.fetcher import ArtifactFetcher, local_source
from way_boot.infra.filesystem import ensure_directory
from way_boot.infra.log import BootLog, console_sink

__all__: list[str] = [
    "ArtifactFetcher",
    "BootLog",
    "DigestVerifier",
    "console_sink",
    "ensure_directory",
    "local_source",
]
