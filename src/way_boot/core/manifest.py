"""The fixed set of artifacts the launcher needs for each stage.

Versions and digests are stamped at release time; the launcher never
resolves version ranges or transitive dependencies.
"""

from __future__ import annotations

from way_boot.core.models import Artifact, Stage

GROUP_ID: str = "br.com.objectos"

WAY_VERSION: str = "0.2.6-SNAPSHOT"
WAY_SHA1: str = "733728007861811ee00cb5da51b7e898749845cb"

START_VERSION: str = "0.1.0-SNAPSHOT"
START_SHA1: str = "6a72bc1e83e82c5fa9c9199a0303b1bb31678839"


def build_manifest(stage: Stage) -> list[Artifact]:
    """Return the artifacts required to launch *stage*, in fetch order.

    ``dev`` and ``test`` load the start classes from ``--class-output``
    instead of a published JAR, so only the framework is fetched.
    """
    way = Artifact(GROUP_ID, "objectos.way", WAY_VERSION, WAY_SHA1)

    if stage is Stage.PROD:
        return [
            way,
            Artifact(GROUP_ID, "objectos.start", START_VERSION, START_SHA1),
        ]

    return [way]
