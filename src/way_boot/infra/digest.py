"""Infrastructure: streaming SHA-1 verification of local files.

A single buffer and digest engine are owned by the verifier and reused
for every artifact; the engine is reset before each file.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from way_boot.exceptions import ChecksumFailedError, EnvironmentError

ALGORITHM: str = "sha1"


class DigestVerifier:
    """Computes and checks content digests in buffer-sized chunks.

    Raises
    ------
    EnvironmentError
        At construction, when the digest algorithm is unavailable or the
        buffer cannot be allocated.
    """

    def __init__(self, buffer_size: int, algorithm: str = ALGORITHM) -> None:
        try:
            self._prototype = hashlib.new(algorithm)
        except ValueError as exc:
            raise EnvironmentError(
                f"Failed to obtain the {algorithm.upper()} digest instance",
            ) from exc
        self._engine = self._prototype.copy()
        try:
            self._buffer: bytearray = bytearray(buffer_size)
        except (MemoryError, OverflowError) as exc:
            raise EnvironmentError(
                f"Failed to allocate the I/O buffer: {buffer_size} bytes",
            ) from exc

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    def reset(self) -> None:
        self._engine = self._prototype.copy()

    def compute(self, path: Path) -> str:
        """Return the lower-case hex digest of the file at *path*.

        Raises
        ------
        ChecksumFailedError
            When the file cannot be read.
        """
        self.reset()
        view = memoryview(self._buffer)
        try:
            with path.open("rb") as stream:
                while True:
                    read = stream.readinto(view)
                    if not read:
                        break
                    self._engine.update(view[:read])
        except OSError as exc:
            raise ChecksumFailedError(
                f"Failed to compute checksum: {path}",
            ) from exc
        return self._engine.hexdigest()

    def matches(self, path: Path, expected: str) -> tuple[bool, str]:
        """Return whether *path* hashes to *expected*, and the actual digest."""
        actual = self.compute(path)
        return actual == expected.strip().lower(), actual
