"""httpx-backed implementation of :class:`~way_boot.core.protocols.Fetcher`.

This module is the **only** place in the codebase that talks to the
network.  A repository location with an ``http``/``https`` scheme is
downloaded with a streamed GET; a location without a scheme (or with
``file:``) is treated as a local mirror and copied.  Both paths behave
identically from the orchestrator's point of view, so tests and
air-gapped installs can point ``--repo-remote`` at a directory.

All failures are re-raised as :class:`~way_boot.exceptions.FetchFailedError`;
nothing is retried.
"""

from __future__ import annotations

import shutil
from datetime import timedelta
from pathlib import Path
from urllib.parse import unquote, urlsplit

import httpx

from way_boot.core.models import Artifact
from way_boot.exceptions import FetchFailedError

_HTTP_SCHEMES = frozenset({"http", "https"})


def local_source(uri: str) -> Path | None:
    """Return the filesystem path *uri* refers to, or ``None`` for network URIs."""
    parts = urlsplit(uri)
    scheme = parts.scheme.lower()
    if scheme in _HTTP_SCHEMES:
        return None
    if scheme == "file":
        return Path(unquote(parts.path))
    # No scheme, or a single-letter Windows drive such as ``C:``.
    if not scheme or len(scheme) == 1:
        return Path(uri)
    return None


class ArtifactFetcher:
    """Concrete :class:`Fetcher` for HTTP repositories and local mirrors.

    The ``httpx.Client`` is built on the first HTTP fetch and reused for
    the lifetime of the fetcher.

    Parameters
    ----------
    connect_timeout:
        Time allowed to establish a connection.
    request_timeout:
        Time allowed for each read, write or pool wait of a request.
    client:
        Pre-built client, mainly for tests (e.g. with ``httpx.MockTransport``).
    """

    def __init__(
        self,
        connect_timeout: timedelta,
        request_timeout: timedelta,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._client: httpx.Client | None = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(
                    self._request_timeout.total_seconds(),
                    connect=self._connect_timeout.total_seconds(),
                ),
                follow_redirects=True,
            )
        return self._client

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def fetch(self, artifact: Artifact, uri: str, target: Path) -> None:
        """Write the bytes at *uri* to *target*, replacing any previous file.

        Raises
        ------
        FetchFailedError
            For any network, HTTP status or filesystem error.
        """
        source = local_source(uri)
        if source is not None:
            self._copy(artifact, uri, source, target)
        elif urlsplit(uri).scheme.lower() in _HTTP_SCHEMES:
            self._download(artifact, uri, target)
        else:
            raise FetchFailedError(artifact, uri, "unsupported URI scheme")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _copy(self, artifact: Artifact, uri: str, source: Path, target: Path) -> None:
        try:
            shutil.copyfile(source, target)
        except OSError as exc:
            raise FetchFailedError(artifact, uri, str(exc)) from exc

    def _download(self, artifact: Artifact, uri: str, target: Path) -> None:
        timeout = self._request_timeout.total_seconds()
        try:
            with self.client.stream(
                "GET",
                uri,
                timeout=httpx.Timeout(
                    timeout, connect=self._connect_timeout.total_seconds(),
                ),
            ) as response:
                response.raise_for_status()
                with target.open("wb") as out:
                    for chunk in response.iter_bytes():
                        out.write(chunk)
        except httpx.HTTPStatusError as exc:
            raise FetchFailedError(
                artifact, uri, f"HTTP {exc.response.status_code}",
            ) from exc
        except httpx.TimeoutException as exc:
            raise FetchFailedError(artifact, uri, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise FetchFailedError(artifact, uri, str(exc) or type(exc).__name__) from exc
        except OSError as exc:
            raise FetchFailedError(artifact, uri, str(exc)) from exc
