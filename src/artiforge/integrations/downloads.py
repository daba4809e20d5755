"""
artiforge.integrations.downloads - Upstream Download Services
===============================================================

Producers never talk to the network directly. They ask a ``DownloadService``
to place an upstream artifact at a local path, and the shared
``DownloadCache`` (infrastructure layer) makes sure each upstream coordinate
is fetched once per cache, no matter how many producers need it.

    ┌────────────┐  fetch(coord)  ┌───────────────┐  fetch(coord, dest)  ┌──────────────────┐
    │  Producer  │ ─────────────→ │ DownloadCache │ ───────────────────→ │ DownloadService  │
    └────────────┘                └───────────────┘                      └────────┬─────────┘
                                                                                  │
                                                        ┌─────────────────────────┴──────┐
                                                        │                                │
                                            LocalMavenDownloadService       HttpMavenDownloadService
                                            (Maven-layout directory)        (httpx, repos in order)

Every failure surfaces as ``DownloadFailedError`` naming the coordinate.
"""

from __future__ import annotations

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx
import structlog

from artiforge.core.config import DownloadConfig
from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.exceptions import DownloadFailedError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Abstract Download Service
# =============================================================================
class DownloadService(ABC):
    """Interface for retrieving upstream artifacts.

    Implementations write the artifact to ``destination`` (a path inside a
    private work directory owned by the caller) and return it. They must
    raise ``DownloadFailedError`` on any failure.
    """

    @abstractmethod
    async def fetch(self, coordinate: ArtifactCoordinate, destination: Path) -> Path:
        """Download ``coordinate`` to ``destination``.

        Args:
            coordinate: Upstream coordinate (Maven layout).
            destination: Target file path; parent directory exists.

        Returns:
            The path written (normally ``destination``).

        Raises:
            DownloadFailedError: If the artifact cannot be retrieved.
        """
        ...

    def describe(self, coordinate: ArtifactCoordinate) -> str:
        """Human-readable source of ``coordinate`` (recorded in cache metadata)."""
        return coordinate.maven_path()

    async def close(self) -> None:
        """Release any held resources (HTTP connections)."""
        return None


# =============================================================================
# Local Maven Directory
# =============================================================================
class LocalMavenDownloadService(DownloadService):
    """Fetches artifacts from a Maven-layout directory on disk.

    Used for offline builds, mirrored repositories and tests.

    Example:
        >>> service = LocalMavenDownloadService(Path("/srv/maven"))
        >>> await service.fetch(ArtifactCoordinate.parse("g:n:1@zip"), dest)
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._logger = logger.bind(component="local_maven_download")

    @property
    def root(self) -> Path:
        return self._root

    def describe(self, coordinate: ArtifactCoordinate) -> str:
        return str(self._root / coordinate.maven_path())

    async def fetch(self, coordinate: ArtifactCoordinate, destination: Path) -> Path:
        source = self._root / coordinate.maven_path()
        if not source.is_file():
            raise DownloadFailedError(
                message=f"Artifact not found in local repository {self._root}",
                coordinate=str(coordinate),
                details={"source": str(source)},
            )
        try:
            await asyncio.to_thread(shutil.copyfile, source, destination)
        except OSError as e:
            raise DownloadFailedError(
                message=f"Failed to copy {source}: {e}",
                coordinate=str(coordinate),
                details={"source": str(source)},
            ) from e

        self._logger.debug("artifact_fetched", coordinate=str(coordinate), source=str(source))
        return destination


# =============================================================================
# HTTP Maven Repositories
# =============================================================================
class HttpMavenDownloadService(DownloadService):
    """Fetches artifacts over HTTP from Maven-layout repositories.

    Repositories are tried in order; a 404 moves on to the next one, any
    other failure is remembered and reported if no repository succeeds.
    The response body is streamed to disk.

    Attributes:
        _repositories: Base URLs, each normalized to end with ``/``.
        _client: The shared ``httpx.AsyncClient``. Created lazily unless one
            is injected (tests pass a client with a ``MockTransport``).
    """

    def __init__(
        self,
        repositories: list[str],
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not repositories:
            raise ValueError("At least one repository URL is required")
        self._repositories = [url if url.endswith("/") else url + "/" for url in repositories]
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._logger = logger.bind(component="http_maven_download")

    @property
    def repositories(self) -> list[str]:
        return list(self._repositories)

    async def __aenter__(self) -> HttpMavenDownloadService:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": "artiforge/0.1.0"},
            )
        return self._client

    def describe(self, coordinate: ArtifactCoordinate) -> str:
        return self._repositories[0] + coordinate.maven_path()

    async def fetch(self, coordinate: ArtifactCoordinate, destination: Path) -> Path:
        client = self._get_client()
        attempts: list[dict[str, str]] = []

        for repository in self._repositories:
            url = repository + coordinate.maven_path()
            try:
                async with client.stream("GET", url) as response:
                    if response.status_code == 404:
                        attempts.append({"url": url, "error": "not found"})
                        continue
                    response.raise_for_status()
                    with open(destination, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
            except (httpx.HTTPError, OSError) as e:
                attempts.append({"url": url, "error": str(e)})
                self._logger.warning("download_attempt_failed", url=url, error=str(e))
                continue

            self._logger.info("artifact_downloaded", coordinate=str(coordinate), url=url)
            return destination

        raise DownloadFailedError(
            message=f"Could not download {coordinate} from any repository",
            coordinate=str(coordinate),
            details={"attempts": attempts},
        )


# =============================================================================
# Factory
# =============================================================================
def create_download_service(config: DownloadConfig) -> DownloadService:
    """Create the download service described by ``config``.

    A configured ``local_repository`` wins over the HTTP repositories.
    """
    if config.local_repository is not None:
        return LocalMavenDownloadService(config.local_repository)
    return HttpMavenDownloadService(
        repositories=config.repositories,
        timeout=config.timeout_seconds,
    )
