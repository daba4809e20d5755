"""
artiforge.infrastructure.download_cache - Shared Upstream Download Cache
==========================================================================

Upstream artifacts (game distributions, mod jars) are cached separately from
synthesized artifacts, keyed by their upstream coordinate. Several producers
may need the same upstream file (the game producer and the vanilla producer
both read the game distribution); the per-coordinate locking of the
underlying cache store guarantees it is downloaded once.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.exceptions import ArtiforgeError, DownloadFailedError
from artiforge.infrastructure.cache_store import CacheStore
from artiforge.integrations.downloads import DownloadService

logger = structlog.get_logger()


class DownloadCache:
    """Fetch-once cache in front of a DownloadService.

    Args:
        store: Cache store dedicated to upstream downloads.
        service: Where misses are fetched from.
    """

    def __init__(self, store: CacheStore, service: DownloadService) -> None:
        self._store = store
        self._service = service
        self._logger = logger.bind(component="download_cache")

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def service(self) -> DownloadService:
        return self._service

    async def fetch(self, coordinate: ArtifactCoordinate) -> Path:
        """Return the local path of ``coordinate``, downloading it on a miss.

        Raises:
            DownloadFailedError: If the download service fails.
        """

        async def _download(work_dir: Path) -> Path:
            destination = work_dir / coordinate.file_name
            try:
                return await self._service.fetch(coordinate, destination)
            except ArtiforgeError:
                raise
            except Exception as e:
                raise DownloadFailedError(
                    message=f"Download of {coordinate} failed: {e}",
                    coordinate=str(coordinate),
                ) from e

        entry = await self._store.publish(
            coordinate,
            _download,
            metadata={"source": self._service.describe(coordinate)},
        )
        return entry.path
