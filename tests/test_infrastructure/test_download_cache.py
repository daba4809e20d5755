"""
Tests for artiforge.infrastructure.download_cache
===================================================

What's Being Tested:
    - Misses are fetched and published under the download cache root
    - Hits never touch the download service
    - Concurrent fetches of one coordinate download once
    - Failures surface as DownloadFailedError, leaving no entry
"""

import asyncio
from pathlib import Path

import pytest

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.exceptions import DownloadFailedError
from artiforge.infrastructure.cache_store import FileSystemCacheStore
from artiforge.infrastructure.download_cache import DownloadCache
from artiforge.integrations.downloads import DownloadService
from tests.helpers import add_jar

MOD = ArtifactCoordinate.parse("com.example:coolmod:2.0")


class ExplodingService(DownloadService):
    """Raises a non-Artiforge exception from fetch."""

    async def fetch(self, coordinate: ArtifactCoordinate, destination: Path) -> Path:
        raise ConnectionResetError("peer went away")


class TestDownloadCache:
    """Tests for DownloadCache."""

    async def test_miss_fetches_and_caches(self, download_cache, download_service, maven_repo) -> None:
        add_jar(maven_repo, "com.example:coolmod:2.0", {"b.class": b"x"})

        path = await download_cache.fetch(MOD)

        assert path.is_file()
        assert path == download_cache.store.path_for(MOD)
        assert download_cache.store.name == "downloads"
        assert download_cache.store.has(MOD)
        assert download_service.calls == [MOD]

    async def test_hit_skips_service(self, download_cache, download_service, maven_repo) -> None:
        add_jar(maven_repo, "com.example:coolmod:2.0", {"b.class": b"x"})

        first = await download_cache.fetch(MOD)
        second = await download_cache.fetch(MOD)

        assert first == second
        assert len(download_service.calls) == 1

    async def test_concurrent_fetches_download_once(self, download_cache, download_service, maven_repo) -> None:
        add_jar(maven_repo, "com.example:coolmod:2.0", {"b.class": b"x"})

        paths = await asyncio.gather(*(download_cache.fetch(MOD) for _ in range(5)))

        assert len(set(paths)) == 1
        assert len(download_service.calls) == 1

    async def test_source_recorded_in_metadata(self, download_cache, maven_repo) -> None:
        add_jar(maven_repo, "com.example:coolmod:2.0", {"b.class": b"x"})
        await download_cache.fetch(MOD)
        entry = download_cache.store.get(MOD)
        assert entry.metadata["source"].endswith("coolmod-2.0.jar")

    async def test_missing_artifact(self, download_cache) -> None:
        with pytest.raises(DownloadFailedError) as exc_info:
            await download_cache.fetch(MOD)
        assert exc_info.value.coordinate == str(MOD)
        assert not download_cache.store.has(MOD)

    async def test_foreign_exceptions_are_wrapped(self, tmp_path: Path) -> None:
        cache = DownloadCache(FileSystemCacheStore(tmp_path / "dl"), ExplodingService())
        with pytest.raises(DownloadFailedError) as exc_info:
            await cache.fetch(MOD)
        assert "peer went away" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
