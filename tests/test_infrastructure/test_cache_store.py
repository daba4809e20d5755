"""
Tests for artiforge.infrastructure.cache_store
================================================

What's Being Tested:
    - has / path_for / get on an empty and a populated store
    - publish idempotence (producer invoked at most once)
    - Single-producer invariant under concurrent publishes
    - Failed producers leave no entry and no temp directories
    - Corruption detection (missing sidecar, garbled sidecar, size and hash
      mismatch) and recovery through publish
    - invalidate() and entries()
"""

import asyncio
import json
import os
import time
from pathlib import Path

import pytest

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.exceptions import CacheCorruptionError, RepackageFailedError
from artiforge.core.models import ProducedFile
from artiforge.infrastructure.cache_store import (
    SIDECAR_SUFFIX,
    FileSystemCacheStore,
    sha256_file,
)

COORD = ArtifactCoordinate.parse("com.example:game:1.0_mapped_stable@jar")


# =============================================================================
# Helpers
# =============================================================================
class CountingProducer:
    """Producer function writing fixed bytes and counting invocations."""

    def __init__(self, data: bytes = b"artifact-bytes", delay: float = 0.0) -> None:
        self.data = data
        self.delay = delay
        self.calls = 0

    async def __call__(self, work_dir: Path) -> Path:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        out = work_dir / "out.jar"
        out.write_bytes(self.data)
        return out


def _sidecar(store: FileSystemCacheStore, coordinate: ArtifactCoordinate) -> Path:
    path = store.path_for(coordinate)
    return path.with_name(path.name + SIDECAR_SUFFIX)


def _temp_dirs(store: FileSystemCacheStore) -> list[Path]:
    if not store.root.exists():
        return []
    return [p for p in store.root.iterdir() if p.name.startswith(".tmp-")]


# =============================================================================
# Tests: Lookup
# =============================================================================
class TestLookup:
    """has / path_for / get."""

    def test_empty_store(self, cache_store: FileSystemCacheStore) -> None:
        assert cache_store.has(COORD) is False
        assert cache_store.get(COORD) is None
        assert list(cache_store.entries()) == []

    def test_path_for_is_deterministic_maven_layout(self, cache_store: FileSystemCacheStore) -> None:
        path = cache_store.path_for(COORD)
        assert path == cache_store.root / "com" / "example" / "game" / "1.0_mapped_stable" / (
            "game-1.0_mapped_stable.jar"
        )
        assert not path.exists()
        assert cache_store.path_for(COORD) == path

    def test_has_has_no_side_effects(self, cache_store: FileSystemCacheStore) -> None:
        cache_store.has(COORD)
        assert not cache_store.root.exists()


# =============================================================================
# Tests: Publish
# =============================================================================
class TestPublish:
    """Idempotence, single producer, atomic failure."""

    async def test_publish_creates_entry(self, cache_store: FileSystemCacheStore) -> None:
        producer = CountingProducer()
        entry = await cache_store.publish(COORD, producer, metadata={"producer": "test"})

        assert entry.coordinate == COORD
        assert entry.path == cache_store.path_for(COORD)
        assert entry.path.read_bytes() == b"artifact-bytes"
        assert entry.size_bytes == len(b"artifact-bytes")
        assert entry.sha256 == sha256_file(entry.path)
        assert entry.metadata == {"producer": "test"}
        assert cache_store.has(COORD)
        assert _temp_dirs(cache_store) == []

    async def test_publish_is_idempotent(self, cache_store: FileSystemCacheStore) -> None:
        producer = CountingProducer()
        first = await cache_store.publish(COORD, producer)
        second = await cache_store.publish(COORD, producer)

        assert producer.calls == 1
        assert first.path == second.path
        assert first.sha256 == second.sha256

    async def test_concurrent_publish_runs_one_producer(self, cache_store: FileSystemCacheStore) -> None:
        producer = CountingProducer(delay=0.05)
        entries = await asyncio.gather(*(cache_store.publish(COORD, producer) for _ in range(8)))

        assert producer.calls == 1
        assert {e.path for e in entries} == {cache_store.path_for(COORD)}
        assert {e.sha256 for e in entries} == {entries[0].sha256}

    async def test_publish_during_commit_joins(
        self, cache_store: FileSystemCacheStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A publish arriving between the file move and the sidecar write
        waits for the commit instead of treating it as corruption.
        """
        original_replace = os.replace

        def slow_replace(src, dst):
            original_replace(src, dst)
            if not str(dst).endswith(SIDECAR_SUFFIX):
                time.sleep(0.3)

        monkeypatch.setattr(os, "replace", slow_replace)
        producer = CountingProducer()

        async def late_publish():
            await asyncio.sleep(0.1)
            assert cache_store.path_for(COORD).exists()
            assert not _sidecar(cache_store, COORD).exists()
            return await cache_store.publish(COORD, producer)

        first, second = await asyncio.gather(cache_store.publish(COORD, producer), late_publish())

        assert producer.calls == 1
        assert first.sha256 == second.sha256
        assert cache_store.get(COORD) is not None

    async def test_corrupt_entry_reproduced_once_under_concurrency(
        self, cache_store: FileSystemCacheStore
    ) -> None:
        await cache_store.publish(COORD, CountingProducer())
        cache_store.path_for(COORD).write_bytes(b"short")
        producer = CountingProducer(delay=0.05)

        entries = await asyncio.gather(*(cache_store.publish(COORD, producer) for _ in range(4)))

        assert producer.calls == 1
        assert {e.sha256 for e in entries} == {sha256_file(cache_store.path_for(COORD))}

    async def test_unrelated_coordinates_do_not_serialize(self, cache_store: FileSystemCacheStore) -> None:
        """Two slow producers for different coordinates overlap in time."""
        running = 0
        peak = 0

        async def slow(work_dir: Path) -> Path:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.05)
            running -= 1
            out = work_dir / "x"
            out.write_bytes(b"x")
            return out

        other = COORD.sibling(classifier="sources")
        await asyncio.gather(cache_store.publish(COORD, slow), cache_store.publish(other, slow))
        assert peak == 2

    async def test_failed_producer_leaves_nothing(self, cache_store: FileSystemCacheStore) -> None:
        async def broken(work_dir: Path) -> Path:
            (work_dir / "partial.jar").write_bytes(b"half")
            raise RepackageFailedError("boom", coordinate=str(COORD))

        with pytest.raises(RepackageFailedError):
            await cache_store.publish(COORD, broken)

        assert not cache_store.has(COORD)
        assert not cache_store.path_for(COORD).exists()
        assert _temp_dirs(cache_store) == []

    async def test_retry_after_failure_starts_from_scratch(self, cache_store: FileSystemCacheStore) -> None:
        attempts = 0

        async def flaky(work_dir: Path) -> Path:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("transient")
            out = work_dir / "ok.jar"
            out.write_bytes(b"ok")
            return out

        with pytest.raises(RuntimeError):
            await cache_store.publish(COORD, flaky)
        entry = await cache_store.publish(COORD, flaky)

        assert attempts == 2
        assert entry.path.read_bytes() == b"ok"

    async def test_concurrent_waiters_retry_after_failure(self, cache_store: FileSystemCacheStore) -> None:
        """A waiter re-checks after the lock; if the winner failed it produces."""
        calls = 0

        async def first_fails(work_dir: Path) -> Path:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.02)
            if calls == 1:
                raise RuntimeError("first")
            out = work_dir / "ok.jar"
            out.write_bytes(b"ok")
            return out

        results = await asyncio.gather(
            cache_store.publish(COORD, first_fails),
            cache_store.publish(COORD, first_fails),
            return_exceptions=True,
        )
        assert isinstance(results[0], RuntimeError)
        assert results[1].path.read_bytes() == b"ok"
        assert calls == 2

    async def test_produced_file_metadata_is_persisted(self, cache_store: FileSystemCacheStore) -> None:
        async def with_meta(work_dir: Path) -> ProducedFile:
            out = work_dir / "x.jar"
            out.write_bytes(b"x")
            return ProducedFile(path=out, metadata={"facts": {"game_version": "1.12.2"}})

        await cache_store.publish(COORD, with_meta, metadata={"producer": "p"})
        reopened = FileSystemCacheStore(cache_store.root)
        entry = reopened.get(COORD)
        assert entry.metadata == {"producer": "p", "facts": {"game_version": "1.12.2"}}

    async def test_producer_returning_missing_file_fails(self, cache_store: FileSystemCacheStore) -> None:
        async def liar(work_dir: Path) -> Path:
            return work_dir / "never-written.jar"

        with pytest.raises(FileNotFoundError):
            await cache_store.publish(COORD, liar)
        assert not cache_store.has(COORD)


# =============================================================================
# Tests: Corruption
# =============================================================================
class TestCorruption:
    """Present-but-invalid entries raise on get() and are re-produced by publish()."""

    @pytest.fixture
    async def populated(self, cache_store: FileSystemCacheStore) -> FileSystemCacheStore:
        await cache_store.publish(COORD, CountingProducer())
        return cache_store

    async def test_missing_sidecar(self, populated: FileSystemCacheStore) -> None:
        _sidecar(populated, COORD).unlink()
        assert populated.has(COORD) is False
        with pytest.raises(CacheCorruptionError):
            populated.get(COORD)

    async def test_garbled_sidecar(self, populated: FileSystemCacheStore) -> None:
        _sidecar(populated, COORD).write_text("{not json")
        with pytest.raises(CacheCorruptionError) as exc_info:
            populated.get(COORD)
        assert exc_info.value.coordinate == str(COORD)

    async def test_sidecar_for_other_coordinate(self, populated: FileSystemCacheStore) -> None:
        sidecar = _sidecar(populated, COORD)
        data = json.loads(sidecar.read_text())
        data["coordinate"]["version"] = "2.0"
        sidecar.write_text(json.dumps(data))
        with pytest.raises(CacheCorruptionError):
            populated.get(COORD)

    async def test_size_mismatch(self, populated: FileSystemCacheStore) -> None:
        populated.path_for(COORD).write_bytes(b"truncated")
        assert populated.has(COORD) is False
        with pytest.raises(CacheCorruptionError):
            populated.get(COORD)

    async def test_hash_mismatch_same_size(self, populated: FileSystemCacheStore) -> None:
        path = populated.path_for(COORD)
        path.write_bytes(b"X" * path.stat().st_size)
        # Size still matches, so only hash verification notices.
        assert populated.has(COORD) is True
        with pytest.raises(CacheCorruptionError):
            populated.get(COORD)

    async def test_hash_verification_can_be_disabled(self, populated: FileSystemCacheStore) -> None:
        path = populated.path_for(COORD)
        path.write_bytes(b"X" * path.stat().st_size)
        lenient = FileSystemCacheStore(populated.root, verify_hashes=False)
        assert lenient.get(COORD) is not None

    async def test_publish_recovers_from_corruption(self, populated: FileSystemCacheStore) -> None:
        populated.path_for(COORD).write_bytes(b"truncated")
        producer = CountingProducer(data=b"fresh")
        entry = await populated.publish(COORD, producer)
        assert producer.calls == 1
        assert entry.path.read_bytes() == b"fresh"
        assert populated.get(COORD) is not None


# =============================================================================
# Tests: Maintenance
# =============================================================================
class TestMaintenance:
    """invalidate() and entries()."""

    async def test_invalidate(self, cache_store: FileSystemCacheStore) -> None:
        await cache_store.publish(COORD, CountingProducer())
        assert cache_store.invalidate(COORD) is True
        assert not cache_store.has(COORD)
        assert not _sidecar(cache_store, COORD).exists()
        assert cache_store.invalidate(COORD) is False

    async def test_entries_lists_valid_entries_only(self, cache_store: FileSystemCacheStore) -> None:
        pom = COORD.sibling(extension="pom")
        await cache_store.publish(COORD, CountingProducer())
        await cache_store.publish(pom, CountingProducer(data=b"<project/>"))
        _sidecar(cache_store, pom).write_text("garbage")

        assert [e.coordinate for e in cache_store.entries()] == [COORD]

    async def test_store_survives_reopen(self, cache_store: FileSystemCacheStore) -> None:
        await cache_store.publish(COORD, CountingProducer())
        reopened = FileSystemCacheStore(cache_store.root)
        producer = CountingProducer()
        await reopened.publish(COORD, producer)
        assert producer.calls == 0
