"""
artiforge.infrastructure.cache_store - Synthesized Artifact Cache
===================================================================

The Cache Store is the on-disk home of every artifact Artiforge produces.
It is path-addressed by coordinate (Maven layout under a root directory) and
durable across sessions.

Architecture Context:
    ┌────────────┐  publish(coord, fn)  ┌──────────────────────────────────┐
    │  Producer  │ ───────────────────→ │  FileSystemCacheStore            │
    └────────────┘                      │                                  │
    ┌────────────┐  get(coord)          │  <root>/com/example/game/1.0/    │
    │  Session   │ ───────────────────→ │    game-1.0.jar                  │
    │ (Serving)  │                      │    game-1.0.jar.entry.json  ←──  │ commit marker
    └────────────┘                      └──────────────────────────────────┘

Publish Protocol:
    1. Fast path: a valid entry exists → return it, producer not invoked.
       Anything else (absent, half-committed, corrupt) falls through.
    2. Acquire the per-coordinate lock (no lock is shared across coordinates).
    3. Re-check (another publisher may have finished while we waited); a
       corrupt entry is invalidated here, under the lock.
    4. Run the producer in a private temp directory under the root
       (same filesystem, so the final rename is atomic).
    5. Hash, ``os.replace`` the file into place, then write the sidecar
       atomically. The sidecar is written last: an artifact without a valid
       sidecar is never considered present.
    6. On failure, the temp directory is removed and the coordinate stays
       absent; the next publish starts from scratch.

Corruption:
    A file without sidecar, an unparseable sidecar, a size mismatch, or (with
    ``verify_hashes``) a digest mismatch raises ``CacheCorruptionError`` from
    ``get()``. ``publish()`` treats that as a miss: invalidate and re-produce,
    both while holding the coordinate's lock, so a commit in flight is never
    mistaken for corruption.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Optional, Union

import structlog
from pydantic import ValidationError

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.exceptions import CacheCorruptionError
from artiforge.core.models import CacheEntry, ProducedFile


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# A producer function receives a private, empty work directory and returns
# the file it wrote there (optionally wrapped with metadata).
ProducerFn = Callable[[Path], Awaitable[Union[Path, ProducedFile]]]

SIDECAR_SUFFIX = ".entry.json"
_TEMP_PREFIX = ".tmp-"


def sha256_file(path: Path) -> str:
    """Hex SHA-256 of a file, read in 1 MiB chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Abstract Base Class
# =============================================================================
class CacheStore(ABC):
    """Abstract interface for coordinate-keyed artifact caches.

    Methods:
        has(coordinate): Existence check, no side effects.
        path_for(coordinate): Deterministic location (may not exist).
        get(coordinate): The cache entry, None if absent.
        publish(coordinate, producer_fn): Idempotent, serialized production.
        invalidate(coordinate): Drop an entry so it can be re-produced.
        entries(): All valid entries.
    """

    @abstractmethod
    def has(self, coordinate: ArtifactCoordinate) -> bool:
        ...

    @abstractmethod
    def path_for(self, coordinate: ArtifactCoordinate) -> Path:
        ...

    @abstractmethod
    def get(self, coordinate: ArtifactCoordinate) -> Optional[CacheEntry]:
        """Return the entry for ``coordinate`` or None if absent.

        Raises:
            CacheCorruptionError: If the entry exists but is invalid.
        """
        ...

    @abstractmethod
    async def publish(
        self,
        coordinate: ArtifactCoordinate,
        producer_fn: ProducerFn,
        metadata: Optional[dict] = None,
    ) -> CacheEntry:
        ...

    @abstractmethod
    def invalidate(self, coordinate: ArtifactCoordinate) -> bool:
        ...

    @abstractmethod
    def entries(self) -> Iterator[CacheEntry]:
        ...


# =============================================================================
# Filesystem Implementation
# =============================================================================
class FileSystemCacheStore(CacheStore):
    """Maven-layout cache store on the local filesystem.

    Attributes:
        _root: Store root directory.
        _verify_hashes: Re-hash files in ``get()`` to detect corruption.
        _locks: One ``asyncio.Lock`` per coordinate ever published. Locks are
            never released; a store lives for one session, so the table is
            bounded by that session's claimed coordinates.

    Example:
        >>> store = FileSystemCacheStore(Path(".artiforge/cache"))
        >>> async def build(work: Path) -> Path:
        ...     out = work / "game.jar"
        ...     out.write_bytes(b"...")
        ...     return out
        >>> entry = await store.publish(coord, build)
        >>> store.has(coord)
        True
    """

    def __init__(self, root: Path, verify_hashes: bool = True, name: str = "cache") -> None:
        self._root = Path(root)
        self._verify_hashes = verify_hashes
        self._name = name
        self._locks: dict[ArtifactCoordinate, asyncio.Lock] = {}
        self._logger = logger.bind(component="cache_store", store=name)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def name(self) -> str:
        return self._name

    # =========================================================================
    # Lookup
    # =========================================================================

    def path_for(self, coordinate: ArtifactCoordinate) -> Path:
        return self._root.joinpath(*coordinate.maven_path().split("/"))

    def _sidecar_for(self, path: Path) -> Path:
        return path.with_name(path.name + SIDECAR_SUFFIX)

    def has(self, coordinate: ArtifactCoordinate) -> bool:
        try:
            return self._read_entry(coordinate, verify=False) is not None
        except CacheCorruptionError:
            return False

    def get(self, coordinate: ArtifactCoordinate) -> Optional[CacheEntry]:
        return self._read_entry(coordinate, verify=self._verify_hashes)

    def _read_entry(self, coordinate: ArtifactCoordinate, verify: bool) -> Optional[CacheEntry]:
        path = self.path_for(coordinate)
        sidecar = self._sidecar_for(path)

        if not path.exists() and not sidecar.exists():
            return None
        if not path.is_file() or not sidecar.is_file():
            raise CacheCorruptionError(
                message="Cache entry is incomplete (file or sidecar missing)",
                coordinate=str(coordinate),
                details={"path": str(path)},
            )

        try:
            entry = CacheEntry.model_validate_json(sidecar.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            raise CacheCorruptionError(
                message=f"Unreadable cache sidecar: {e}",
                coordinate=str(coordinate),
                details={"sidecar": str(sidecar)},
            ) from e

        if entry.coordinate != coordinate:
            raise CacheCorruptionError(
                message=f"Sidecar describes {entry.coordinate}, not {coordinate}",
                coordinate=str(coordinate),
                details={"sidecar": str(sidecar)},
            )

        size = path.stat().st_size
        if size != entry.size_bytes:
            raise CacheCorruptionError(
                message=f"Size mismatch: expected {entry.size_bytes} bytes, found {size}",
                coordinate=str(coordinate),
                details={"path": str(path)},
            )

        if verify and entry.sha256 is not None:
            actual = sha256_file(path)
            if actual != entry.sha256:
                raise CacheCorruptionError(
                    message="Content hash mismatch",
                    coordinate=str(coordinate),
                    details={"expected": entry.sha256, "actual": actual},
                )

        # The store may have been moved since publish; trust the layout.
        return entry.model_copy(update={"path": path})

    def _get_if_valid(self, coordinate: ArtifactCoordinate) -> Optional[CacheEntry]:
        """Lock-free lookup: a valid entry or None, never a side effect."""
        try:
            return self.get(coordinate)
        except CacheCorruptionError:
            return None

    def _get_or_invalidate(self, coordinate: ArtifactCoordinate) -> Optional[CacheEntry]:
        """Only call while holding the coordinate's lock."""
        try:
            return self.get(coordinate)
        except CacheCorruptionError as e:
            self._logger.warning(
                "cache_entry_corrupt",
                coordinate=str(coordinate),
                error=e.message,
            )
            self.invalidate(coordinate)
            return None

    # =========================================================================
    # Publish
    # =========================================================================

    def _lock_for(self, coordinate: ArtifactCoordinate) -> asyncio.Lock:
        lock = self._locks.get(coordinate)
        if lock is None:
            lock = self._locks[coordinate] = asyncio.Lock()
        return lock

    async def publish(
        self,
        coordinate: ArtifactCoordinate,
        producer_fn: ProducerFn,
        metadata: Optional[dict] = None,
    ) -> CacheEntry:
        """Return the cached entry, producing it first if absent.

        Args:
            coordinate: The coordinate to publish.
            producer_fn: Async callable writing the artifact into the given
                private work directory and returning its path.
            metadata: Extra metadata merged into the sidecar.

        Returns:
            The published (or pre-existing) CacheEntry.

        Raises:
            Whatever ``producer_fn`` raises; the coordinate stays absent.
        """
        entry = self._get_if_valid(coordinate)
        if entry is not None:
            return entry

        async with self._lock_for(coordinate):
            entry = self._get_or_invalidate(coordinate)
            if entry is not None:
                self._logger.debug("publish_joined", coordinate=str(coordinate))
                return entry

            self._root.mkdir(parents=True, exist_ok=True)
            work_dir = Path(tempfile.mkdtemp(prefix=_TEMP_PREFIX, dir=self._root))
            try:
                result = await producer_fn(work_dir)
                produced = result if isinstance(result, ProducedFile) else ProducedFile(path=result)
                entry = await asyncio.to_thread(
                    self._commit, coordinate, produced, work_dir, metadata or {}
                )
            except BaseException:
                self._logger.warning("publish_failed", coordinate=str(coordinate))
                raise
            finally:
                shutil.rmtree(work_dir, ignore_errors=True)

        self._logger.info(
            "artifact_published",
            coordinate=str(coordinate),
            path=str(entry.path),
            size_bytes=entry.size_bytes,
        )
        return entry

    def _commit(
        self,
        coordinate: ArtifactCoordinate,
        produced: ProducedFile,
        work_dir: Path,
        metadata: dict,
    ) -> CacheEntry:
        source = Path(produced.path)
        if not source.is_file():
            raise FileNotFoundError(f"Producer for {coordinate} returned no file: {source}")

        final = self.path_for(coordinate)
        final.parent.mkdir(parents=True, exist_ok=True)

        entry = CacheEntry(
            coordinate=coordinate,
            path=final,
            sha256=sha256_file(source),
            size_bytes=source.stat().st_size,
            metadata={**metadata, **produced.metadata},
        )

        os.replace(source, final)

        staged_sidecar = work_dir / ("sidecar" + SIDECAR_SUFFIX + ".part")
        staged_sidecar.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
        os.replace(staged_sidecar, self._sidecar_for(final))
        return entry

    # =========================================================================
    # Maintenance
    # =========================================================================

    def invalidate(self, coordinate: ArtifactCoordinate) -> bool:
        """Remove the file and sidecar for ``coordinate``.

        Returns:
            True if anything was removed.
        """
        path = self.path_for(coordinate)
        removed = False
        # Sidecar first: the entry stops being visible before the file goes.
        for target in (self._sidecar_for(path), path):
            try:
                target.unlink()
                removed = True
            except FileNotFoundError:
                pass
        if removed:
            self._logger.info("cache_entry_invalidated", coordinate=str(coordinate))
        return removed

    def entries(self) -> Iterator[CacheEntry]:
        """Yield every valid entry under the root, skipping corrupt ones."""
        if not self._root.exists():
            return
        for sidecar in sorted(self._root.rglob("*" + SIDECAR_SUFFIX)):
            if any(part.startswith(_TEMP_PREFIX) for part in sidecar.relative_to(self._root).parts):
                continue
            try:
                entry = CacheEntry.model_validate_json(sidecar.read_text(encoding="utf-8"))
                current = self._read_entry(entry.coordinate, verify=False)
            except (OSError, ValueError, ValidationError, CacheCorruptionError):
                self._logger.warning("cache_entry_skipped", sidecar=str(sidecar))
                continue
            if current is not None:
                yield current
