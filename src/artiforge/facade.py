"""
artiforge.facade - Artiforge Top-Level Facade
===============================================

The single entry point that wires configuration, stores, services, the
producer chain and a resolution session together.

    ┌──────────────────────────────────────────────────────┐
    │                  Artiforge (Facade)                   │
    │                                                       │
    │   ResolutionSession ──→ ProducerChain                 │
    │          │               Game / Mod / Vanilla         │
    │          ▼                                            │
    │   ProductionContext                                   │
    │     ├── FileSystemCacheStore   (cache_dir)            │
    │     ├── DownloadCache          (download_cache_dir)   │
    │     │     └── DownloadService  (local or HTTP Maven)  │
    │     └── MappingService                                │
    └──────────────────────────────────────────────────────┘

Usage:
    >>> async with Artiforge(config) as forge:
    ...     result = await forge.expand([
    ...         DependencyDeclaration.parse("com.example:game:1.0", DependencyKind.PRIMARY),
    ...     ])
    ...     path = await forge.serve("com.example:game:1.0@jar")

One facade instance runs one session: create a new one per build.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional, Union

import structlog

from artiforge.core.config import ArtiforgeConfig, load_config
from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import SessionPhase
from artiforge.core.logging import configure_logging
from artiforge.core.models import CacheEntry, DependencyDeclaration, ExpansionResult
from artiforge.infrastructure.cache_store import CacheStore, FileSystemCacheStore
from artiforge.infrastructure.download_cache import DownloadCache
from artiforge.integrations.downloads import DownloadService, create_download_service
from artiforge.integrations.mappings import MappingService, StaticMappingService
from artiforge.integrations.properties import BuildPropertySink
from artiforge.orchestration.producer_chain import ProducerChain
from artiforge.orchestration.session import ResolutionSession
from artiforge.producers import BaseProducer, ProductionContext, default_producers


# =============================================================================
# Logger Setup
# =============================================================================
logger = structlog.get_logger()


class Artiforge:
    """Artiforge facade: one configured resolution session.

    Every collaborator can be injected; anything omitted is built from the
    configuration.
    """

    def __init__(
        self,
        config: Optional[ArtiforgeConfig] = None,
        *,
        mapping_service: Optional[MappingService] = None,
        download_service: Optional[DownloadService] = None,
        property_sink: Optional[BuildPropertySink] = None,
        cache_store: Optional[CacheStore] = None,
        producers: Optional[Iterable[BaseProducer]] = None,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Configuration. Defaults to ArtiforgeConfig() (env + defaults).
            mapping_service: Mapping provider. Defaults to identity mappings.
            download_service: Upstream fetcher. Defaults to the one described
                by ``config.download``; a default service is closed by ``close()``.
            property_sink: Optional sink for discovered build properties.
            cache_store: Final-artifact store. Defaults to ``config.cache_dir``.
            producers: Producer chain order. Defaults to game, mod, vanilla.
        """
        self._config = config or ArtiforgeConfig()

        # --- Infrastructure ---
        self._cache_store = cache_store or FileSystemCacheStore(
            self._config.cache_dir,
            verify_hashes=self._config.verify_hashes,
            name="artifacts",
        )
        self._owns_download_service = download_service is None
        self._download_service = download_service or create_download_service(self._config.download)
        self._download_cache = DownloadCache(
            store=FileSystemCacheStore(
                self._config.download_cache_dir,
                verify_hashes=self._config.verify_hashes,
                name="downloads",
            ),
            service=self._download_service,
        )

        # --- Integrations ---
        self._mapping_service = mapping_service or StaticMappingService(identity_fallback=True)

        # --- Orchestration ---
        self._chain = ProducerChain(producers if producers is not None else default_producers())
        self._session = ResolutionSession(
            config=self._config,
            chain=self._chain,
            context=ProductionContext(
                config=self._config,
                cache_store=self._cache_store,
                download_cache=self._download_cache,
                mapping_service=self._mapping_service,
            ),
            property_sink=property_sink,
        )

        self._logger = logger.bind(component="artiforge")

    @classmethod
    def from_file(cls, path: Optional[str] = None, **kwargs: Any) -> Artiforge:
        """Load ``artiforge.yaml`` (or ``path``), configure logging and build
        a facade from it.
        """
        config = load_config(path)
        configure_logging(config.log_level, json_output=config.environment != "dev")
        return cls(config, **kwargs)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> ArtiforgeConfig:
        return self._config

    @property
    def session(self) -> ResolutionSession:
        return self._session

    @property
    def phase(self) -> SessionPhase:
        return self._session.phase

    @property
    def cache_store(self) -> CacheStore:
        return self._cache_store

    @property
    def download_cache(self) -> DownloadCache:
        return self._download_cache

    # =========================================================================
    # Resolution
    # =========================================================================

    async def expand(self, declarations: Iterable[DependencyDeclaration]) -> ExpansionResult:
        """Run Expansion for ``declarations``. See ``ResolutionSession.expand``."""
        return await self._session.expand(declarations)

    async def serve(self, coordinate: Union[ArtifactCoordinate, str]) -> Optional[Path]:
        """Answer a host lookup from the cache. See ``ResolutionSession.serve``."""
        return await self._session.serve(coordinate)

    def manifest(self) -> list[CacheEntry]:
        return self._session.manifest()

    @property
    def rewrites(self) -> dict[DependencyDeclaration, ArtifactCoordinate]:
        return self._session.rewrites

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Release the default download service. Injected services are left
        to their owner.
        """
        if self._owns_download_service:
            await self._download_service.close()
        self._logger.debug("artiforge_closed", phase=self._session.phase.value)

    async def __aenter__(self) -> Artiforge:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"Artiforge(phase={self._session.phase.value!r}, "
            f"cache_dir={str(self._config.cache_dir)!r}, "
            f"mappings={self._config.mappings!r})"
        )
