"""
artiforge.producers.base - Abstract Base Producer
===================================================

Every derivation producer inherits from ``BaseProducer``. Like a template
method, the base class owns the parts that must behave identically for all
producers, and subclasses only describe their own artifact family:

    ┌─────────────────────────────────────────────────────────────┐
    │  BaseProducer.produce(declaration, context)                  │
    │    for coordinate in closure(target(declaration)):           │
    │  BaseProducer.publish(coordinate, declaration, context)      │
    │  ┌───────────────────────────────────────────────────────┐   │
    │  │ 1. cache_store.publish(coordinate, ...)               │   │
    │  │      └── cache hit → return entry, nothing runs       │   │
    │  │ 2. _derive(coordinate, declaration, context, work)    │ ← override
    │  │ 3. log success / failure with producer + coordinate   │   │
    │  └───────────────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────────────┘

Subclass Contract:
    - kind:                 DependencyKind this producer claims
    - target(decl, ctx):    the synthesized coordinate for a declaration
    - closure(target):      every coordinate Serving may ask for (target first)
    - _derive(...):         the pipeline writing one coordinate into ``work``
    - discover(entries):    optional; facts learned from produced entries

Producers hold no per-session state: everything they need arrives through
the ``ProductionContext`` (config, stores, services, discovered facts).
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

import structlog
from pydantic import BaseModel, ConfigDict

from artiforge.core.config import ArtiforgeConfig
from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind
from artiforge.core.exceptions import (
    ArtiforgeError,
    DownloadFailedError,
    RemapFailedError,
)
from artiforge.core.models import (
    CacheEntry,
    DependencyDeclaration,
    DiscoveredFacts,
    ProducedFile,
)
from artiforge.infrastructure.cache_store import CacheStore
from artiforge.infrastructure.download_cache import DownloadCache
from artiforge.integrations.mappings import Mapping, MappingService


# =============================================================================
# Logger Setup
# =============================================================================
logger = structlog.get_logger()

T = TypeVar("T")


# =============================================================================
# Production Context
# =============================================================================
# Passed explicitly into every producer call. Facts discovered by the primary
# producer are threaded to later producers by deriving a new context with
# ``with_facts`` rather than through shared mutable state.
# =============================================================================
class ProductionContext(BaseModel):
    """Everything a producer needs to run a pipeline.

    Attributes:
        config: Session configuration.
        cache_store: Store for synthesized artifacts.
        download_cache: Shared upstream download cache.
        mapping_service: External mapping provider.
        facts: Facts discovered so far in this session.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    config: ArtiforgeConfig
    cache_store: CacheStore
    download_cache: DownloadCache
    mapping_service: MappingService
    facts: DiscoveredFacts = DiscoveredFacts()

    def with_facts(self, facts: DiscoveredFacts) -> ProductionContext:
        return self.model_copy(update={"facts": facts})


# =============================================================================
# Base Producer
# =============================================================================
class BaseProducer(ABC):
    """Abstract base class for derivation producers.

    Attributes:
        kind: The declaration kind this producer claims.
        name: Producer name used in logs and error details.
    """

    kind: DependencyKind

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or type(self).__name__
        self._logger = logger.bind(producer=self.name, kind=self.kind.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # =========================================================================
    # Claiming
    # =========================================================================

    def accepts(self, declaration: DependencyDeclaration) -> bool:
        """Whether this producer claims ``declaration``. Declining passes it
        down the chain.
        """
        return declaration.kind == self.kind

    @abstractmethod
    def target(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> ArtifactCoordinate:
        """The synthesized coordinate the declaration is rewritten to."""
        ...

    @abstractmethod
    def closure(self, target: ArtifactCoordinate) -> list[ArtifactCoordinate]:
        """Every coordinate Serving may request for ``target``, target first."""
        ...

    def discover(self, entries: list[CacheEntry]) -> Optional[DiscoveredFacts]:
        """Facts learned from produced entries. Most producers learn nothing."""
        return None

    # =========================================================================
    # Template Method
    # =========================================================================

    async def produce(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> list[CacheEntry]:
        """Publish the whole closure of ``declaration``, target first."""
        target = self.target(declaration, context)
        entries = []
        for coordinate in self.closure(target):
            entries.append(await self.publish(coordinate, declaration, context))
        return entries

    async def publish(
        self,
        coordinate: ArtifactCoordinate,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> CacheEntry:
        """Publish one closure coordinate through the cache store.

        A cache hit returns immediately without running the pipeline.

        Raises:
            PipelineStepError: If any step of the pipeline fails.
        """

        async def _producer_fn(work_dir: Path) -> Union[Path, ProducedFile]:
            self._logger.info(
                "pipeline_started",
                coordinate=str(coordinate),
                declaration=str(declaration),
            )
            return await self._derive(coordinate, declaration, context, work_dir)

        try:
            entry = await context.cache_store.publish(
                coordinate,
                _producer_fn,
                metadata={"producer": self.name, "declaration": str(declaration)},
            )
        except ArtiforgeError as e:
            self._logger.error(
                "pipeline_failed",
                coordinate=str(coordinate),
                error_code=e.error_code,
                error=e.message,
            )
            raise

        return entry

    @abstractmethod
    async def _derive(
        self,
        coordinate: ArtifactCoordinate,
        declaration: DependencyDeclaration,
        context: ProductionContext,
        work_dir: Path,
    ) -> Union[Path, ProducedFile]:
        """Run the pipeline for ``coordinate``, writing into ``work_dir``."""
        ...

    # =========================================================================
    # Shared Step Helpers
    # =========================================================================

    @staticmethod
    async def _run_step(func: Callable[..., T], *args: Any) -> T:
        """Run a blocking step function off the event loop."""
        return await asyncio.to_thread(func, *args)

    @staticmethod
    async def _fetch(
        upstream: ArtifactCoordinate,
        coordinate: ArtifactCoordinate,
        context: ProductionContext,
    ) -> Path:
        """Fetch an upstream artifact through the shared download cache.

        The resulting error names the coordinate being produced; the upstream
        coordinate goes into ``details``.
        """
        try:
            return await context.download_cache.fetch(upstream)
        except DownloadFailedError as e:
            raise DownloadFailedError(
                message=e.message,
                coordinate=str(coordinate),
                details={**e.details, "upstream": str(upstream)},
            ) from e

    @staticmethod
    async def _load_mapping(context: ProductionContext, coordinate: ArtifactCoordinate) -> Mapping:
        """Look up the session's mapping table, as part of the remap step."""
        version = context.config.mappings
        try:
            return await context.mapping_service.lookup(version)
        except ArtiforgeError as e:
            raise RemapFailedError(
                message=f"Mappings '{version}' unavailable: {e.message}",
                coordinate=str(coordinate),
                details={"mappings": version},
            ) from e
        except Exception as e:
            raise RemapFailedError(
                message=f"Mapping service failed for '{version}': {e}",
                coordinate=str(coordinate),
                details={"mappings": version},
            ) from e

    @staticmethod
    def mapped_version(version: str, context: ProductionContext) -> str:
        """Synthesized version embedding the mapping token."""
        return f"{version}_mapped_{context.config.mappings}"
