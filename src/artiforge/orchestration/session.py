"""
artiforge.orchestration.session - Resolution Session
======================================================

A ResolutionSession front-loads all expensive work so the host's own
dependency resolution only ever reads the cache.

    ┌──────────────────────────────────────────────────────────────────┐
    │                       ResolutionSession                          │
    │                                                                  │
    │  expand(declarations)            (once, may take minutes)        │
    │    1. validate: roles, producers, primary present   (no I/O)     │
    │    2. primaries first ──→ DiscoveredFacts                        │
    │    3. everything else, concurrently (bounded)                    │
    │    4. freeze claim table ──→ phase SERVING                       │
    │                                                                  │
    │  serve(coordinate)               (re-entrant, cache-only)        │
    │    claimed?  no  ──→ None (not ours)                             │
    │              yes ──→ cache entry path                            │
    │                      corrupt/missing ──→ one re-derivation       │
    └──────────────────────────────────────────────────────────────────┘

Phase transitions are one-way (see ``SessionPhase``). Any Expansion failure
moves the session to FAILED and re-raises the originating error; nothing is
partially committed to the caller.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Optional, Union

import structlog

from artiforge.core.config import ArtiforgeConfig
from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind, SessionPhase
from artiforge.core.exceptions import (
    CacheCorruptionError,
    ConfigurationError,
    SessionStateError,
)
from artiforge.core.models import (
    CacheEntry,
    DependencyDeclaration,
    DiscoveredFacts,
    ExpansionResult,
)
from artiforge.integrations.properties import BuildPropertySink
from artiforge.orchestration.producer_chain import ProducerChain
from artiforge.producers.base import ProductionContext


# =============================================================================
# Logger Setup
# =============================================================================
logger = structlog.get_logger()


class ResolutionSession:
    """Two-phase resolution: Expansion, then cache-only Serving.

    Attributes:
        _config: Session configuration.
        _chain: Producer chain and claim table.
        _context: Production context; replaced once facts are discovered.
        _property_sink: Optional outward publication of discovered facts.
        _phase: Current lifecycle phase.

    Example:
        >>> session = ResolutionSession(config, chain, context)
        >>> result = await session.expand([primary, mod])
        >>> path = await session.serve("com.example:game:1.0_mapped_official@jar")
    """

    def __init__(
        self,
        config: ArtiforgeConfig,
        chain: ProducerChain,
        context: ProductionContext,
        property_sink: Optional[BuildPropertySink] = None,
    ) -> None:
        self._config = config
        self._chain = chain
        self._context = context
        self._property_sink = property_sink
        self._phase = SessionPhase.CREATED
        self._facts = DiscoveredFacts(mappings=config.mappings)
        self._rewrites: dict[DependencyDeclaration, ArtifactCoordinate] = {}
        self._logger = logger.bind(component="resolution_session")

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def facts(self) -> DiscoveredFacts:
        return self._facts

    @property
    def rewrites(self) -> dict[DependencyDeclaration, ArtifactCoordinate]:
        """Declaration → synthesized coordinate table."""
        return dict(self._rewrites)

    @property
    def chain(self) -> ProducerChain:
        return self._chain

    def manifest(self) -> list[CacheEntry]:
        """Every synthesized cache entry, in production order."""
        return self._chain.manifest()

    # =========================================================================
    # Expansion
    # =========================================================================

    async def expand(self, declarations: Iterable[DependencyDeclaration]) -> ExpansionResult:
        """Validate, then pre-materialize the closure of every declaration.

        Raises:
            SessionStateError: If called more than once.
            ResolutionError: On validation failure (before any I/O).
            ConfigurationError: If no primary is declared and one is required.
            PipelineStepError: If any derivation pipeline fails.
        """
        if self._phase is not SessionPhase.CREATED:
            raise SessionStateError(
                message="expand() may only be called once per session",
                phase=self._phase.value,
            )

        declarations = list(declarations)
        try:
            self._validate(declarations)
        except Exception:
            self._phase = SessionPhase.FAILED
            raise

        self._phase = SessionPhase.EXPANDING
        self._logger.info("expansion_started", declarations=len(declarations))

        try:
            primaries = [d for d in declarations if d.kind is DependencyKind.PRIMARY]
            others = [d for d in declarations if d.kind is not DependencyKind.PRIMARY]

            for declaration in primaries:
                await self._resolve(declaration)
            self._publish_facts()

            await self._resolve_concurrently(others)
        except Exception as e:
            self._phase = SessionPhase.FAILED
            self._logger.error("expansion_failed", error=str(e), error_type=type(e).__name__)
            raise

        self._chain.freeze()
        self._phase = SessionPhase.SERVING

        result = ExpansionResult(
            facts=self._facts,
            rewrites=dict(self._rewrites),
            manifest=self._chain.manifest(),
        )
        self._logger.info(
            "expansion_completed",
            declarations=len(self._rewrites),
            artifacts=len(result.manifest),
            game_version=self._facts.game_version,
        )
        return result

    def _validate(self, declarations: list[DependencyDeclaration]) -> None:
        self._chain.validate(declarations)
        if self._config.require_primary and not any(
            d.kind is DependencyKind.PRIMARY for d in declarations
        ):
            raise ConfigurationError(
                message="No primary game dependency was declared",
                error_code="MISSING_PRIMARY_DECLARATION",
                details={"declarations": [str(d) for d in declarations]},
            )

    async def _resolve(self, declaration: DependencyDeclaration) -> None:
        target = await self._chain.resolve(declaration, self._context)
        self._rewrites[declaration] = target

        if declaration.kind is DependencyKind.PRIMARY:
            claim = self._chain.claim_for(target)
            discovered = claim.producer.discover(claim.entries) if claim else None
            if discovered is not None:
                self._facts = discovered

    def _publish_facts(self) -> None:
        """Thread discovered facts into the context and the property sink."""
        self._context = self._context.with_facts(self._facts)
        if self._property_sink is not None:
            self._property_sink.update(self._facts.as_properties())
        self._logger.debug("facts_published", **self._facts.as_properties())

    async def _resolve_concurrently(self, declarations: list[DependencyDeclaration]) -> None:
        """Resolve independent declarations with bounded parallelism.

        The first failure cancels the remaining tasks and is re-raised.
        """
        if not declarations:
            return

        semaphore = asyncio.Semaphore(self._config.max_parallel_pipelines)

        async def _bounded(declaration: DependencyDeclaration) -> None:
            async with semaphore:
                await self._resolve(declaration)

        tasks = [asyncio.create_task(_bounded(d)) for d in declarations]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

    # =========================================================================
    # Serving
    # =========================================================================

    async def serve(self, coordinate: Union[ArtifactCoordinate, str]) -> Optional[Path]:
        """Answer a host lookup from the cache store only.

        Returns:
            The artifact path, or None when the coordinate is not ours.

        Raises:
            SessionStateError: Outside the SERVING phase.
            InvalidCoordinateFormatError: If a string coordinate is malformed.
            PipelineStepError: If re-deriving a corrupt entry fails.
        """
        if self._phase is not SessionPhase.SERVING:
            raise SessionStateError(
                message=f"serve() is not allowed in phase '{self._phase.value}'",
                phase=self._phase.value,
            )

        if isinstance(coordinate, str):
            coordinate = ArtifactCoordinate.parse(coordinate)

        canonical = self._chain.canonical(coordinate)
        if canonical is None:
            return None

        try:
            entry = self._context.cache_store.get(canonical)
        except CacheCorruptionError as e:
            self._logger.warning(
                "cache_corruption_detected",
                coordinate=str(canonical),
                error=e.message,
            )
            entry = None

        if entry is None:
            entry = await self._rederive(canonical)
        return entry.path

    async def _rederive(self, coordinate: ArtifactCoordinate) -> CacheEntry:
        try:
            return await self._chain.rederive(coordinate, self._context)
        except Exception as e:
            self._phase = SessionPhase.FAILED
            self._logger.error(
                "rederivation_failed",
                coordinate=str(coordinate),
                error=str(e),
            )
            raise
