"""
artiforge.orchestration.producer_chain - Ordered Producer Chain
=================================================================

The chain routes each declaration to the first producer that accepts it and
remembers which producer owns every coordinate of the resulting closure.

    declaration ──→ [GameProducer] ──decline──→ [ModProducer] ──decline──→ ...
                          │ accept
                          ▼
                    target + closure ──→ claim table ──→ producer.produce()

Claim Table:
    Every closure coordinate maps to exactly one producer for the whole
    session. A second declaration landing on an already-claimed coordinate
    must come from the same producer; the cache store then answers it
    without re-deriving. Declared (upstream-version) forms of closure
    coordinates are recorded as aliases so a host asking for
    ``com.example:game:1.0@jar`` is pointed at the synthesized artifact.

Validation (``validate``) happens before any work: unclaimable declarations
and repeated singleton roles are rejected up front.
"""

from __future__ import annotations

from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind, SessionPhase
from artiforge.core.exceptions import (
    ConfigurationError,
    DuplicateDeclarationError,
    SessionStateError,
    UnresolvedDependencyError,
)
from artiforge.core.models import CacheEntry, DependencyDeclaration
from artiforge.producers.base import BaseProducer, ProductionContext


# =============================================================================
# Logger Setup
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Claim
# =============================================================================
class Claim(BaseModel):
    """A declaration claimed by a producer, with its published closure.

    Attributes:
        declaration: The declaration that created the claim.
        target: The synthesized coordinate the declaration is rewritten to.
        producer: The owning producer.
        entries: Published cache entries, target first.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    declaration: DependencyDeclaration
    target: ArtifactCoordinate
    producer: BaseProducer
    entries: list[CacheEntry] = Field(default_factory=list)


# =============================================================================
# Producer Chain
# =============================================================================
class ProducerChain:
    """Ordered producers plus the per-session claim table.

    Example:
        >>> chain = ProducerChain([GameProducer(), ModProducer()])
        >>> chain.validate(declarations)
        >>> target = await chain.resolve(declarations[0], context)
        >>> chain.owner_of(target)
        GameProducer(name='GameProducer')
    """

    def __init__(self, producers: Iterable[BaseProducer]) -> None:
        self._producers = list(producers)
        if not self._producers:
            raise ConfigurationError(
                message="A producer chain needs at least one producer",
                error_code="EMPTY_PRODUCER_CHAIN",
            )
        self._claims: dict[ArtifactCoordinate, Claim] = {}
        self._index: dict[ArtifactCoordinate, ArtifactCoordinate] = {}
        self._aliases: dict[ArtifactCoordinate, ArtifactCoordinate] = {}
        self._frozen = False
        self._logger = logger.bind(component="producer_chain")

    @property
    def producers(self) -> list[BaseProducer]:
        return list(self._producers)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def claimed(self) -> list[ArtifactCoordinate]:
        """Every claimed coordinate, in claim order."""
        return list(self._index)

    # =========================================================================
    # Routing and Validation
    # =========================================================================

    def select(self, declaration: DependencyDeclaration) -> BaseProducer:
        """First producer accepting ``declaration``.

        Raises:
            UnresolvedDependencyError: If every producer declines.
        """
        for producer in self._producers:
            if producer.accepts(declaration):
                return producer
        raise UnresolvedDependencyError(
            message=f"No producer accepts {declaration}",
            declaration=str(declaration),
            details={"producers": [p.name for p in self._producers]},
        )

    def validate(self, declarations: Iterable[DependencyDeclaration]) -> None:
        """Check that every declaration is claimable and singleton roles are
        declared at most once. Performs no I/O.

        Raises:
            UnresolvedDependencyError: If a declaration has no producer.
            DuplicateDeclarationError: If a singleton kind repeats.
        """
        singletons: dict[DependencyKind, DependencyDeclaration] = {}
        for declaration in declarations:
            self.select(declaration)
            if not declaration.kind.is_singleton:
                continue
            previous = singletons.get(declaration.kind)
            if previous is not None:
                raise DuplicateDeclarationError(
                    message=(
                        f"Only one {declaration.kind.value} dependency is allowed; "
                        f"got {previous} and {declaration}"
                    ),
                    declaration=str(declaration),
                    details={"previous": str(previous)},
                )
            singletons[declaration.kind] = declaration

    # =========================================================================
    # Claiming
    # =========================================================================

    async def resolve(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> ArtifactCoordinate:
        """Claim ``declaration``, produce its closure and return the target.

        Raises:
            SessionStateError: If the chain is frozen.
            UnresolvedDependencyError: If no producer accepts it.
            DuplicateDeclarationError: If another producer owns a closure member.
            PipelineStepError: If producing any closure member fails.
        """
        if self._frozen:
            raise SessionStateError(
                message=f"Cannot claim {declaration}: the producer chain is frozen",
                phase=SessionPhase.SERVING.value,
            )

        producer = self.select(declaration)
        target = producer.target(declaration, context)
        closure = producer.closure(target)

        for coordinate in closure:
            owner = self._claimed_by(coordinate)
            if owner is not None and owner is not producer:
                raise DuplicateDeclarationError(
                    message=f"{coordinate} is already claimed by {owner.name}",
                    declaration=str(declaration),
                    details={"coordinate": str(coordinate), "owner": owner.name},
                )

        claim = self._claims.get(target)
        if claim is None:
            claim = self._claims[target] = Claim(
                declaration=declaration, target=target, producer=producer
            )
            for coordinate in closure:
                self._index[coordinate] = target
                # A real claim always wins over an alias of the same text.
                self._aliases.pop(coordinate, None)
            for coordinate in closure:
                alias = coordinate.with_version(declaration.version)
                if alias not in self._index:
                    self._aliases.setdefault(alias, coordinate)
            self._logger.info(
                "declaration_claimed",
                declaration=str(declaration),
                producer=producer.name,
                target=str(target),
                closure=len(closure),
            )
        else:
            self._logger.debug("claim_reused", declaration=str(declaration), target=str(target))

        claim.entries = await producer.produce(declaration, context)
        return target

    def freeze(self) -> None:
        """Close the claim table. ``resolve`` is rejected afterwards."""
        self._frozen = True
        self._logger.debug("producer_chain_frozen", claimed=len(self._index))

    # =========================================================================
    # Lookups
    # =========================================================================

    def canonical(self, coordinate: ArtifactCoordinate) -> Optional[ArtifactCoordinate]:
        """The claimed coordinate ``coordinate`` refers to, following aliases."""
        if coordinate in self._index:
            return coordinate
        return self._aliases.get(coordinate)

    def is_claimed(self, coordinate: ArtifactCoordinate) -> bool:
        return self.canonical(coordinate) is not None

    def claim_for(self, coordinate: ArtifactCoordinate) -> Optional[Claim]:
        canonical = self.canonical(coordinate)
        if canonical is None:
            return None
        return self._claims[self._index[canonical]]

    def owner_of(self, coordinate: ArtifactCoordinate) -> Optional[BaseProducer]:
        claim = self.claim_for(coordinate)
        return claim.producer if claim is not None else None

    def _claimed_by(self, coordinate: ArtifactCoordinate) -> Optional[BaseProducer]:
        """Owner of ``coordinate`` itself, ignoring aliases."""
        target = self._index.get(coordinate)
        return self._claims[target].producer if target is not None else None

    def manifest(self) -> list[CacheEntry]:
        """Every published entry, in claim order."""
        return [entry for claim in self._claims.values() for entry in claim.entries]

    # =========================================================================
    # Re-derivation
    # =========================================================================

    async def rederive(
        self,
        coordinate: ArtifactCoordinate,
        context: ProductionContext,
    ) -> CacheEntry:
        """Have the owner of a claimed coordinate publish it again. Allowed on a
        frozen chain: the claim table does not change.

        The cache store re-checks the entry under its per-coordinate lock and
        invalidates it only there, so concurrent callers for one corrupt
        coordinate run the producer once and the rest join the result.

        Raises:
            UnresolvedDependencyError: If the coordinate was never claimed.
            PipelineStepError: If re-derivation fails.
        """
        canonical = self.canonical(coordinate)
        if canonical is None:
            raise UnresolvedDependencyError(
                message=f"{coordinate} was not claimed in this session",
                details={"coordinate": str(coordinate)},
            )
        claim = self._claims[self._index[canonical]]

        self._logger.warning(
            "rederiving_artifact",
            coordinate=str(canonical),
            producer=claim.producer.name,
        )
        entry = await claim.producer.publish(canonical, claim.declaration, context)
        claim.entries = [
            entry if existing.coordinate == canonical else existing
            for existing in claim.entries
        ]
        return entry
