"""
artiforge.core.models - Core Data Models
==========================================

The Pydantic models that flow between layers. Coordinates live in
``coordinates.py``; everything else a session consumes or returns is here.

Model Overview:
    DependencyDeclaration → caller intent ("I need game 1.0 as primary")
    ProducedFile          → what a producer function hands to the cache store
    CacheEntry            → a published, complete artifact on disk
    DiscoveredFacts       → values learned while deriving (game version, libs)
    ExpansionResult       → everything Expansion hands back to the caller

Data Flow:
    ┌──────────────┐  DependencyDeclaration  ┌──────────────┐
    │    Caller    │ ──────────────────────→ │   Session    │
    │              │                         │  (expand)    │
    │              │ ←────────────────────── │              │
    └──────────────┘     ExpansionResult     └──────┬───────┘
                     (rewrites + manifest)          │ ProducedFile
                                                    ▼
                                             ┌──────────────┐
                                             │ Cache Store  │──→ CacheEntry
                                             └──────────────┘
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind


def _now() -> datetime:
    """Current UTC timestamp. All Artiforge timestamps are UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# Dependency Declaration
# =============================================================================
# Created at configuration time from caller input. Not resolvable to a file
# until it has passed through exactly one producer. Frozen so it can key the
# rewrite table handed back to the caller.
# =============================================================================
class DependencyDeclaration(BaseModel):
    """Caller intent to depend on an artifact by logical coordinates.

    Attributes:
        group: Maven group of the upstream artifact.
        name: Artifact name.
        version: Upstream version token.
        kind: Role of the dependency (primary game artifact, mod, vanilla).
        classifier: Optional classifier. Vanilla declarations use it to pick
            the extra/slim/data jar; mods may use it to pick a jar variant.

    Example:
        >>> decl = DependencyDeclaration(
        ...     group="com.example", name="game", version="1.0",
        ...     kind=DependencyKind.PRIMARY,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    group: str = Field(description="Upstream Maven group")
    name: str = Field(description="Upstream artifact name")
    version: str = Field(description="Upstream version token")
    kind: DependencyKind = Field(description="Role of this dependency")
    classifier: Optional[str] = Field(
        default=None,
        description="Optional upstream classifier",
    )

    @classmethod
    def parse(cls, notation: str, kind: DependencyKind) -> DependencyDeclaration:
        """Build a declaration from Gradle-style ``group:name:version[:classifier]``."""
        coordinate = ArtifactCoordinate.parse(notation)
        return cls(
            group=coordinate.group,
            name=coordinate.name,
            version=coordinate.version,
            classifier=coordinate.classifier,
            kind=kind,
        )

    def upstream(self, extension: str = "jar") -> ArtifactCoordinate:
        """The upstream coordinate this declaration names."""
        return ArtifactCoordinate(
            group=self.group,
            name=self.name,
            version=self.version,
            classifier=self.classifier,
            extension=extension,
        )

    def __str__(self) -> str:
        text = f"{self.group}:{self.name}:{self.version}"
        if self.classifier:
            text += f":{self.classifier}"
        return f"{text} ({self.kind.value})"


# =============================================================================
# Produced File
# =============================================================================
class ProducedFile(BaseModel):
    """Result of a producer function: a file in the private work directory,
    plus metadata to persist alongside the cache entry.
    """

    path: Path
    metadata: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Cache Entry
# =============================================================================
# Persisted as a JSON sidecar next to the artifact. Presence of a valid
# sidecar is the commit marker: the file it describes is complete.
# =============================================================================
class CacheEntry(BaseModel):
    """A complete, published artifact in a cache store.

    Attributes:
        coordinate: The artifact's coordinate.
        path: Absolute location of the artifact file.
        sha256: Hex digest of the file contents.
        size_bytes: File size at publish time.
        produced_at: When the artifact was published (UTC).
        metadata: Producer-supplied metadata (e.g. discovered facts).
    """

    model_config = ConfigDict(frozen=True)

    coordinate: ArtifactCoordinate
    path: Path
    sha256: Optional[str] = None
    size_bytes: int = Field(default=0, ge=0)
    produced_at: datetime = Field(default_factory=_now)
    metadata: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Discovered Facts
# =============================================================================
# Values that can only be learned by inspecting downloaded artifacts. They are
# returned by Expansion and passed explicitly to every producer that needs
# them (ProductionContext), never stashed in global state.
# =============================================================================
class DiscoveredFacts(BaseModel):
    """Typed record of values discovered during Expansion.

    Attributes:
        game_version: Version id read from the game distribution.
        mappings: The mappings token the session remaps with.
        libraries: Library coordinates the game depends on.
    """

    game_version: Optional[str] = None
    mappings: Optional[str] = None
    libraries: list[str] = Field(default_factory=list)

    def as_properties(self) -> dict[str, str]:
        """Flatten into build properties for an external property sink."""
        properties: dict[str, str] = {}
        if self.game_version:
            properties["GAME_VERSION"] = self.game_version
        if self.mappings:
            properties["MAPPINGS_VERSION"] = self.mappings
        return properties


# =============================================================================
# Expansion Result
# =============================================================================
class ExpansionResult(BaseModel):
    """Everything Expansion hands back to the caller.

    Attributes:
        facts: Discovered facts (game version, libraries).
        rewrites: Declaration → synthesized coordinate, for the caller to
            splice into its own dependency graph.
        manifest: Every synthesized cache entry, in production order.
    """

    facts: DiscoveredFacts = Field(default_factory=DiscoveredFacts)
    rewrites: dict[DependencyDeclaration, ArtifactCoordinate] = Field(default_factory=dict)
    manifest: list[CacheEntry] = Field(default_factory=list)

    @property
    def coordinates(self) -> list[ArtifactCoordinate]:
        """All synthesized coordinates, in manifest order."""
        return [entry.coordinate for entry in self.manifest]

    def dependency_notations(self) -> list[str]:
        """Rewritten dependency strings, e.g. ``g:n:1.0_mapped_stable``."""
        notations = []
        for coordinate in self.rewrites.values():
            text = f"{coordinate.group}:{coordinate.name}:{coordinate.version}"
            if coordinate.classifier:
                text += f":{coordinate.classifier}"
            notations.append(text)
        return notations
