"""
artiforge.core - Foundation Layer
=================================

Foundational building blocks every other Artiforge package depends on:

    - coordinates: ArtifactCoordinate (parse/format, Maven layout)
    - config:      ArtiforgeConfig, DownloadConfig, load_config
    - enums:       DependencyKind, SessionPhase, PipelineStep
    - models:      DependencyDeclaration, CacheEntry, DiscoveredFacts, ...
    - exceptions:  Structured exception hierarchy
    - logging:     structlog configuration

Dependency Rule:
    core/ depends on NOTHING else in the artiforge package.
"""

from artiforge.core.config import ArtiforgeConfig, DownloadConfig, load_config
from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind, PipelineStep, SessionPhase
from artiforge.core.exceptions import (
    ArtiforgeError,
    CacheCorruptionError,
    ConfigurationError,
    DownloadFailedError,
    DuplicateDeclarationError,
    ExtractionFailedError,
    InvalidCoordinateFormatError,
    PipelineStepError,
    RemapFailedError,
    RepackageFailedError,
    ResolutionError,
    SessionStateError,
    UnresolvedDependencyError,
)
from artiforge.core.models import (
    CacheEntry,
    DependencyDeclaration,
    DiscoveredFacts,
    ExpansionResult,
    ProducedFile,
)

__all__ = [
    # Config
    "ArtiforgeConfig",
    "DownloadConfig",
    "load_config",
    # Coordinates
    "ArtifactCoordinate",
    # Enums
    "DependencyKind",
    "PipelineStep",
    "SessionPhase",
    # Models
    "CacheEntry",
    "DependencyDeclaration",
    "DiscoveredFacts",
    "ExpansionResult",
    "ProducedFile",
    # Exceptions
    "ArtiforgeError",
    "CacheCorruptionError",
    "ConfigurationError",
    "DownloadFailedError",
    "DuplicateDeclarationError",
    "ExtractionFailedError",
    "InvalidCoordinateFormatError",
    "PipelineStepError",
    "RemapFailedError",
    "RepackageFailedError",
    "ResolutionError",
    "SessionStateError",
    "UnresolvedDependencyError",
]
