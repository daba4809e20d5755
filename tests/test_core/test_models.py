"""
Tests for artiforge.core.models
=================================

These tests verify the core Pydantic data models:
    - DependencyDeclaration: parsing, upstream coordinates, hashing
    - CacheEntry: sidecar JSON round-trip
    - DiscoveredFacts: build-property flattening
    - ExpansionResult: manifest coordinates and rewritten notations

All tests are unit tests: pure data validation, no I/O.
"""

from pathlib import Path

import pytest

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind
from artiforge.core.exceptions import InvalidCoordinateFormatError
from artiforge.core.models import (
    CacheEntry,
    DependencyDeclaration,
    DiscoveredFacts,
    ExpansionResult,
    ProducedFile,
)


# =============================================================================
# Test: DependencyDeclaration
# =============================================================================
class TestDependencyDeclaration:
    """Tests for DependencyDeclaration."""

    def test_parse_notation(self) -> None:
        decl = DependencyDeclaration.parse("com.example:coolmod:2.0:api", DependencyKind.MOD)
        assert decl.group == "com.example"
        assert decl.name == "coolmod"
        assert decl.version == "2.0"
        assert decl.classifier == "api"
        assert decl.kind is DependencyKind.MOD

    def test_parse_rejects_malformed(self) -> None:
        with pytest.raises(InvalidCoordinateFormatError):
            DependencyDeclaration.parse("com.example:game", DependencyKind.PRIMARY)

    def test_upstream_coordinate(self) -> None:
        decl = DependencyDeclaration.parse("com.example:game:1.0", DependencyKind.PRIMARY)
        assert str(decl.upstream()) == "com.example:game:1.0@jar"
        assert str(decl.upstream("zip")) == "com.example:game:1.0@zip"

    def test_hashable_and_usable_as_key(self) -> None:
        a = DependencyDeclaration.parse("g:n:1", DependencyKind.MOD)
        b = DependencyDeclaration.parse("g:n:1", DependencyKind.MOD)
        assert {a: 1}[b] == 1

    def test_kind_is_part_of_identity(self) -> None:
        a = DependencyDeclaration.parse("g:n:1", DependencyKind.MOD)
        b = DependencyDeclaration.parse("g:n:1", DependencyKind.PRIMARY)
        assert a != b

    def test_str_includes_kind(self) -> None:
        decl = DependencyDeclaration.parse("g:n:1:extra", DependencyKind.VANILLA)
        assert str(decl) == "g:n:1:extra (vanilla)"


# =============================================================================
# Test: CacheEntry / ProducedFile
# =============================================================================
class TestCacheEntry:
    """Tests for CacheEntry serialization."""

    def test_json_round_trip(self, tmp_path: Path) -> None:
        entry = CacheEntry(
            coordinate=ArtifactCoordinate.parse("g:n:1@pom"),
            path=tmp_path / "n-1.pom",
            sha256="ab" * 32,
            size_bytes=12,
            metadata={"facts": {"game_version": "1.12.2"}},
        )
        restored = CacheEntry.model_validate_json(entry.model_dump_json())
        assert restored == entry
        assert restored.produced_at.tzinfo is not None

    def test_negative_size_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(Exception):
            CacheEntry(
                coordinate=ArtifactCoordinate.parse("g:n:1"),
                path=tmp_path / "x",
                size_bytes=-1,
            )

    def test_produced_file_defaults(self, tmp_path: Path) -> None:
        assert ProducedFile(path=tmp_path / "a.jar").metadata == {}


# =============================================================================
# Test: DiscoveredFacts / ExpansionResult
# =============================================================================
class TestDiscoveredFacts:
    """Tests for DiscoveredFacts."""

    def test_as_properties(self) -> None:
        facts = DiscoveredFacts(game_version="1.12.2", mappings="stable")
        assert facts.as_properties() == {
            "GAME_VERSION": "1.12.2",
            "MAPPINGS_VERSION": "stable",
        }

    def test_as_properties_skips_unknown(self) -> None:
        assert DiscoveredFacts().as_properties() == {}


class TestExpansionResult:
    """Tests for ExpansionResult helpers."""

    def test_coordinates_and_notations(self, tmp_path: Path) -> None:
        decl = DependencyDeclaration.parse("g:mod:1:api", DependencyKind.MOD)
        target = ArtifactCoordinate.parse("g:mod:1_mapped_stable:api")
        result = ExpansionResult(
            rewrites={decl: target},
            manifest=[CacheEntry(coordinate=target, path=tmp_path / "x.jar")],
        )
        assert result.coordinates == [target]
        assert result.dependency_notations() == ["g:mod:1_mapped_stable:api"]
