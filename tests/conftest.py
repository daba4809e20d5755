"""
Shared Test Fixtures for Artiforge
=====================================

Fixtures are organized by layer:

    1. Configuration fixtures
    2. Integration fixtures (local Maven repo, download + mapping services)
    3. Infrastructure fixtures (cache store, download cache)
    4. Producer / orchestration fixtures (context, chain, session)

Everything lives under pytest's ``tmp_path``; no network access.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from artiforge.core.config import ArtiforgeConfig, DownloadConfig
from artiforge.core.enums import DependencyKind
from artiforge.core.models import DependencyDeclaration
from artiforge.infrastructure.cache_store import FileSystemCacheStore
from artiforge.infrastructure.download_cache import DownloadCache
from artiforge.integrations.downloads import LocalMavenDownloadService
from artiforge.integrations.mappings import StaticMappingService
from artiforge.integrations.properties import InMemoryPropertySink
from artiforge.orchestration.producer_chain import ProducerChain
from artiforge.orchestration.session import ResolutionSession
from artiforge.producers import ProductionContext, default_producers
from tests.helpers import STABLE_MAPPING, RecordingDownloadService, add_game_distribution


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def maven_repo(tmp_path: Path) -> Path:
    """Empty local Maven repository directory."""
    root = tmp_path / "maven"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, maven_repo: Path) -> ArtiforgeConfig:
    """Configuration rooted in tmp_path, fetching from the local repo."""
    return ArtiforgeConfig(
        cache_dir=tmp_path / "cache",
        download_cache_dir=tmp_path / "downloads",
        mappings="stable",
        download=DownloadConfig(local_repository=maven_repo),
    )


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def game_repo(maven_repo: Path) -> Path:
    """Local repo holding ``com.example:game:1.0@zip`` with sources and an
    ``extra`` vanilla jar.
    """
    add_game_distribution(
        maven_repo,
        extras={"extra": {"assets/icon.png": b"\x89PNG", "data/loot.json": b"{}"}},
    )
    return maven_repo


@pytest.fixture
def download_service(maven_repo: Path) -> RecordingDownloadService:
    """Local Maven download service that records every fetch."""
    return RecordingDownloadService(LocalMavenDownloadService(maven_repo))


@pytest.fixture
def mapping_service() -> StaticMappingService:
    """Mapping service knowing the ``stable`` table."""
    return StaticMappingService({"stable": STABLE_MAPPING})


@pytest.fixture
def property_sink() -> InMemoryPropertySink:
    return InMemoryPropertySink()


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def cache_store(config: ArtiforgeConfig) -> FileSystemCacheStore:
    """Fresh synthesized-artifact store."""
    return FileSystemCacheStore(config.cache_dir)


@pytest.fixture
def download_cache(config: ArtiforgeConfig, download_service) -> DownloadCache:
    """Fresh download cache in front of the recording service."""
    return DownloadCache(FileSystemCacheStore(config.download_cache_dir, name="downloads"), download_service)


# =============================================================================
# Producers / Orchestration
# =============================================================================

@pytest.fixture
def context(config, cache_store, download_cache, mapping_service) -> ProductionContext:
    return ProductionContext(
        config=config,
        cache_store=cache_store,
        download_cache=download_cache,
        mapping_service=mapping_service,
    )


@pytest.fixture
def game_declaration() -> DependencyDeclaration:
    """``com.example:game:1.0`` as the primary dependency."""
    return DependencyDeclaration(
        group="com.example",
        name="game",
        version="1.0",
        kind=DependencyKind.PRIMARY,
    )


@pytest.fixture
def chain() -> ProducerChain:
    """Default producer chain (game, mod, vanilla)."""
    return ProducerChain(default_producers())


@pytest.fixture
def session(config, chain, context, property_sink) -> ResolutionSession:
    """Fresh resolution session in phase CREATED."""
    return ResolutionSession(config, chain, context, property_sink=property_sink)
