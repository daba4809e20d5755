"""
artiforge.infrastructure - Storage Layer
==========================================

On-disk persistence for everything Artiforge fetches or synthesizes.

    ┌─────────────── PRODUCERS ───────────────────────────┐
    │  GameProducer, ModProducer, VanillaProducer          │
    └───────────┬─────────────────────────┬───────────────┘
                │ upstream fetch          │ publish synthesized
                ▼                         ▼
    ┌────────────────────┐     ┌─────────────────────────┐
    │  DownloadCache     │     │  FileSystemCacheStore   │
    │  (own store root)  │     │  (final artifacts)      │
    └────────────────────┘     └─────────────────────────┘

Components:
    - CacheStore (ABC) / FileSystemCacheStore: coordinate-keyed atomic store
    - DownloadCache: fetch-once cache in front of a DownloadService
"""

from artiforge.infrastructure.cache_store import (
    CacheStore,
    FileSystemCacheStore,
    ProducerFn,
    sha256_file,
)
from artiforge.infrastructure.download_cache import DownloadCache

__all__ = [
    "CacheStore",
    "DownloadCache",
    "FileSystemCacheStore",
    "ProducerFn",
    "sha256_file",
]
