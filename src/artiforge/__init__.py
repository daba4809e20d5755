"""
Artiforge - Artifact Virtualization for Build Tools
=====================================================

Artiforge makes artifacts that exist nowhere upstream look like ordinary
Maven dependencies. Declared dependencies are expanded into a closure of
concrete coordinates, each synthesized on first use by a producer pipeline
(fetch → extract → remap → repackage) and published into a local cache; the
host build then resolves the rewritten coordinates purely from that cache.

Layers (top to bottom):
    1. Facade         - Artiforge
    2. Orchestration  - ResolutionSession, ProducerChain
    3. Producers      - GameProducer, ModProducer, VanillaProducer
    4. Infrastructure - FileSystemCacheStore, DownloadCache
    5. Integrations   - DownloadService, MappingService, BuildPropertySink

Quick Start:
    >>> from artiforge import Artiforge
    >>> async with Artiforge() as forge:
    ...     result = await forge.expand(declarations)
"""

# =============================================================================
# Package Version
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# For specific components, import from submodules directly:
#   from artiforge.core.config import ArtiforgeConfig
#   from artiforge.core.models import DependencyDeclaration
# =============================================================================
from artiforge.facade import Artiforge

__all__ = ["Artiforge", "__version__"]
