"""
artiforge.orchestration - Producer Chain and Resolution Session
=================================================================

    ResolutionSession ──→ ProducerChain ──→ producers ──→ CacheStore
"""

from artiforge.orchestration.producer_chain import Claim, ProducerChain
from artiforge.orchestration.session import ResolutionSession

__all__ = [
    "Claim",
    "ProducerChain",
    "ResolutionSession",
]
