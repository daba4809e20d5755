"""
artiforge.producers - Derivation Producers
============================================

Each producer synthesizes one family of artifacts from upstream inputs:

    ┌──────────────────┬──────────┬─────────────────────────────────────────┐
    │ Producer         │ Kind     │ Closure                                 │
    ├──────────────────┼──────────┼─────────────────────────────────────────┤
    │ GameProducer     │ primary  │ jar, sources jar, pom                   │
    │ ModProducer      │ mod      │ jar, pom                                │
    │ VanillaProducer  │ vanilla  │ classifier jar, pom                     │
    └──────────────────┴──────────┴─────────────────────────────────────────┘

``default_producers()`` returns the standard chain order.
"""

from artiforge.producers.base import BaseProducer, ProductionContext
from artiforge.producers.game import GameProducer
from artiforge.producers.mods import ModProducer
from artiforge.producers.vanilla import VanillaProducer


def default_producers() -> list[BaseProducer]:
    """The standard producer order: game first, then mods, then vanilla."""
    return [GameProducer(), ModProducer(), VanillaProducer()]


__all__ = [
    "BaseProducer",
    "GameProducer",
    "ModProducer",
    "ProductionContext",
    "VanillaProducer",
    "default_producers",
]
