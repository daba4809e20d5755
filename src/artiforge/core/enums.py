"""
artiforge.core.enums - Type-Safe Enumerations
===============================================

All enumeration types used throughout Artiforge. Every enum inherits from
both ``str`` and ``Enum`` so values serialize to plain strings (Pydantic and
JSON friendly) and compare equal to their string form::

    >>> DependencyKind.PRIMARY == "primary"
    True

Architecture Mapping:
    ┌─────────────────────────────────────────────────────────────────┐
    │  INPUT                                                          │
    │    DependencyKind: which role a declared dependency plays       │
    ├─────────────────────────────────────────────────────────────────┤
    │  ORCHESTRATION                                                  │
    │    SessionPhase: CREATED → EXPANDING → SERVING (or FAILED)      │
    ├─────────────────────────────────────────────────────────────────┤
    │  PRODUCERS                                                      │
    │    PipelineStep: the named steps of a derivation pipeline       │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Dependency Kind
# =============================================================================
# The role tag carried by every DependencyDeclaration. The Producer Chain
# routes declarations to producers by kind:
#
#   PRIMARY → producers/game.py     (deobfuscated game artifact, one per build)
#   MOD     → producers/mods.py     (third-party mod jars remapped to dev names)
#   VANILLA → producers/vanilla.py  (unmapped extra/slim/data jars)
# =============================================================================
class DependencyKind(str, Enum):
    """Role of a declared dependency.

    PRIMARY is a singleton role: a session accepts at most one PRIMARY
    declaration. MOD and VANILLA may appear any number of times.
    """

    PRIMARY = "primary"
    MOD = "mod"
    VANILLA = "vanilla"

    @property
    def is_singleton(self) -> bool:
        """Whether only one declaration of this kind is allowed per session."""
        return self is DependencyKind.PRIMARY


# =============================================================================
# Session Phase
# =============================================================================
# The Resolution Session is a strict, one-way state machine:
#
#   CREATED ──expand()──→ EXPANDING ──success──→ SERVING
#                              │                    │
#                              └──failure──→ FAILED ←┘ (re-derivation failed)
#
# serve() is only legal in SERVING. expand() is only legal in CREATED.
# =============================================================================
class SessionPhase(str, Enum):
    """Lifecycle phase of a ResolutionSession."""

    CREATED = "created"
    EXPANDING = "expanding"
    SERVING = "serving"
    FAILED = "failed"


# =============================================================================
# Pipeline Step
# =============================================================================
class PipelineStep(str, Enum):
    """Named steps of a derivation pipeline.

    Step names are attached to PipelineStepError instances so a failed
    session reports exactly which step broke for which coordinate.
    """

    FETCH = "fetch"
    INSPECT = "inspect"
    EXTRACT = "extract"
    REMAP = "remap"
    REPACKAGE = "repackage"
    DESCRIBE = "describe"
