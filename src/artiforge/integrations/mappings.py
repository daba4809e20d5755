"""
artiforge.integrations.mappings - Name-Remapping Tables
=========================================================

The mapping service is an external collaborator: given a mapping version
token it returns a ``Mapping`` (obfuscated class name → readable class
name). Artiforge treats the table as opaque apart from the one operation the
remap step needs: translating jar entry names.

Implementations:
    - StaticMappingService:  in-memory tables, optional identity fallback
    - SrgFileMappingService: ``<directory>/<version>.srg`` files (``CL:`` lines)

SRG Format (class lines only; FD/MD/PK lines are ignored)::

    CL: a net/minecraft/client/Minecraft
    CL: b net/minecraft/world/World
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from artiforge.core.exceptions import ConfigurationError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Mapping Model
# =============================================================================
class Mapping(BaseModel):
    """A class-name remapping table in JVM internal form (``a/b/C``).

    Attributes:
        version: The mapping version token this table belongs to.
        classes: Obfuscated internal name → mapped internal name.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    classes: dict[str, str] = Field(default_factory=dict)

    def map_class(self, internal_name: str) -> str:
        """Map a class name; inner classes follow their outer class."""
        if internal_name in self.classes:
            return self.classes[internal_name]
        outer, sep, inner = internal_name.partition("$")
        if sep and outer in self.classes:
            return f"{self.classes[outer]}${inner}"
        return internal_name

    def map_entry(self, entry_name: str) -> str:
        """Map a jar entry name. Only ``.class`` and ``.java`` entries move."""
        for suffix in (".class", ".java"):
            if entry_name.endswith(suffix):
                return self.map_class(entry_name[: -len(suffix)]) + suffix
        return entry_name

    @classmethod
    def identity(cls, version: str) -> Mapping:
        return cls(version=version)


# =============================================================================
# Abstract Mapping Service
# =============================================================================
class MappingService(ABC):
    """Interface of the external mapping provider."""

    @abstractmethod
    async def lookup(self, version: str) -> Mapping:
        """Return the mapping table for ``version``.

        Raises:
            ConfigurationError: If no table exists for ``version``.
        """
        ...


class StaticMappingService(MappingService):
    """Serves tables from memory.

    Args:
        mappings: Version token → Mapping.
        identity_fallback: Return an empty (identity) mapping for unknown
            versions instead of failing. Used for the ``official`` token,
            where jars already carry readable names.
    """

    def __init__(
        self,
        mappings: Optional[dict[str, Mapping]] = None,
        identity_fallback: bool = False,
    ) -> None:
        self._mappings = dict(mappings or {})
        self._identity_fallback = identity_fallback

    def add(self, mapping: Mapping) -> None:
        self._mappings[mapping.version] = mapping

    async def lookup(self, version: str) -> Mapping:
        if version in self._mappings:
            return self._mappings[version]
        if self._identity_fallback:
            return Mapping.identity(version)
        raise ConfigurationError(
            message=f"No mapping table for version '{version}'",
            error_code="MAPPINGS_NOT_FOUND",
            details={"version": version, "available": sorted(self._mappings)},
        )


class SrgFileMappingService(MappingService):
    """Reads ``<directory>/<version>.srg`` files, caching parsed tables."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._cache: dict[str, Mapping] = {}
        self._logger = logger.bind(component="srg_mapping_service")

    async def lookup(self, version: str) -> Mapping:
        if version not in self._cache:
            path = self._directory / f"{version}.srg"
            if not path.is_file():
                raise ConfigurationError(
                    message=f"Mapping file not found: {path}",
                    error_code="MAPPINGS_NOT_FOUND",
                    details={"version": version, "path": str(path)},
                )
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            self._cache[version] = parse_srg(text, version)
            self._logger.debug(
                "mappings_loaded",
                version=version,
                classes=len(self._cache[version].classes),
            )
        return self._cache[version]


def parse_srg(text: str, version: str) -> Mapping:
    """Parse the ``CL:`` lines of an SRG file into a Mapping.

    Raises:
        ConfigurationError: On a malformed ``CL:`` line.
    """
    classes: dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line.startswith("CL:"):
            continue
        parts = line[3:].split()
        if len(parts) != 2:
            raise ConfigurationError(
                message=f"Malformed SRG class line {lineno}: {raw!r}",
                error_code="INVALID_MAPPINGS",
                details={"version": version, "line": lineno},
            )
        classes[parts[0]] = parts[1]
    return Mapping(version=version, classes=classes)
