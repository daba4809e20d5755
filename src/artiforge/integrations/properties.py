"""
artiforge.integrations.properties - Build-Property Sink
=========================================================

After Expansion, discovered facts (``GAME_VERSION``, ``MAPPINGS_VERSION``) are
published to the host build so later, independently scheduled steps can read
them. The sink is write-once per key: writing the same value again is a no-op,
writing a different value is a configuration error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from artiforge.core.exceptions import ConfigurationError

logger = structlog.get_logger()


class BuildPropertySink(ABC):
    """Process-wide key/value store owned by the host build."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Record ``key=value``.

        Raises:
            ConfigurationError: If ``key`` already holds a different value.
        """
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    def update(self, properties: dict[str, str]) -> None:
        for key, value in properties.items():
            self.set(key, value)


class InMemoryPropertySink(BuildPropertySink):
    """Dict-backed sink for tests and hosts without their own property store."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def set(self, key: str, value: str) -> None:
        existing = self._values.get(key)
        if existing is not None and existing != value:
            raise ConfigurationError(
                message=f"Build property '{key}' already set to '{existing}', refusing '{value}'",
                error_code="PROPERTY_CONFLICT",
                details={"key": key, "existing": existing, "value": value},
            )
        if existing is None:
            self._values[key] = value
            logger.debug("build_property_set", key=key, value=value)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)
