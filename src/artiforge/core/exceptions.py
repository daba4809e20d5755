"""
artiforge.core.exceptions - Custom Exception Hierarchy
========================================================

Structured exceptions for Artiforge. Components raise and catch specific
exception types that carry context (error code, coordinate, step) instead of
bare strings, so a failed resolution can always be traced back to the
artifact and the pipeline step that broke.

Exception Hierarchy:
    ArtiforgeError (base)
        ├── ConfigurationError              - Invalid config, property conflicts
        ├── InvalidCoordinateFormatError    - Malformed coordinate string
        ├── ResolutionError                 - Declaration could not be routed
        │     ├── UnresolvedDependencyError - No producer claims it
        │     └── DuplicateDeclarationError - Singleton role declared twice
        ├── SessionStateError               - Operation illegal in current phase
        ├── CacheCorruptionError            - On-disk entry present but invalid
        └── PipelineStepError               - A derivation step failed
              ├── DownloadFailedError
              ├── ExtractionFailedError
              ├── RemapFailedError
              └── RepackageFailedError

Error Handling Flow:
    Step raises PipelineStepError
        → Producer lets it propagate (no automatic retry)
        → ResolutionSession marks itself FAILED and re-raises to the caller

    Cache lookup raises CacheCorruptionError
        → treated as a cache miss
        → during Serving: one re-derivation attempt, then fail

Usage:
    >>> from artiforge.core.exceptions import ExtractionFailedError
    >>> raise ExtractionFailedError(
    ...     message="Member 'game.jar' missing from distribution",
    ...     coordinate="com.example:game:1.0@zip",
    ...     details={"member": "game.jar"},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional

from artiforge.core.enums import PipelineStep


# =============================================================================
# Base Exception
# =============================================================================
# Every Artiforge exception inherits from this base so callers can catch all
# framework errors with one clause:
#
#   try:
#       result = await session.expand(declarations)
#   except ArtiforgeError as e:
#       logger.error(e.message, error_code=e.error_code, **e.details)
# =============================================================================
class ArtiforgeError(Exception):
    """Base exception for all Artiforge errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable code, UPPER_SNAKE_CASE.
        details: Additional debugging context (coordinates, paths, members).
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary (for structured logs)."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
class ConfigurationError(ArtiforgeError):
    """Raised when configuration is invalid, missing, or inconsistent.

    Also raised by the build-property sink when a key is written twice with
    different values, and by the session when no primary declaration exists.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Coordinate Errors
# =============================================================================
class InvalidCoordinateFormatError(ArtiforgeError):
    """Raised when a coordinate string does not match
    ``group:name:version[:classifier][@extension]``.

    Attributes:
        text: The offending input string.
    """

    def __init__(
        self,
        message: str,
        text: str,
        error_code: str = "INVALID_COORDINATE_FORMAT",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["text"] = text

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.text = text


# =============================================================================
# Resolution Errors
# =============================================================================
# Raised while routing declarations to producers. These are validation
# failures: they are detected before any download or derivation work starts.
# =============================================================================
class ResolutionError(ArtiforgeError):
    """Base class for declaration routing failures."""

    def __init__(
        self,
        message: str,
        declaration: Optional[str] = None,
        error_code: str = "RESOLUTION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        if declaration:
            enriched_details["declaration"] = declaration

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.declaration = declaration


class UnresolvedDependencyError(ResolutionError):
    """Raised when no producer in the chain claims a declaration."""

    def __init__(
        self,
        message: str,
        declaration: Optional[str] = None,
        error_code: str = "UNRESOLVED_DEPENDENCY",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            declaration=declaration,
            error_code=error_code,
            details=details,
        )


class DuplicateDeclarationError(ResolutionError):
    """Raised when a singleton role (e.g. the primary game artifact) is
    declared more than once in a session.
    """

    def __init__(
        self,
        message: str,
        declaration: Optional[str] = None,
        error_code: str = "DUPLICATE_DECLARATION",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            declaration=declaration,
            error_code=error_code,
            details=details,
        )


# =============================================================================
# Session State Error
# =============================================================================
class SessionStateError(ArtiforgeError):
    """Raised when a session operation is called in the wrong phase,
    e.g. ``serve()`` before Expansion has committed.
    """

    def __init__(
        self,
        message: str,
        phase: str,
        error_code: str = "SESSION_STATE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["phase"] = phase

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.phase = phase


# =============================================================================
# Cache Corruption
# =============================================================================
# Not fatal by itself: callers treat a corrupt entry as a miss and re-derive.
# =============================================================================
class CacheCorruptionError(ArtiforgeError):
    """Raised when a cache entry is present on disk but unreadable or invalid
    (missing/garbled sidecar, size or hash mismatch).
    """

    def __init__(
        self,
        message: str,
        coordinate: str,
        error_code: str = "CACHE_CORRUPTION",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["coordinate"] = coordinate

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.coordinate = coordinate


# =============================================================================
# Pipeline Step Errors
# =============================================================================
# Each derivation step has its own error kind. All carry the coordinate being
# produced and the step name, so the caller sees e.g.
#   [EXTRACTION_FAILED] com.example:game:1.0_mapped_stable@jar (step=extract)
# None of these are retried automatically.
# =============================================================================
class PipelineStepError(ArtiforgeError):
    """Raised when a step of a derivation pipeline fails.

    Attributes:
        coordinate: Canonical string of the coordinate being produced.
        step: The pipeline step that failed.
    """

    default_step: PipelineStep = PipelineStep.FETCH

    def __init__(
        self,
        message: str,
        coordinate: str,
        step: Optional[PipelineStep] = None,
        error_code: str = "PIPELINE_STEP_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        step = step or self.default_step
        enriched_details = details or {}
        enriched_details["coordinate"] = coordinate
        enriched_details["step"] = step.value

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.coordinate = coordinate
        self.step = step

    def __str__(self) -> str:
        return f"{self.message} [{self.coordinate}, step={self.step.value}]"


class DownloadFailedError(PipelineStepError):
    """Raised when an upstream artifact cannot be fetched."""

    default_step = PipelineStep.FETCH

    def __init__(
        self,
        message: str,
        coordinate: str,
        step: Optional[PipelineStep] = None,
        error_code: str = "DOWNLOAD_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, coordinate, step, error_code, details)


class ExtractionFailedError(PipelineStepError):
    """Raised when a member cannot be read from a downloaded archive."""

    default_step = PipelineStep.EXTRACT

    def __init__(
        self,
        message: str,
        coordinate: str,
        step: Optional[PipelineStep] = None,
        error_code: str = "EXTRACTION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, coordinate, step, error_code, details)


class RemapFailedError(PipelineStepError):
    """Raised when the name-remapping transform fails."""

    default_step = PipelineStep.REMAP

    def __init__(
        self,
        message: str,
        coordinate: str,
        step: Optional[PipelineStep] = None,
        error_code: str = "REMAP_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, coordinate, step, error_code, details)


class RepackageFailedError(PipelineStepError):
    """Raised when the final artifact layout cannot be written."""

    default_step = PipelineStep.REPACKAGE

    def __init__(
        self,
        message: str,
        coordinate: str,
        step: Optional[PipelineStep] = None,
        error_code: str = "REPACKAGE_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, coordinate, step, error_code, details)
