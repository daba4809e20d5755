"""
artiforge.core.config - Configuration Management
==================================================

Configuration is loaded from multiple sources (highest priority first):

    1. Explicit constructor arguments, including values read from a YAML
       file (``load_config`` passes them to the constructor)
    2. Environment variables (prefixed with ARTIFORGE_), for keys the YAML
       file does not set
    3. Default values defined in the models below

Architecture Context:
    The top-level ArtiforgeConfig is created once and passed down:

        ArtiforgeConfig
            ├── cache_dir / verify_hashes  → FileSystemCacheStore
            ├── download_cache_dir         → DownloadCache
            ├── DownloadConfig             → Local/Http Maven download services
            ├── mappings                   → MappingService lookups, synthesized versions
            └── max_parallel_pipelines     → ResolutionSession

Environment Variables:
    ARTIFORGE_LOG_LEVEL=DEBUG
    ARTIFORGE_CACHE_DIR=/var/cache/artiforge
    ARTIFORGE_MAPPINGS=stable_39
    ARTIFORGE_DOWNLOAD__TIMEOUT_SECONDS=120
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from artiforge.core.exceptions import ConfigurationError


# =============================================================================
# Download Configuration
# =============================================================================
# Where upstream artifacts come from. A local Maven-layout directory wins when
# set (offline builds, tests); otherwise the HTTP repositories are tried in
# order.
# =============================================================================
class DownloadConfig(BaseModel):
    """Configuration for upstream artifact retrieval.

    Attributes:
        repositories: Maven repository base URLs, tried in order.
        local_repository: Optional Maven-layout directory used instead of HTTP.
        timeout_seconds: Per-request timeout for HTTP downloads.
    """

    repositories: list[str] = Field(
        default_factory=lambda: [
            "https://maven.minecraftforge.net/",
            "https://libraries.minecraft.net/",
            "https://repo.maven.apache.org/maven2/",
        ],
        description="Maven repository base URLs, tried in order",
    )
    local_repository: Optional[Path] = Field(
        default=None,
        description="Maven-layout directory to fetch from instead of HTTP",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )


# =============================================================================
# Main Configuration
# =============================================================================
class ArtiforgeConfig(BaseSettings):
    """Top-level configuration for an Artiforge resolution session.

    Attributes:
        environment: Deployment environment name.
        log_level: Logging level for structlog output.
        cache_dir: Root of the final-artifact cache store.
        download_cache_dir: Root of the shared upstream download cache.
        mappings: Mapping version token. Passed to the mapping service and
            embedded in synthesized versions (``1.0_mapped_<mappings>``), so
            changing it produces new coordinates instead of stale cache hits.
        verify_hashes: Re-hash cached files on lookup to detect corruption.
        require_primary: Fail validation when no primary declaration exists.
        max_parallel_pipelines: Upper bound on concurrently running pipelines
            for independent coordinates.
        download: Upstream retrieval configuration.

    Example:
        >>> config = ArtiforgeConfig(mappings="stable_39", cache_dir=Path("/tmp/c"))
    """

    environment: Literal["dev", "ci", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    cache_dir: Path = Field(
        default=Path(".artiforge/cache"),
        description="Root directory of the synthesized-artifact cache",
    )
    download_cache_dir: Path = Field(
        default=Path(".artiforge/downloads"),
        description="Root directory of the shared download cache",
    )
    mappings: str = Field(
        default="official",
        pattern=r"^[A-Za-z0-9._\-]+$",
        description="Mapping version token used for remapping",
    )
    verify_hashes: bool = Field(
        default=True,
        description="Verify SHA-256 of cached files on lookup",
    )
    require_primary: bool = Field(
        default=True,
        description="Require exactly one primary declaration per session",
    )
    max_parallel_pipelines: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum concurrently running derivation pipelines",
    )

    download: DownloadConfig = Field(
        default_factory=DownloadConfig,
        description="Upstream download configuration",
    )

    # -------------------------------------------------------------------------
    #   - env_prefix: All env vars start with "ARTIFORGE_"
    #   - env_nested_delimiter: ARTIFORGE_DOWNLOAD__TIMEOUT_SECONDS → download.timeout_seconds
    # -------------------------------------------------------------------------
    model_config = {
        "env_prefix": "ARTIFORGE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> ArtiforgeConfig:
    """Load configuration from a YAML file and/or environment variables.

    Args:
        path: Path to a YAML file. If None, ``artiforge.yaml`` in the current
            directory is used when present; otherwise defaults + env vars.

    Returns:
        A validated ArtiforgeConfig.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigurationError: If the YAML is malformed or not a mapping.
    """
    if path is None:
        default_path = Path("artiforge.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Invalid YAML in {path}: {e}",
                    error_code="INVALID_CONFIG_FILE",
                    details={"path": str(config_path)},
                ) from e

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file {path} must contain a mapping",
                error_code="INVALID_CONFIG_FILE",
                details={"path": str(config_path)},
            )
        yaml_data = raw_data

    return ArtiforgeConfig(**yaml_data)
