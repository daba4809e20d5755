"""
artiforge.integrations - External Collaborators
=================================================

Interfaces (and stock implementations) for everything Artiforge consumes but
does not own:

    - downloads:  DownloadService (local Maven directory, HTTP Maven via httpx)
    - mappings:   MappingService + Mapping tables (static, SRG files)
    - properties: BuildPropertySink (write-once host build properties)
"""

from artiforge.integrations.downloads import (
    DownloadService,
    HttpMavenDownloadService,
    LocalMavenDownloadService,
    create_download_service,
)
from artiforge.integrations.mappings import (
    Mapping,
    MappingService,
    SrgFileMappingService,
    StaticMappingService,
    parse_srg,
)
from artiforge.integrations.properties import BuildPropertySink, InMemoryPropertySink

__all__ = [
    "BuildPropertySink",
    "DownloadService",
    "HttpMavenDownloadService",
    "InMemoryPropertySink",
    "LocalMavenDownloadService",
    "Mapping",
    "MappingService",
    "SrgFileMappingService",
    "StaticMappingService",
    "create_download_service",
    "parse_srg",
]
