"""
artiforge.producers.steps - Derivation Pipeline Steps
=======================================================

The building blocks producers chain together. Each step is a blocking
function (producers run them through ``asyncio.to_thread``) that translates
library failures into the step's own error kind, tagged with the coordinate
being produced:

    inspect_json   → ExtractionFailedError (step=inspect)
    extract_member → ExtractionFailedError (step=extract)
    remap_jar      → RemapFailedError      (step=remap)
    repackage_jar  → RepackageFailedError  (step=repackage)
    write_pom      → RepackageFailedError  (step=describe)

Output jars are deterministic: entries sorted, fixed timestamps, a fresh
``META-INF/MANIFEST.MF`` first, and signature files dropped (remapped classes
would no longer match them).
"""

from __future__ import annotations

import json
import zipfile
from pathlib import Path
from typing import Any, Optional
from xml.etree import ElementTree

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import PipelineStep
from artiforge.core.exceptions import (
    ExtractionFailedError,
    InvalidCoordinateFormatError,
    RemapFailedError,
    RepackageFailedError,
)
from artiforge.integrations.mappings import Mapping

# Earliest timestamp a zip entry can carry.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
MANIFEST_NAME = "META-INF/MANIFEST.MF"
_SIGNATURE_SUFFIXES = (".SF", ".RSA", ".DSA", ".EC")


def _is_signature(name: str) -> bool:
    upper = name.upper()
    return upper.startswith("META-INF/") and upper.endswith(_SIGNATURE_SUFFIXES)


# =============================================================================
# Inspect / Extract
# =============================================================================

def has_member(archive: Path, member: str, coordinate: str) -> bool:
    """Whether ``archive`` contains ``member``."""
    try:
        with zipfile.ZipFile(archive) as zf:
            return member in zf.namelist()
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionFailedError(
            message=f"Cannot open archive {archive.name}: {e}",
            coordinate=coordinate,
            details={"archive": str(archive)},
        ) from e


def inspect_json(archive: Path, member: str, coordinate: str) -> dict[str, Any]:
    """Read and parse a JSON member (e.g. ``version.json``) of ``archive``."""
    try:
        with zipfile.ZipFile(archive) as zf:
            data = json.loads(zf.read(member).decode("utf-8"))
    except KeyError as e:
        raise ExtractionFailedError(
            message=f"Member '{member}' missing from {archive.name}",
            coordinate=coordinate,
            step=PipelineStep.INSPECT,
            details={"member": member},
        ) from e
    except (zipfile.BadZipFile, OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ExtractionFailedError(
            message=f"Cannot read '{member}' from {archive.name}: {e}",
            coordinate=coordinate,
            step=PipelineStep.INSPECT,
            details={"member": member},
        ) from e

    if not isinstance(data, dict):
        raise ExtractionFailedError(
            message=f"'{member}' must contain a JSON object",
            coordinate=coordinate,
            step=PipelineStep.INSPECT,
            details={"member": member},
        )
    return data


def extract_member(archive: Path, member: str, destination: Path, coordinate: str) -> Path:
    """Copy one member of ``archive`` to ``destination``."""
    try:
        with zipfile.ZipFile(archive) as zf:
            with zf.open(member) as src, open(destination, "wb") as dst:
                while chunk := src.read(1024 * 1024):
                    dst.write(chunk)
    except KeyError as e:
        raise ExtractionFailedError(
            message=f"Member '{member}' missing from {archive.name}",
            coordinate=coordinate,
            details={"member": member},
        ) from e
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionFailedError(
            message=f"Cannot extract '{member}' from {archive.name}: {e}",
            coordinate=coordinate,
            details={"member": member},
        ) from e
    return destination


# =============================================================================
# Remap
# =============================================================================

def remap_jar(source: Path, mapping: Mapping, destination: Path, coordinate: str) -> Path:
    """Rename class/source entries of ``source`` according to ``mapping``.

    Raises:
        RemapFailedError: If the jar is unreadable or two entries collide
            after renaming.
    """
    seen: dict[str, str] = {}
    try:
        with zipfile.ZipFile(source) as zin, zipfile.ZipFile(
            destination, "w", compression=zipfile.ZIP_DEFLATED
        ) as zout:
            for info in zin.infolist():
                if info.is_dir():
                    continue
                target = mapping.map_entry(info.filename)
                if target in seen:
                    raise RemapFailedError(
                        message=(
                            f"Entries '{seen[target]}' and '{info.filename}' "
                            f"both map to '{target}'"
                        ),
                        coordinate=coordinate,
                        details={"entry": target, "mappings": mapping.version},
                    )
                seen[target] = info.filename
                zout.writestr(target, zin.read(info.filename))
    except (zipfile.BadZipFile, OSError) as e:
        raise RemapFailedError(
            message=f"Cannot remap {source.name}: {e}",
            coordinate=coordinate,
            details={"mappings": mapping.version},
        ) from e
    return destination


# =============================================================================
# Repackage
# =============================================================================

def _manifest_bytes(attributes: dict[str, str]) -> bytes:
    lines = ["Manifest-Version: 1.0"]
    lines.extend(f"{key}: {value}" for key, value in sorted(attributes.items()))
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")


def _write_entry(zout: zipfile.ZipFile, name: str, data: bytes) -> None:
    info = zipfile.ZipInfo(name, date_time=_FIXED_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zout.writestr(info, data)


def repackage_jar(
    source: Optional[Path],
    destination: Path,
    coordinate: str,
    manifest: Optional[dict[str, str]] = None,
) -> Path:
    """Write the final deterministic jar.

    Args:
        source: Jar whose entries are copied; None writes a manifest-only jar.
        destination: Output path.
        coordinate: Coordinate being produced (for errors).
        manifest: Extra manifest attributes.
    """
    try:
        with zipfile.ZipFile(destination, "w") as zout:
            _write_entry(zout, MANIFEST_NAME, _manifest_bytes(manifest or {}))
            if source is not None:
                with zipfile.ZipFile(source) as zin:
                    names = sorted(
                        info.filename
                        for info in zin.infolist()
                        if not info.is_dir()
                        and info.filename != MANIFEST_NAME
                        and not _is_signature(info.filename)
                    )
                    for name in names:
                        _write_entry(zout, name, zin.read(name))
    except (zipfile.BadZipFile, OSError) as e:
        raise RepackageFailedError(
            message=f"Cannot repackage into {destination.name}: {e}",
            coordinate=coordinate,
        ) from e
    return destination


# =============================================================================
# Descriptor
# =============================================================================

def write_pom(
    coordinate: ArtifactCoordinate,
    dependencies: list[str],
    destination: Path,
) -> Path:
    """Write a Maven POM describing ``coordinate`` and its dependencies.

    Args:
        coordinate: The POM's own coordinate (extension ``pom``).
        dependencies: ``group:name:version[:classifier]`` strings.
        destination: Output path.
    """
    project = ElementTree.Element("project", xmlns="http://maven.apache.org/POM/4.0.0")
    ElementTree.SubElement(project, "modelVersion").text = "4.0.0"
    ElementTree.SubElement(project, "groupId").text = coordinate.group
    ElementTree.SubElement(project, "artifactId").text = coordinate.name
    ElementTree.SubElement(project, "version").text = coordinate.version

    if dependencies:
        deps = ElementTree.SubElement(project, "dependencies")
        for notation in dependencies:
            try:
                dep = ArtifactCoordinate.parse(notation)
            except InvalidCoordinateFormatError as e:
                raise RepackageFailedError(
                    message=f"Invalid dependency '{notation}' for descriptor",
                    coordinate=str(coordinate),
                    step=PipelineStep.DESCRIBE,
                    details={"dependency": notation},
                ) from e
            node = ElementTree.SubElement(deps, "dependency")
            ElementTree.SubElement(node, "groupId").text = dep.group
            ElementTree.SubElement(node, "artifactId").text = dep.name
            ElementTree.SubElement(node, "version").text = dep.version
            if dep.classifier:
                ElementTree.SubElement(node, "classifier").text = dep.classifier

    ElementTree.indent(project)
    try:
        ElementTree.ElementTree(project).write(
            destination, encoding="utf-8", xml_declaration=True
        )
    except OSError as e:
        raise RepackageFailedError(
            message=f"Cannot write descriptor: {e}",
            coordinate=str(coordinate),
            step=PipelineStep.DESCRIBE,
        ) from e
    return destination
