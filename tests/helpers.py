"""
Test Helpers
=============

Builders for on-disk fixtures: zip archives, a local Maven repository holding
a game distribution and mod jars, and a download service that records calls.
"""

from __future__ import annotations

import json
import zipfile
from pathlib import Path
from typing import Optional

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.integrations.downloads import DownloadService
from artiforge.integrations.mappings import Mapping

# Obfuscated game binary: two top-level classes, one inner class, a resource.
GAME_CLASSES: dict[str, bytes] = {
    "a.class": b"\xca\xfe\xba\xbe main",
    "a$1.class": b"\xca\xfe\xba\xbe main-inner",
    "b.class": b"\xca\xfe\xba\xbe world",
    "assets/lang.json": b'{"hello": "Hello"}',
}
GAME_SOURCES: dict[str, bytes] = {
    "a.java": b"class a {}",
    "b.java": b"class b {}",
}
STABLE_MAPPING = Mapping(
    version="stable",
    classes={"a": "net/game/Main", "b": "net/game/World"},
)


def write_zip(path: Path, members: dict[str, bytes]) -> Path:
    """Write ``members`` into a zip at ``path`` (parents created)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def zip_bytes(members: dict[str, bytes], tmp_dir: Path) -> bytes:
    """Zip ``members`` and return the archive bytes."""
    return write_zip(tmp_dir / "scratch.zip", members).read_bytes()


def read_zip(path: Path) -> dict[str, bytes]:
    with zipfile.ZipFile(path) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def repo_path(root: Path, coordinate: str) -> Path:
    return root.joinpath(*ArtifactCoordinate.parse(coordinate).maven_path().split("/"))


def add_game_distribution(
    root: Path,
    coordinate: str = "com.example:game:1.0@zip",
    game_version: str = "1.12.2",
    libraries: Optional[list] = None,
    sources: bool = True,
    extras: Optional[dict[str, dict[str, bytes]]] = None,
) -> Path:
    """Place a game distribution zip in the Maven repository at ``root``.

    Args:
        extras: Classifier → members for vanilla ``<name>-<classifier>.jar``s.
    """
    target = repo_path(root, coordinate)
    name = ArtifactCoordinate.parse(coordinate).name
    scratch = target.parent / ".build"

    version_json = {
        "id": game_version,
        "libraries": libraries if libraries is not None else [
            "org.lwjgl:lwjgl:2.9.4",
            {"name": "com.google.guava:guava:21.0"},
        ],
    }
    members: dict[str, bytes] = {
        "version.json": json.dumps(version_json).encode("utf-8"),
        f"{name}.jar": write_zip(scratch / "game.jar", GAME_CLASSES).read_bytes(),
    }
    if sources:
        members[f"{name}-sources.jar"] = write_zip(
            scratch / "sources.jar", GAME_SOURCES
        ).read_bytes()
    for classifier, content in (extras or {}).items():
        members[f"{name}-{classifier}.jar"] = write_zip(
            scratch / f"{classifier}.jar", content
        ).read_bytes()

    return write_zip(target, members)


def add_jar(root: Path, coordinate: str, members: dict[str, bytes]) -> Path:
    """Place a jar in the Maven repository at ``root``."""
    return write_zip(repo_path(root, coordinate), members)


class RecordingDownloadService(DownloadService):
    """Wraps another service and records every fetched coordinate."""

    def __init__(self, inner: DownloadService) -> None:
        self.inner = inner
        self.calls: list[ArtifactCoordinate] = []
        self.closed = False

    async def fetch(self, coordinate: ArtifactCoordinate, destination: Path) -> Path:
        self.calls.append(coordinate)
        return await self.inner.fetch(coordinate, destination)

    async def close(self) -> None:
        self.closed = True
