"""
artiforge.producers.game - Primary Game Artifact Producer
===========================================================

Synthesizes the deobfuscated game artifact from the upstream distribution.

Upstream Distribution (``group:name:version@zip``)::

    version.json          {"id": "1.12.2", "libraries": ["g:n:v", {"name": "g:n:v"}]}
    <name>.jar            obfuscated game binary
    <name>-sources.jar    optional, obfuscated source names

Pipeline per closure member:

    jar      fetch → inspect → extract <name>.jar → remap → repackage
    sources  fetch → extract <name>-sources.jar → remap → repackage
             (manifest-only jar when the distribution has no sources)
    pom      fetch → inspect → describe (libraries become dependencies)

Synthesized coordinate: ``group:name:<version>_mapped_<mappings>``.

The game version read from ``version.json`` is stored in the jar's cache
metadata, so a later session with a warm cache recovers it without
downloading anything.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind, PipelineStep
from artiforge.core.exceptions import ExtractionFailedError, InvalidCoordinateFormatError
from artiforge.core.models import (
    CacheEntry,
    DependencyDeclaration,
    DiscoveredFacts,
    ProducedFile,
)
from artiforge.producers import steps
from artiforge.producers.base import BaseProducer, ProductionContext

VERSION_MEMBER = "version.json"
SOURCES_CLASSIFIER = "sources"


class GameProducer(BaseProducer):
    """Producer for the PRIMARY declaration (one per session)."""

    kind = DependencyKind.PRIMARY

    def target(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> ArtifactCoordinate:
        return ArtifactCoordinate(
            group=declaration.group,
            name=declaration.name,
            version=self.mapped_version(declaration.version, context),
        )

    def closure(self, target: ArtifactCoordinate) -> list[ArtifactCoordinate]:
        return [
            target,
            target.sibling(classifier=SOURCES_CLASSIFIER),
            target.sibling(extension="pom"),
        ]

    def discover(self, entries: list[CacheEntry]) -> Optional[DiscoveredFacts]:
        for entry in entries:
            facts = entry.metadata.get("facts")
            if facts:
                return DiscoveredFacts.model_validate(facts)
        return None

    @staticmethod
    def distribution(declaration: DependencyDeclaration) -> ArtifactCoordinate:
        return ArtifactCoordinate(
            group=declaration.group,
            name=declaration.name,
            version=declaration.version,
            extension="zip",
        )

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def _derive(
        self,
        coordinate: ArtifactCoordinate,
        declaration: DependencyDeclaration,
        context: ProductionContext,
        work_dir: Path,
    ) -> Union[Path, ProducedFile]:
        dist = await self._fetch(self.distribution(declaration), coordinate, context)

        if coordinate.extension == "pom":
            facts = await self._inspect(dist, coordinate, context)
            pom = await self._run_step(
                steps.write_pom, coordinate, facts.libraries, work_dir / coordinate.file_name
            )
            return ProducedFile(path=pom, metadata={"facts": facts.model_dump()})

        if coordinate.classifier == SOURCES_CLASSIFIER:
            return await self._derive_sources(coordinate, declaration, context, dist, work_dir)

        facts = await self._inspect(dist, coordinate, context)
        raw = await self._run_step(
            steps.extract_member,
            dist,
            f"{declaration.name}.jar",
            work_dir / "raw.jar",
            str(coordinate),
        )
        mapping = await self._load_mapping(context, coordinate)
        remapped = await self._run_step(
            steps.remap_jar, raw, mapping, work_dir / "remapped.jar", str(coordinate)
        )
        final = await self._run_step(
            steps.repackage_jar,
            remapped,
            work_dir / coordinate.file_name,
            str(coordinate),
            {
                "Game-Version": facts.game_version or "",
                "Mappings": context.config.mappings,
            },
        )
        return ProducedFile(path=final, metadata={"facts": facts.model_dump()})

    async def _derive_sources(
        self,
        coordinate: ArtifactCoordinate,
        declaration: DependencyDeclaration,
        context: ProductionContext,
        dist: Path,
        work_dir: Path,
    ) -> Path:
        member = f"{declaration.name}-{SOURCES_CLASSIFIER}.jar"
        destination = work_dir / coordinate.file_name
        manifest = {"Mappings": context.config.mappings}

        if not await self._run_step(steps.has_member, dist, member, str(coordinate)):
            self._logger.info("sources_unavailable", coordinate=str(coordinate))
            return await self._run_step(
                steps.repackage_jar, None, destination, str(coordinate), manifest
            )

        raw = await self._run_step(
            steps.extract_member, dist, member, work_dir / "raw-sources.jar", str(coordinate)
        )
        mapping = await self._load_mapping(context, coordinate)
        remapped = await self._run_step(
            steps.remap_jar, raw, mapping, work_dir / "remapped-sources.jar", str(coordinate)
        )
        return await self._run_step(
            steps.repackage_jar, remapped, destination, str(coordinate), manifest
        )

    async def _inspect(
        self,
        dist: Path,
        coordinate: ArtifactCoordinate,
        context: ProductionContext,
    ) -> DiscoveredFacts:
        """Read ``version.json`` from the distribution into DiscoveredFacts."""
        data = await self._run_step(steps.inspect_json, dist, VERSION_MEMBER, str(coordinate))

        game_version = data.get("id")
        if not isinstance(game_version, str) or not game_version:
            raise ExtractionFailedError(
                message=f"'{VERSION_MEMBER}' has no version id",
                coordinate=str(coordinate),
                step=PipelineStep.INSPECT,
            )

        libraries: list[str] = []
        for item in data.get("libraries", []):
            notation = item.get("name") if isinstance(item, dict) else item
            try:
                ArtifactCoordinate.parse(notation)
            except InvalidCoordinateFormatError as e:
                raise ExtractionFailedError(
                    message=f"Invalid library entry in '{VERSION_MEMBER}': {notation!r}",
                    coordinate=str(coordinate),
                    step=PipelineStep.INSPECT,
                ) from e
            libraries.append(notation)

        facts = DiscoveredFacts(
            game_version=game_version,
            mappings=context.config.mappings,
            libraries=libraries,
        )
        self._logger.debug(
            "facts_discovered",
            coordinate=str(coordinate),
            game_version=game_version,
            libraries=len(libraries),
        )
        return facts
