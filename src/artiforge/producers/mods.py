"""
artiforge.producers.mods - Remapped Mod Producer
==================================================

Mods are published against obfuscated names. This producer fetches the
upstream mod jar, remaps it to the session's mappings and republishes it as
``group:name:<version>_mapped_<mappings>[:classifier]`` with a POM, so the
host can depend on the remapped copy like any other Maven artifact.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind
from artiforge.core.models import DependencyDeclaration, ProducedFile
from artiforge.producers import steps
from artiforge.producers.base import BaseProducer, ProductionContext


class ModProducer(BaseProducer):
    """Producer for MOD declarations."""

    kind = DependencyKind.MOD

    def target(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> ArtifactCoordinate:
        return ArtifactCoordinate(
            group=declaration.group,
            name=declaration.name,
            version=self.mapped_version(declaration.version, context),
            classifier=declaration.classifier,
        )

    def closure(self, target: ArtifactCoordinate) -> list[ArtifactCoordinate]:
        return [target, target.sibling(extension="pom")]

    async def _derive(
        self,
        coordinate: ArtifactCoordinate,
        declaration: DependencyDeclaration,
        context: ProductionContext,
        work_dir: Path,
    ) -> Union[Path, ProducedFile]:
        if coordinate.extension == "pom":
            return await self._run_step(
                steps.write_pom, coordinate, [], work_dir / coordinate.file_name
            )

        raw = await self._fetch(declaration.upstream("jar"), coordinate, context)
        mapping = await self._load_mapping(context, coordinate)
        remapped = await self._run_step(
            steps.remap_jar, raw, mapping, work_dir / "remapped.jar", str(coordinate)
        )

        manifest = {"Mappings": context.config.mappings}
        if context.facts.game_version:
            manifest["Remapped-For"] = context.facts.game_version

        return await self._run_step(
            steps.repackage_jar,
            remapped,
            work_dir / coordinate.file_name,
            str(coordinate),
            manifest,
        )
