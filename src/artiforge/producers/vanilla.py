"""
artiforge.producers.vanilla - Vanilla Extra/Slim/Data Jar Producer
====================================================================

Serves the auxiliary jars of the game distribution (``extra``, ``slim``,
``data``). These contain resources rather than obfuscated code, so they are
extracted and repackaged without remapping and keep their declared version.
The distribution download is shared with the GameProducer through the
download cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from artiforge.core.coordinates import ArtifactCoordinate
from artiforge.core.enums import DependencyKind
from artiforge.core.models import DependencyDeclaration, ProducedFile
from artiforge.producers import steps
from artiforge.producers.base import BaseProducer, ProductionContext
from artiforge.producers.game import GameProducer


class VanillaProducer(BaseProducer):
    """Producer for VANILLA declarations. Requires a classifier."""

    kind = DependencyKind.VANILLA

    def accepts(self, declaration: DependencyDeclaration) -> bool:
        return super().accepts(declaration) and bool(declaration.classifier)

    def target(
        self,
        declaration: DependencyDeclaration,
        context: ProductionContext,
    ) -> ArtifactCoordinate:
        return ArtifactCoordinate(
            group=declaration.group,
            name=declaration.name,
            version=declaration.version,
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

        dist = await self._fetch(GameProducer.distribution(declaration), coordinate, context)
        raw = await self._run_step(
            steps.extract_member,
            dist,
            f"{declaration.name}-{declaration.classifier}.jar",
            work_dir / "raw.jar",
            str(coordinate),
        )
        return await self._run_step(
            steps.repackage_jar, raw, work_dir / coordinate.file_name, str(coordinate)
        )
