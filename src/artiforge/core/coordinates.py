"""
artiforge.core.coordinates - Artifact Coordinate Model
========================================================

An ``ArtifactCoordinate`` is the canonical identifier of one artifact::

    group:name:version[:classifier][@extension]

    com.example:game:1.0                 → jar, no classifier
    com.example:game:1.0:sources         → sources jar
    com.example:game:1.0@pom             → POM descriptor
    com.example:game:1.0:extra@zip       → zip with classifier

Rules:
    - Comparison and hashing are purely structural (frozen Pydantic model).
    - Versions are opaque tokens: no normalization, no ordering.
    - The extension defaults to ``jar`` when omitted on parse and is always
      written on format, so ``parse(format(c)) == c`` for every valid ``c``.
    - Fields must be non-empty and may not contain ``:``, ``@`` or whitespace.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from artiforge.core.exceptions import InvalidCoordinateFormatError

# Non-empty, no separators, no whitespace.
_SEGMENT_PATTERN = r"^[^\s:@/\\]+$"

DEFAULT_EXTENSION = "jar"


class ArtifactCoordinate(BaseModel):
    """Immutable identifier for a single artifact.

    Two coordinates that differ only by classifier or extension are distinct
    artifacts sharing a base identity (see :meth:`base`).

    Example:
        >>> c = ArtifactCoordinate.parse("com.example:game:1.0:sources")
        >>> c.classifier, c.extension
        ('sources', 'jar')
        >>> str(c.sibling(extension="pom"))
        'com.example:game:1.0@pom'
    """

    model_config = ConfigDict(frozen=True)

    group: str = Field(pattern=_SEGMENT_PATTERN, description="Maven group id")
    name: str = Field(pattern=_SEGMENT_PATTERN, description="Artifact id")
    version: str = Field(pattern=_SEGMENT_PATTERN, description="Opaque version token")
    classifier: Optional[str] = Field(
        default=None,
        pattern=_SEGMENT_PATTERN,
        description="Optional classifier (sources, extra, ...)",
    )
    extension: str = Field(
        default=DEFAULT_EXTENSION,
        pattern=_SEGMENT_PATTERN,
        description="File extension (jar, pom, zip, ...)",
    )

    # =========================================================================
    # Parsing / Formatting
    # =========================================================================

    @classmethod
    def parse(cls, text: str) -> ArtifactCoordinate:
        """Parse ``group:name:version[:classifier][@extension]``.

        Raises:
            InvalidCoordinateFormatError: If the string is malformed.
        """
        if not isinstance(text, str) or not text:
            raise InvalidCoordinateFormatError(
                message="Coordinate must be a non-empty string",
                text=str(text),
            )

        main, sep, extension = text.partition("@")
        if sep and not extension:
            raise InvalidCoordinateFormatError(
                message=f"Empty extension in coordinate '{text}'",
                text=text,
            )

        parts = main.split(":")
        if len(parts) not in (3, 4):
            raise InvalidCoordinateFormatError(
                message=(
                    f"Expected 'group:name:version[:classifier][@extension]', "
                    f"got '{text}'"
                ),
                text=text,
                details={"segments": len(parts)},
            )

        fields = dict(zip(("group", "name", "version", "classifier"), parts))
        if sep:
            fields["extension"] = extension

        try:
            return cls(**fields)
        except ValidationError as e:
            raise InvalidCoordinateFormatError(
                message=f"Invalid coordinate '{text}'",
                text=text,
                details={"errors": [err["loc"][0] for err in e.errors()]},
            ) from e

    def format(self) -> str:
        """Render the canonical string form (extension always included)."""
        text = f"{self.group}:{self.name}:{self.version}"
        if self.classifier is not None:
            text += f":{self.classifier}"
        return f"{text}@{self.extension}"

    def __str__(self) -> str:
        return self.format()

    # =========================================================================
    # Derived Coordinates
    # =========================================================================

    def base(self) -> tuple[str, str, str]:
        """Identity shared by all siblings: ``(group, name, version)``."""
        return (self.group, self.name, self.version)

    def sibling(
        self,
        *,
        classifier: Optional[str] = None,
        extension: str = DEFAULT_EXTENSION,
    ) -> ArtifactCoordinate:
        """Coordinate with the same base identity and the given classifier/extension."""
        return ArtifactCoordinate(
            group=self.group,
            name=self.name,
            version=self.version,
            classifier=classifier,
            extension=extension,
        )

    def with_version(self, version: str) -> ArtifactCoordinate:
        return ArtifactCoordinate(
            group=self.group,
            name=self.name,
            version=version,
            classifier=self.classifier,
            extension=self.extension,
        )

    # =========================================================================
    # Repository Layout
    # =========================================================================

    @property
    def file_name(self) -> str:
        """Maven file name, e.g. ``game-1.0-sources.jar``."""
        stem = f"{self.name}-{self.version}"
        if self.classifier is not None:
            stem += f"-{self.classifier}"
        return f"{stem}.{self.extension}"

    def maven_path(self) -> str:
        """Relative Maven repository path (always ``/``-separated)."""
        return "/".join(
            [*self.group.split("."), self.name, self.version, self.file_name]
        )
