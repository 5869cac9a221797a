"""Maven repository layout: turn a storage path into an artifact coordinate.

Paths follow ``<group/dirs>/<artifactId>/<version>/<artifactId>-<version>[-classifier].<ext>``.
Checksum and signature files keep their full extension chain (``jar.sha1``)
so they never look like the primary artifact they accompany.  Metadata lives
at the artifact level, or at the version level for snapshot versions.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from repodex.index.schema import ArtifactCoordinate

METADATA_FILENAME = "maven-metadata.xml"
SNAPSHOT_SUFFIX = "-SNAPSHOT"


def parse_artifact_path(path: str) -> tuple[str, ArtifactCoordinate]:
    """Return ``(group_id, coordinate)`` for a Maven layout path.

    Raises ``ValueError`` for paths that do not fit the layout.
    """
    parts = PurePosixPath(path.strip().lstrip("/")).parts
    if not parts:
        raise ValueError("Empty artifact path")

    filename = parts[-1]

    if filename.startswith(METADATA_FILENAME):
        extension = filename[len("maven-metadata."):]
        if len(parts) >= 4 and parts[-2].endswith(SNAPSHOT_SUFFIX):
            # <group>/<artifactId>/<version>-SNAPSHOT/maven-metadata.xml[.sha1]
            return ".".join(parts[:-3]), ArtifactCoordinate(
                artifact_id=parts[-3], version=parts[-2], extension=extension,
            )
        # <group>/<artifactId>/maven-metadata.xml[.sha1]
        if len(parts) < 3:
            raise ValueError(f"Metadata path too short: {path!r}")
        return ".".join(parts[:-2]), ArtifactCoordinate(
            artifact_id=parts[-2], version="", extension=extension,
        )

    if len(parts) < 4:
        raise ValueError(f"Artifact path too short: {path!r}")

    artifact_id, version = parts[-3], parts[-2]
    group_id = ".".join(parts[:-3])
    base = f"{artifact_id}-{version}"
    if not filename.startswith(base):
        raise ValueError(f"File {filename!r} does not match {artifact_id}:{version}")

    rest = filename[len(base):]
    classifier: str | None = None
    if rest.startswith("-"):
        classifier, dot, extension = rest[1:].partition(".")
        if not dot:
            raise ValueError(f"Missing extension in {filename!r}")
    elif rest.startswith("."):
        extension = rest[1:]
    else:
        raise ValueError(f"Cannot split classifier/extension from {filename!r}")

    if not extension:
        raise ValueError(f"Missing extension in {filename!r}")

    return group_id, ArtifactCoordinate(
        artifact_id=artifact_id,
        version=version,
        extension=extension,
        classifier=classifier or None,
    )
