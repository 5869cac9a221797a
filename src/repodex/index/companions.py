"""Companion classification: descriptor, sources and javadoc next to an artifact."""

from __future__ import annotations

from collections.abc import Sequence

from repodex.index.schema import (
    DESCRIPTOR_EXTENSION,
    JAVADOC_CLASSIFIER,
    NO_COMPANIONS,
    SOURCES_CLASSIFIER,
    ArtifactRecord,
    CompanionFlags,
)


def classify(record: ArtifactRecord, siblings: Sequence[ArtifactRecord]) -> CompanionFlags:
    """Compute which companions of *record* exist among *siblings*.

    *siblings* are the other records of the same version, without *record*.
    Companions themselves (sources, javadoc, pom) never get flags.

    A descriptor is any unclassified pom.  Sources and javadoc only count
    when packaged with the same extension as *record*: a jar's javadoc is
    a ``-javadoc.jar``.
    """
    if not siblings or record.coordinate.is_companion:
        return NO_COMPANIONS

    extension = record.coordinate.extension
    descriptor = sources = doc = False

    for sibling in siblings:
        coord = sibling.coordinate
        descriptor |= coord.extension == DESCRIPTOR_EXTENSION and coord.classifier is None
        if coord.extension == extension:
            doc |= coord.classifier == JAVADOC_CLASSIFIER
            sources |= coord.classifier == SOURCES_CLASSIFIER

    return CompanionFlags(
        descriptor_exists=descriptor,
        sources_exist=sources,
        doc_exists=doc,
    )
