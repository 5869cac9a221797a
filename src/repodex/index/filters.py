"""Which artifact files belong in the search index."""

from __future__ import annotations

from pathlib import PurePosixPath

from repodex.index.schema import ArtifactRecord

EXCLUDED_FILENAMES = frozenset({"maven-metadata.xml"})

# Checksums, signatures and property files
EXCLUDED_SUFFIXES = (".properties", ".asc", ".md5", ".sha1")


def is_indexable_filename(filename: str) -> bool:
    """Return False for repository metadata, checksums and signatures."""
    if filename in EXCLUDED_FILENAMES:
        return False
    return not filename.endswith(EXCLUDED_SUFFIXES)


def is_indexable(record: ArtifactRecord) -> bool:
    """Decide on the final path segment of the record's storage path (case-sensitive)."""
    return is_indexable_filename(PurePosixPath(record.path).name)
