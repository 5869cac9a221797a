"""Split an artifact group into per-version buckets."""

from __future__ import annotations

from repodex.index.schema import ArtifactGroup, ArtifactRecord


def partition_by_version(group: ArtifactGroup) -> dict[str, list[ArtifactRecord]]:
    """Bucket the group's records by coordinate version.

    Buckets appear in first-seen order and keep the group's record order
    inside each bucket.
    """
    buckets: dict[str, list[ArtifactRecord]] = {}
    for record in group.artifacts:
        buckets.setdefault(record.coordinate.version, []).append(record)
    return buckets
