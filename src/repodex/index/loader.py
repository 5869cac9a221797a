"""Import Maven layout path listings into the metadata store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from repodex.index.layout import parse_artifact_path
from repodex.index.schema import RepositoryIdentity
from repodex.index.store import MetadataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """Summary returned after importing a listing."""

    groups: int
    artifacts: int
    rejected: int


def group_name(group_id: str, artifact_id: str) -> str:
    return f"{group_id}:{artifact_id}"


def load_paths(
    store: MetadataStore,
    repository: RepositoryIdentity,
    paths: list[str],
) -> LoadResult:
    """Register each path as an artifact of its artifact-id group.

    Unparseable paths are logged and counted as rejected; paths already
    present in their group are not added twice.
    """
    group_ids: set[int] = set()
    artifacts = rejected = 0

    for raw in paths:
        path = raw.strip()
        if not path or path.startswith("#"):
            continue
        try:
            group_id, coordinate = parse_artifact_path(path)
        except ValueError as exc:
            logger.warning("Rejected %s: %s", path, exc)
            rejected += 1
            continue

        gid = store.get_or_create_group(
            repository.storage_id,
            repository.repository_id,
            group_name(group_id, coordinate.artifact_id),
        )
        group_ids.add(gid)
        if store.has_artifact(gid, path):
            continue
        store.add_artifact(gid, path, coordinate)
        artifacts += 1

    logger.info(
        "Loaded %d artifacts into %d groups of %s (%d rejected)",
        artifacts, len(group_ids), repository, rejected,
    )
    return LoadResult(groups=len(group_ids), artifacts=artifacts, rejected=rejected)


def load_listing(
    store: MetadataStore,
    repository: RepositoryIdentity,
    listing: Path,
) -> LoadResult:
    """Load a text file with one artifact path per line."""
    lines = listing.read_text(encoding="utf-8").splitlines()
    return load_paths(store, repository, lines)
