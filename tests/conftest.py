"""Shared test fixtures for repodex."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from repodex.index.errors import WriterFailure
from repodex.index.schema import (
    ArtifactCoordinate,
    ArtifactGroup,
    ArtifactRecord,
    IndexEntry,
    IndexingContext,
    RepositoryIdentity,
)
from repodex.index.writer import IndexWriter


def make_record(
    version: str = "1.0",
    extension: str = "jar",
    classifier: str | None = None,
    artifact_id: str = "lib",
    path: str | None = None,
) -> ArtifactRecord:
    """Build an ArtifactRecord with a Maven-looking path."""
    suffix = f"-{classifier}" if classifier else ""
    if path is None:
        path = f"org/example/{artifact_id}/{version}/{artifact_id}-{version}{suffix}.{extension}"
    return ArtifactRecord(
        path=path,
        coordinate=ArtifactCoordinate(
            artifact_id=artifact_id,
            version=version,
            extension=extension,
            classifier=classifier,
        ),
    )


class RecordingIndexWriter(IndexWriter):
    """In-memory writer that records every call and can fail on demand."""

    def __init__(
        self,
        fail_purge: bool = False,
        fail_add_on_call: int | None = None,
        fail_pack: bool = False,
    ) -> None:
        self.calls: list[str] = []
        self.batches: list[list[IndexEntry]] = []
        self.contexts: list[IndexingContext] = []
        self._fail_purge = fail_purge
        self._fail_add_on_call = fail_add_on_call
        self._fail_pack = fail_pack

    def location_for(self, repository: RepositoryIdentity) -> Path:
        return Path("/indexes") / repository.storage_id / repository.repository_id

    def purge(self, location: Path) -> None:
        self.calls.append("purge")
        if self._fail_purge:
            raise OSError("disk full")
        self.batches = []

    def add_entries(self, batch: Sequence[IndexEntry], context: IndexingContext) -> None:
        self.calls.append("add")
        if self._fail_add_on_call is not None and self.calls.count("add") == self._fail_add_on_call:
            raise WriterFailure("index locked")
        self.batches.append(list(batch))
        self.contexts.append(context)

    def pack(self, location: Path, context: IndexingContext) -> None:
        self.calls.append("pack")
        if self._fail_pack:
            raise OSError("cannot pack")

    @property
    def entries(self) -> list[IndexEntry]:
        return [e for batch in self.batches for e in batch]


class InMemoryStore:
    """Paged store over a fixed list of groups; records every fetch."""

    def __init__(self, groups: list[ArtifactGroup]) -> None:
        self._groups = groups
        self.fetches: list[tuple[int, int]] = []
        self.count_calls = 0

    def count_groups(self, storage_id: str, repository_id: str) -> int:
        self.count_calls += 1
        return len(self._groups)

    def fetch_groups(
        self, storage_id: str, repository_id: str, offset: int, limit: int,
    ) -> list[ArtifactGroup]:
        self.fetches.append((offset, limit))
        return self._groups[offset:offset + limit]


def make_groups(n: int, repository: RepositoryIdentity) -> list[ArtifactGroup]:
    """*n* groups, each with one jar and its pom."""
    return [
        ArtifactGroup(
            storage_id=repository.storage_id,
            repository_id=repository.repository_id,
            name=f"org.example:lib{i:04d}",
            artifacts=(
                make_record(artifact_id=f"lib{i:04d}"),
                make_record(artifact_id=f"lib{i:04d}", extension="pom"),
            ),
        )
        for i in range(n)
    ]


@pytest.fixture()
def repository() -> RepositoryIdentity:
    return RepositoryIdentity(storage_id="storage0", repository_id="releases")


@pytest.fixture()
def recording_writer() -> RecordingIndexWriter:
    return RecordingIndexWriter()
