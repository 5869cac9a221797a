"""SQLite schema DDL and immutable dataclass models for artifact indexing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from repodex.index.errors import RebuildCancelled, RebuildFailed


# ── DDL ───────────────────────────────────────────────────────────────────────

STORE_SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS artifact_groups (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    storage_id    TEXT    NOT NULL,
    repository_id TEXT    NOT NULL,
    name          TEXT    NOT NULL,
    UNIQUE (storage_id, repository_id, name)
);

CREATE INDEX IF NOT EXISTS idx_groups_repo ON artifact_groups(storage_id, repository_id);

CREATE TABLE IF NOT EXISTS artifacts (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id   INTEGER NOT NULL REFERENCES artifact_groups(id) ON DELETE CASCADE,
    path       TEXT    NOT NULL,
    artifact_id TEXT   NOT NULL,
    version    TEXT    NOT NULL,
    classifier TEXT,
    extension  TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_artifacts_group ON artifacts(group_id);
"""

INDEX_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS index_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS entries (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    path             TEXT    NOT NULL,
    artifact_id      TEXT    NOT NULL,
    version          TEXT    NOT NULL,
    classifier       TEXT,
    extension        TEXT    NOT NULL,
    descriptor_exists INTEGER NOT NULL DEFAULT 0,
    sources_exist    INTEGER NOT NULL DEFAULT 0,
    doc_exists       INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_entries_artifact ON entries(artifact_id, version);
"""

# Classifiers that mark an artifact as a companion of another one
SOURCES_CLASSIFIER = "sources"
JAVADOC_CLASSIFIER = "javadoc"
DESCRIPTOR_EXTENSION = "pom"


# ── Repository identity ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class RepositoryIdentity:
    """A repository inside a storage; the unit a rebuild runs against."""

    storage_id: str
    repository_id: str

    def __str__(self) -> str:
        return f"{self.storage_id}:{self.repository_id}"

    @staticmethod
    def parse(value: str) -> RepositoryIdentity:
        """Parse ``"storage:repository"``."""
        storage_id, sep, repository_id = value.partition(":")
        if not sep or not storage_id or not repository_id:
            raise ValueError(f"Expected 'storage:repository', got {value!r}")
        return RepositoryIdentity(storage_id=storage_id, repository_id=repository_id)


@dataclass(frozen=True)
class IndexingContext:
    """Handed to the index writer alongside every batch."""

    repository: RepositoryIdentity
    location: Path


# ── Artifact models ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ArtifactCoordinate:
    """Semantic identity of one artifact file."""

    artifact_id: str
    version: str
    extension: str
    classifier: str | None = None   # None = absent

    def __post_init__(self) -> None:
        if self.classifier == "":
            object.__setattr__(self, "classifier", None)

    @property
    def is_companion(self) -> bool:
        """True for sources/javadoc bundles and descriptors."""
        return (
            self.classifier in (SOURCES_CLASSIFIER, JAVADOC_CLASSIFIER)
            or self.extension == DESCRIPTOR_EXTENSION
        )


@dataclass(frozen=True)
class ArtifactRecord:
    """One physical artifact: its storage path and coordinate."""

    path: str           # repository-relative storage path
    coordinate: ArtifactCoordinate
    id: int = 0         # 0 = not persisted


@dataclass(frozen=True)
class ArtifactGroup:
    """All artifacts sharing one artifact id inside a repository."""

    storage_id: str
    repository_id: str
    name: str
    artifacts: tuple[ArtifactRecord, ...] = ()
    id: int = 0


@dataclass(frozen=True)
class CompanionFlags:
    """Which companions exist next to an artifact within its version."""

    descriptor_exists: bool = False
    sources_exist: bool = False
    doc_exists: bool = False


NO_COMPANIONS = CompanionFlags()


@dataclass(frozen=True)
class IndexEntry:
    """The unit submitted to the index writer."""

    record: ArtifactRecord
    flags: CompanionFlags


@dataclass(frozen=True)
class IndexStats:
    """Snapshot statistics of a built index."""

    total_entries: int
    packed_at: float | None     # Unix timestamp, None if never packed
    entries_by_extension: dict[str, int] = field(default_factory=dict)


# ── Rebuild lifecycle ─────────────────────────────────────────────────────────

class RebuildState(str, Enum):
    CREATED = "created"
    PURGED = "purged"
    PAGING = "paging"
    SEALED = "sealed"
    FAILED = "failed"


class RebuildStage(str, Enum):
    PURGE = "purge"
    PAGING = "paging"
    SEALING = "sealing"


@dataclass(frozen=True)
class RebuildOutcome:
    """Result of one rebuild; failures are reported here rather than raised."""

    repository: RepositoryIdentity
    state: RebuildState
    stage: RebuildStage | None = None
    error: BaseException | None = None
    pages_fetched: int = 0
    batches_submitted: int = 0
    entries_submitted: int = 0

    @property
    def ok(self) -> bool:
        return self.state is RebuildState.SEALED

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, RebuildCancelled)

    def raise_for_failure(self) -> None:
        """Raise ``RebuildFailed`` unless the rebuild sealed successfully."""
        if self.ok:
            return
        raise RebuildFailed(
            repository=self.repository,
            stage=self.stage or RebuildStage.PURGE,
            cause=self.error,
        )
