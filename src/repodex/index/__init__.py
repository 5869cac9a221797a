"""Artifact index rebuild pipeline."""

from repodex.index.builder import IndexEntryBuilder
from repodex.index.companions import classify
from repodex.index.errors import (
    ConstraintViolation,
    RebuildCancelled,
    RebuildFailed,
    RepodexError,
    StoreUnavailable,
    WriterFailure,
)
from repodex.index.fetcher import GroupPageFetcher
from repodex.index.filters import is_indexable
from repodex.index.orchestrator import RebuildOrchestrator
from repodex.index.partition import partition_by_version
from repodex.index.schema import (
    ArtifactCoordinate,
    ArtifactGroup,
    ArtifactRecord,
    CompanionFlags,
    IndexEntry,
    RebuildOutcome,
    RepositoryIdentity,
)
from repodex.index.store import MetadataStore
from repodex.index.writer import IndexWriter, SqliteIndexWriter

__all__ = [
    "ArtifactCoordinate",
    "ArtifactGroup",
    "ArtifactRecord",
    "CompanionFlags",
    "ConstraintViolation",
    "GroupPageFetcher",
    "IndexEntry",
    "IndexEntryBuilder",
    "IndexWriter",
    "MetadataStore",
    "RebuildCancelled",
    "RebuildFailed",
    "RebuildOrchestrator",
    "RebuildOutcome",
    "RepodexError",
    "RepositoryIdentity",
    "SqliteIndexWriter",
    "StoreUnavailable",
    "WriterFailure",
    "classify",
    "is_indexable",
    "partition_by_version",
]
