"""Index writers: the capability set the rebuild pipeline writes through.

The pipeline only needs three operations (purge, add_entries and pack),
so any search backend can be plugged in by subclassing ``IndexWriter``.
``SqliteIndexWriter`` keeps one SQLite file per repository.
"""

from __future__ import annotations

import logging
import shutil
import sqlite3
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import closing
from pathlib import Path

from repodex.index.errors import WriterFailure
from repodex.index.schema import (
    INDEX_SCHEMA_SQL,
    IndexEntry,
    IndexingContext,
    IndexStats,
    RepositoryIdentity,
)

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.db"


class IndexWriter(ABC):
    """Interface for index backends."""

    @abstractmethod
    def location_for(self, repository: RepositoryIdentity) -> Path:
        """Return the index location of a repository."""

    @abstractmethod
    def purge(self, location: Path) -> None:
        """Clear and reinitialize the index at *location*."""

    @abstractmethod
    def add_entries(self, batch: Sequence[IndexEntry], context: IndexingContext) -> None:
        """Append *batch*; an empty batch must be a no-op."""

    @abstractmethod
    def pack(self, location: Path, context: IndexingContext) -> None:
        """Finalize the index for read access."""


class SqliteIndexWriter(IndexWriter):
    """Writes each repository's index to ``<index_root>/<storage>/<repository>/index.db``."""

    def __init__(self, index_root: Path) -> None:
        self._root = index_root

    def location_for(self, repository: RepositoryIdentity) -> Path:
        return self._root / repository.storage_id / repository.repository_id

    def purge(self, location: Path) -> None:
        try:
            if location.exists():
                shutil.rmtree(location)
            location.mkdir(parents=True, exist_ok=True)
            with closing(self._connect(location)) as conn:
                conn.executescript(INDEX_SCHEMA_SQL)
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise WriterFailure(f"Cannot purge index at {location}: {exc}") from exc
        logger.debug("Purged index at %s", location)

    def add_entries(self, batch: Sequence[IndexEntry], context: IndexingContext) -> None:
        if not batch:
            return
        try:
            with closing(self._connect(context.location)) as conn:
                conn.executemany(
                    """
                    INSERT INTO entries (
                        path, artifact_id, version, classifier, extension,
                        descriptor_exists, sources_exist, doc_exists
                    )
                    VALUES (
                        :path, :artifact_id, :version, :classifier, :extension,
                        :descriptor_exists, :sources_exist, :doc_exists
                    )
                    """,
                    [_entry_params(e) for e in batch],
                )
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise WriterFailure(
                f"Cannot add {len(batch)} entries to {context.repository}: {exc}"
            ) from exc

    def pack(self, location: Path, context: IndexingContext) -> None:
        try:
            with closing(self._connect(location)) as conn:
                count = conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]
                conn.executemany(
                    "INSERT INTO index_meta (key, value) VALUES (?, ?)"
                    " ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    [
                        ("repository", str(context.repository)),
                        ("entry_count", str(count)),
                        ("packed_at", str(time.time())),
                    ],
                )
                conn.commit()
                conn.execute("VACUUM")
        except (sqlite3.Error, OSError) as exc:
            raise WriterFailure(f"Cannot pack index at {location}: {exc}") from exc
        logger.debug("Packed index at %s (%d entries)", location, count)

    def stats(self, location: Path) -> IndexStats:
        """Return statistics for the index at *location* (empty if absent)."""
        if not (location / INDEX_FILENAME).exists():
            return IndexStats(total_entries=0, packed_at=None)
        try:
            with closing(self._connect(location)) as conn:
                total = conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]
                row = conn.execute(
                    "SELECT value FROM index_meta WHERE key = 'packed_at'"
                ).fetchone()
                ext_rows = conn.execute(
                    "SELECT extension, COUNT(*) AS cnt FROM entries GROUP BY extension"
                ).fetchall()
        except sqlite3.Error as exc:
            raise WriterFailure(f"Cannot read index at {location}: {exc}") from exc
        return IndexStats(
            total_entries=total,
            packed_at=float(row["value"]) if row else None,
            entries_by_extension={r["extension"]: r["cnt"] for r in ext_rows},
        )

    @staticmethod
    def _connect(location: Path) -> sqlite3.Connection:
        conn = sqlite3.connect(str(location / INDEX_FILENAME))
        conn.row_factory = sqlite3.Row
        return conn


def _entry_params(entry: IndexEntry) -> dict[str, object]:
    coord = entry.record.coordinate
    return {
        "path": entry.record.path,
        "artifact_id": coord.artifact_id,
        "version": coord.version,
        "classifier": coord.classifier,
        "extension": coord.extension,
        "descriptor_exists": int(entry.flags.descriptor_exists),
        "sources_exist": int(entry.flags.sources_exist),
        "doc_exists": int(entry.flags.doc_exists),
    }
