"""SQLite metadata store for artifact groups.

MetadataStore is a thin wrapper around sqlite3.  It handles only
persistence: opening/creating the database, applying the schema, enforcing
the (storage, repository, name) uniqueness of groups, and paging groups back
out.  The rebuild pipeline only ever reads from it.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from repodex.index.errors import ConstraintViolation
from repodex.index.schema import (
    STORE_SCHEMA_SQL,
    ArtifactCoordinate,
    ArtifactGroup,
    ArtifactRecord,
)


class MetadataStore:
    """SQLite-backed store of artifact groups and their artifacts."""

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._path = db_path
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        # One connection shared by rebuild worker threads
        self._lock = threading.RLock()
        self._apply_schema()

    # ── Schema ────────────────────────────────────────────────────────────────

    def _apply_schema(self) -> None:
        """Create tables and indexes if missing."""
        with self._lock:
            self._conn.executescript(STORE_SCHEMA_SQL)
            self._conn.commit()

    # ── Groups ────────────────────────────────────────────────────────────────

    def insert_group(self, storage_id: str, repository_id: str, name: str) -> int:
        """Insert a new group and return its id.

        Raises ``ConstraintViolation`` if the triple already exists.
        """
        with self._lock:
            try:
                cur = self._conn.execute(
                    "INSERT INTO artifact_groups (storage_id, repository_id, name)"
                    " VALUES (?, ?, ?)",
                    (storage_id, repository_id, name),
                )
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                raise ConstraintViolation(
                    f"Artifact group {storage_id}:{repository_id}:{name} already exists"
                ) from exc
            self._conn.commit()
            return int(cur.lastrowid)

    def get_group_id(self, storage_id: str, repository_id: str, name: str) -> int | None:
        """Return the row id of a group, or None if not found."""
        with self._lock:
            row = self._conn.execute(
                "SELECT id FROM artifact_groups"
                " WHERE storage_id = ? AND repository_id = ? AND name = ?",
                (storage_id, repository_id, name),
            ).fetchone()
        return row["id"] if row else None

    def get_or_create_group(self, storage_id: str, repository_id: str, name: str) -> int:
        """Return the id of an existing group, inserting it first if needed."""
        with self._lock:
            group_id = self.get_group_id(storage_id, repository_id, name)
            if group_id is not None:
                return group_id
            return self.insert_group(storage_id, repository_id, name)

    def count_groups(self, storage_id: str, repository_id: str) -> int:
        """Return the number of artifact groups in a repository."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM artifact_groups"
                " WHERE storage_id = ? AND repository_id = ?",
                (storage_id, repository_id),
            ).fetchone()
        return int(row[0])

    def fetch_groups(
        self,
        storage_id: str,
        repository_id: str,
        offset: int,
        limit: int,
    ) -> list[ArtifactGroup]:
        """Return one page of groups, ordered by name, with their artifacts.

        A page past the end is an empty list.
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")

        with self._lock:
            group_rows = self._conn.execute(
                """
                SELECT * FROM artifact_groups
                WHERE storage_id = ? AND repository_id = ?
                ORDER BY name, id
                LIMIT ? OFFSET ?
                """,
                (storage_id, repository_id, limit, offset),
            ).fetchall()
            if not group_rows:
                return []

            ids = [r["id"] for r in group_rows]
            placeholders = ", ".join("?" for _ in ids)
            artifact_rows = self._conn.execute(
                f"SELECT * FROM artifacts WHERE group_id IN ({placeholders}) ORDER BY id",
                ids,
            ).fetchall()

        by_group: dict[int, list[ArtifactRecord]] = {gid: [] for gid in ids}
        for row in artifact_rows:
            by_group[row["group_id"]].append(_row_to_artifact(row))

        return [
            ArtifactGroup(
                id=r["id"],
                storage_id=r["storage_id"],
                repository_id=r["repository_id"],
                name=r["name"],
                artifacts=tuple(by_group[r["id"]]),
            )
            for r in group_rows
        ]

    def delete_repository(self, storage_id: str, repository_id: str) -> int:
        """Remove every group (and, by CASCADE, artifact) of a repository."""
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM artifact_groups WHERE storage_id = ? AND repository_id = ?",
                (storage_id, repository_id),
            )
            self._conn.commit()
        return cur.rowcount

    # ── Artifacts ─────────────────────────────────────────────────────────────

    def add_artifact(self, group_id: int, path: str, coordinate: ArtifactCoordinate) -> int:
        """Append an artifact to a group. Returns the row id."""
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO artifacts (group_id, path, artifact_id, version, classifier, extension)
                VALUES (:group_id, :path, :artifact_id, :version, :classifier, :extension)
                """,
                {
                    "group_id": group_id,
                    "path": path,
                    "artifact_id": coordinate.artifact_id,
                    "version": coordinate.version,
                    "classifier": coordinate.classifier,
                    "extension": coordinate.extension,
                },
            )
            self._conn.commit()
        return int(cur.lastrowid)

    def has_artifact(self, group_id: int, path: str) -> bool:
        """Return True if *path* is already recorded in the group."""
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM artifacts WHERE group_id = ? AND path = ?",
                (group_id, path),
            ).fetchone()
        return row is not None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> MetadataStore:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


# ── Row mappers ───────────────────────────────────────────────────────────────

def _row_to_artifact(row: sqlite3.Row) -> ArtifactRecord:
    return ArtifactRecord(
        id=row["id"],
        path=row["path"],
        coordinate=ArtifactCoordinate(
            artifact_id=row["artifact_id"],
            version=row["version"],
            classifier=row["classifier"],
            extension=row["extension"],
        ),
    )
