"""Turn artifact groups into index entries with companion flags."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from repodex.index.companions import classify
from repodex.index.filters import is_indexable
from repodex.index.partition import partition_by_version
from repodex.index.schema import ArtifactGroup, IndexEntry

logger = logging.getLogger(__name__)


class IndexEntryBuilder:
    """Build the flat entry list for a page of groups.

    Each indexable record is classified against the other records of its
    version; non-indexable files (checksums, signatures, metadata) are
    skipped.
    """

    def build(self, group: ArtifactGroup) -> list[IndexEntry]:
        entries: list[IndexEntry] = []
        skipped = 0
        for bucket in partition_by_version(group).values():
            for i, record in enumerate(bucket):
                if not is_indexable(record):
                    skipped += 1
                    continue
                siblings = bucket[:i] + bucket[i + 1:]
                entries.append(IndexEntry(record=record, flags=classify(record, siblings)))
        if skipped:
            logger.debug("Group %s: skipped %d non-indexable files", group.name, skipped)
        return entries

    def build_page(self, groups: Iterable[ArtifactGroup]) -> list[IndexEntry]:
        batch: list[IndexEntry] = []
        for group in groups:
            batch.extend(self.build(group))
        return batch
