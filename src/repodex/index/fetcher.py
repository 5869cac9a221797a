"""Page-wise access to a repository's artifact groups in the metadata store."""

from __future__ import annotations

import logging

from repodex.index.errors import StoreUnavailable
from repodex.index.schema import ArtifactGroup, RepositoryIdentity
from repodex.index.store import MetadataStore

logger = logging.getLogger(__name__)


class GroupPageFetcher:
    """Call-through to the store that reports any store error as ``StoreUnavailable``.

    The writer side is wrapped the same way (``WriterFailure``), so a rebuild
    always ends with an outcome instead of a stray exception.
    """

    def __init__(self, store: MetadataStore) -> None:
        self._store = store

    def count(self, repository: RepositoryIdentity) -> int:
        try:
            return self._store.count_groups(repository.storage_id, repository.repository_id)
        except StoreUnavailable:
            raise
        except Exception as exc:
            raise StoreUnavailable(f"Cannot count groups of {repository}: {exc}") from exc

    def fetch_page(
        self,
        repository: RepositoryIdentity,
        offset: int,
        limit: int,
    ) -> list[ArtifactGroup]:
        try:
            groups = self._store.fetch_groups(
                repository.storage_id, repository.repository_id, offset, limit,
            )
        except StoreUnavailable:
            raise
        except Exception as exc:
            raise StoreUnavailable(
                f"Cannot fetch groups of {repository} at offset {offset}: {exc}"
            ) from exc
        logger.debug("Fetched %d groups of %s at offset %d", len(groups), repository, offset)
        return groups
