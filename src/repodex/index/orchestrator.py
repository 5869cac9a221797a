"""RebuildOrchestrator — rebuild a repository's search index from scratch.

A rebuild walks ``created → purged → paging → sealed``; any failure moves it
to ``failed`` and stops further work:

  purge    clear the repository's index location
  paging   fetch artifact groups page by page, build entries, submit each
           batch to the writer in page order
  seal     pack the index for read access

Failures are never retried here.  They are logged once and reported in the
returned ``RebuildOutcome`` together with the stage they happened in.  The
purge runs before population, so a failed rebuild leaves the index empty or
partially filled until the next successful rebuild.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from repodex.index.builder import IndexEntryBuilder
from repodex.index.errors import RebuildCancelled, RepodexError, WriterFailure
from repodex.index.fetcher import GroupPageFetcher
from repodex.index.locks import RepositoryLocks
from repodex.index.schema import (
    IndexEntry,
    IndexingContext,
    RebuildOutcome,
    RebuildStage,
    RebuildState,
    RepositoryIdentity,
)
from repodex.index.writer import IndexWriter
from repodex.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed to cover *total* groups."""
    if page_size <= 0:
        raise ValueError(f"page_size must be > 0, got {page_size}")
    return -(-total // page_size) if total > 0 else 0


class RebuildOrchestrator:
    """Drive purge → page → build → submit → seal for one repository at a time.

    Parameters
    ----------
    fetcher:
        Page-wise reader over the metadata store.
    writer:
        Index backend receiving purge/add_entries/pack calls.
    page_size:
        Number of artifact groups fetched per page.
    locks:
        Shared per-repository lock map; pass the same instance to every
        orchestrator that may rebuild the same repositories.
    hooks:
        Optional plugin hook runner notified of rebuild progress.
    """

    def __init__(
        self,
        fetcher: GroupPageFetcher,
        writer: IndexWriter,
        page_size: int = DEFAULT_PAGE_SIZE,
        builder: IndexEntryBuilder | None = None,
        locks: RepositoryLocks | None = None,
        hooks: HookRunner | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be > 0, got {page_size}")
        self._fetcher = fetcher
        self._writer = writer
        self._page_size = page_size
        self._builder = builder or IndexEntryBuilder()
        self._locks = locks or RepositoryLocks()
        self._hooks = hooks

    @property
    def page_size(self) -> int:
        return self._page_size

    # ── Public ────────────────────────────────────────────────────────────────

    def rebuild(
        self,
        repository: RepositoryIdentity,
        cancel: threading.Event | None = None,
    ) -> RebuildOutcome:
        """Rebuild the index of *repository*.

        Blocks while another rebuild of the same repository is running.
        Setting *cancel* stops the rebuild before its next page or before the
        seal; a cancelled rebuild is reported as failed and is never packed.
        """
        with self._locks.hold(repository):
            if self._hooks is not None:
                self._hooks.run_rebuild_start(repository)

            started = time.monotonic()
            outcome = self._run(repository, cancel)
            elapsed = time.monotonic() - started

            if outcome.ok:
                logger.info(
                    "Rebuilt %s: %d entries in %d batches (%.2fs)",
                    repository, outcome.entries_submitted, outcome.batches_submitted, elapsed,
                )
            elif outcome.cancelled:
                logger.warning(
                    "Rebuild of %s cancelled after %d batches", repository, outcome.batches_submitted,
                )
            else:
                logger.error(
                    "Rebuild of %s failed during %s: %s",
                    repository, outcome.stage.value if outcome.stage else "?", outcome.error,
                )

            if self._hooks is not None:
                self._hooks.run_rebuild_finished(repository, outcome)
        return outcome

    def rebuild_many(
        self,
        repositories: Iterable[RepositoryIdentity],
        max_workers: int | None = None,
        cancel: threading.Event | None = None,
    ) -> list[RebuildOutcome]:
        """Rebuild several repositories concurrently; outcomes keep input order."""
        targets = list(repositories)
        if not targets:
            return []
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="repodex-rebuild") as pool:
            return list(pool.map(lambda repo: self.rebuild(repo, cancel), targets))

    # ── Internal ──────────────────────────────────────────────────────────────

    def _run(
        self,
        repository: RepositoryIdentity,
        cancel: threading.Event | None,
    ) -> RebuildOutcome:
        location = self._writer.location_for(repository)
        context = IndexingContext(repository=repository, location=location)

        state = RebuildState.CREATED
        stage = RebuildStage.PURGE
        pages = batches = entries = 0

        def failed(exc: RepodexError) -> RebuildOutcome:
            return RebuildOutcome(
                repository=repository,
                state=RebuildState.FAILED,
                stage=stage,
                error=exc,
                pages_fetched=pages,
                batches_submitted=batches,
                entries_submitted=entries,
            )

        try:
            _check_cancelled(cancel, repository)
            _write(self._writer.purge, location)
            state = RebuildState.PURGED
            logger.debug("%s: %s", repository, state.value)

            stage = RebuildStage.PAGING
            state = RebuildState.PAGING
            total = self._fetcher.count(repository)
            n_pages = page_count(total, self._page_size)
            logger.info(
                "Rebuilding %s: %d artifact groups in %d pages", repository, total, n_pages,
            )

            for page in range(n_pages):
                _check_cancelled(cancel, repository)
                groups = self._fetcher.fetch_page(
                    repository, page * self._page_size, self._page_size,
                )
                pages += 1
                batch = self._builder.build_page(groups)
                _write(self._writer.add_entries, batch, context)
                batches += 1
                entries += len(batch)
                logger.debug(
                    "%s page %d/%d: %d groups -> %d entries",
                    repository, page + 1, n_pages, len(groups), len(batch),
                )
                self._notify_batch(repository, page, batch)

            _check_cancelled(cancel, repository)
            stage = RebuildStage.SEALING
            _write(self._writer.pack, location, context)
            state = RebuildState.SEALED
        except RepodexError as exc:
            return failed(exc)

        return RebuildOutcome(
            repository=repository,
            state=state,
            pages_fetched=pages,
            batches_submitted=batches,
            entries_submitted=entries,
        )

    def _notify_batch(
        self,
        repository: RepositoryIdentity,
        page: int,
        batch: Sequence[IndexEntry],
    ) -> None:
        if self._hooks is not None:
            self._hooks.run_batch_submitted(repository, page, list(batch))


def _check_cancelled(cancel: threading.Event | None, repository: RepositoryIdentity) -> None:
    if cancel is not None and cancel.is_set():
        raise RebuildCancelled(f"Rebuild of {repository} cancelled")


def _write(operation: Callable[..., None], *args: object) -> None:
    """Invoke a writer operation, reporting any backend error as ``WriterFailure``."""
    try:
        operation(*args)
    except WriterFailure:
        raise
    except Exception as exc:
        raise WriterFailure(f"{getattr(operation, '__name__', 'writer')} failed: {exc}") from exc
