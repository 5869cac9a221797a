"""Tests for RebuildOrchestrator — purge, paging, submit, seal."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from conftest import InMemoryStore, RecordingIndexWriter, make_groups
from repodex.index.errors import (
    RebuildCancelled,
    RebuildFailed,
    StoreUnavailable,
    WriterFailure,
)
from repodex.index.fetcher import GroupPageFetcher
from repodex.index.orchestrator import DEFAULT_PAGE_SIZE, RebuildOrchestrator, page_count
from repodex.index.schema import RebuildStage, RebuildState, RepositoryIdentity


def _orchestrator(store, writer, **kwargs) -> RebuildOrchestrator:
    return RebuildOrchestrator(fetcher=GroupPageFetcher(store), writer=writer, **kwargs)


# ── page_count ────────────────────────────────────────────────────────────────


class TestPageCount:
    @pytest.mark.parametrize(
        "total,expected",
        [(0, 0), (1, 1), (99, 1), (100, 1), (101, 2), (200, 2), (250, 3)],
    )
    def test_covers_total_without_extra_page(self, total: int, expected: int) -> None:
        assert page_count(total, 100) == expected

    def test_rejects_non_positive_page_size(self) -> None:
        with pytest.raises(ValueError):
            page_count(10, 0)


# ── Successful rebuilds ───────────────────────────────────────────────────────


class TestRebuild:
    def test_default_page_size(self) -> None:
        assert DEFAULT_PAGE_SIZE == 100

    def test_250_groups_three_pages(self, repository, recording_writer) -> None:
        store = InMemoryStore(make_groups(250, repository))
        outcome = _orchestrator(store, recording_writer).rebuild(repository)

        assert outcome.ok
        assert outcome.state is RebuildState.SEALED
        assert store.fetches == [(0, 100), (100, 100), (200, 100)]
        assert [len(b) for b in recording_writer.batches] == [200, 200, 100]
        assert recording_writer.calls == ["purge", "add", "add", "add", "pack"]
        assert outcome.pages_fetched == 3
        assert outcome.batches_submitted == 3
        assert outcome.entries_submitted == 500

    def test_exact_multiple_has_no_trailing_fetch(self, repository, recording_writer) -> None:
        store = InMemoryStore(make_groups(200, repository))
        _orchestrator(store, recording_writer).rebuild(repository)
        assert store.fetches == [(0, 100), (100, 100)]

    def test_empty_repository_goes_straight_to_seal(self, repository, recording_writer) -> None:
        store = InMemoryStore([])
        outcome = _orchestrator(store, recording_writer).rebuild(repository)
        assert outcome.ok
        assert store.fetches == []
        assert recording_writer.calls == ["purge", "pack"]

    def test_custom_page_size(self, repository, recording_writer) -> None:
        store = InMemoryStore(make_groups(5, repository))
        _orchestrator(store, recording_writer, page_size=2).rebuild(repository)
        assert store.fetches == [(0, 2), (2, 2), (4, 2)]

    def test_empty_page_submitted_as_empty_batch(self, repository, recording_writer) -> None:
        store = MagicMock()
        store.count_groups.return_value = 3
        store.fetch_groups.side_effect = [make_groups(1, repository), []]
        outcome = _orchestrator(store, recording_writer, page_size=2).rebuild(repository)
        assert outcome.ok
        assert [len(b) for b in recording_writer.batches] == [2, 0]

    def test_context_carries_repository_and_location(self, repository, recording_writer) -> None:
        store = InMemoryStore(make_groups(1, repository))
        _orchestrator(store, recording_writer).rebuild(repository)
        (context,) = recording_writer.contexts
        assert context.repository == repository
        assert context.location == recording_writer.location_for(repository)

    def test_entries_submitted_in_page_order(self, repository, recording_writer) -> None:
        store = InMemoryStore(make_groups(30, repository))
        _orchestrator(store, recording_writer, page_size=7).rebuild(repository)
        names = [e.record.coordinate.artifact_id for e in recording_writer.entries]
        assert names == sorted(names)

    def test_invalid_page_size(self, repository, recording_writer) -> None:
        with pytest.raises(ValueError):
            _orchestrator(InMemoryStore([]), recording_writer, page_size=0)


# ── Failures ──────────────────────────────────────────────────────────────────


class TestRebuildFailures:
    def test_purge_failure_aborts_before_paging(self, repository) -> None:
        writer = RecordingIndexWriter(fail_purge=True)
        store = InMemoryStore(make_groups(10, repository))
        outcome = _orchestrator(store, writer).rebuild(repository)

        assert outcome.state is RebuildState.FAILED
        assert outcome.stage is RebuildStage.PURGE
        assert isinstance(outcome.error, WriterFailure)
        assert isinstance(outcome.error.__cause__, OSError)
        assert store.count_calls == 0
        assert writer.calls == ["purge"]

    def test_second_batch_failure_keeps_first_and_skips_pack(self, repository) -> None:
        writer = RecordingIndexWriter(fail_add_on_call=2)
        store = InMemoryStore(make_groups(250, repository))
        outcome = _orchestrator(store, writer).rebuild(repository)

        assert outcome.state is RebuildState.FAILED
        assert outcome.stage is RebuildStage.PAGING
        assert isinstance(outcome.error, WriterFailure)
        assert "pack" not in writer.calls
        assert len(writer.batches) == 1
        assert len(writer.batches[0]) == 200
        assert outcome.batches_submitted == 1
        assert store.fetches == [(0, 100), (100, 100)]

    def test_count_failure(self, repository, recording_writer) -> None:
        store = MagicMock()
        store.count_groups.side_effect = ConnectionError("store down")
        outcome = _orchestrator(store, recording_writer).rebuild(repository)
        assert outcome.stage is RebuildStage.PAGING
        assert isinstance(outcome.error, StoreUnavailable)
        assert recording_writer.calls == ["purge"]

    def test_fetch_failure_mid_way(self, repository, recording_writer) -> None:
        store = MagicMock()
        store.count_groups.return_value = 150
        store.fetch_groups.side_effect = [make_groups(100, repository), OSError("timeout")]
        outcome = _orchestrator(store, recording_writer).rebuild(repository)
        assert isinstance(outcome.error, StoreUnavailable)
        assert recording_writer.calls == ["purge", "add"]

    def test_unexpected_store_error_reported_as_failure(self, repository, recording_writer) -> None:
        hooks = MagicMock()
        store = MagicMock()
        store.count_groups.side_effect = RuntimeError("driver bug")
        outcome = _orchestrator(store, recording_writer, hooks=hooks).rebuild(repository)

        assert outcome.state is RebuildState.FAILED
        assert isinstance(outcome.error, StoreUnavailable)
        assert isinstance(outcome.error.__cause__, RuntimeError)
        hooks.run_rebuild_finished.assert_called_once_with(repository, outcome)

    def test_pack_failure(self, repository) -> None:
        writer = RecordingIndexWriter(fail_pack=True)
        outcome = _orchestrator(InMemoryStore(make_groups(3, repository)), writer).rebuild(repository)
        assert outcome.stage is RebuildStage.SEALING
        assert isinstance(outcome.error, WriterFailure)
        assert outcome.entries_submitted == 6

    def test_raise_for_failure(self, repository) -> None:
        writer = RecordingIndexWriter(fail_pack=True)
        outcome = _orchestrator(InMemoryStore([]), writer).rebuild(repository)
        with pytest.raises(RebuildFailed) as exc_info:
            outcome.raise_for_failure()
        assert exc_info.value.stage is RebuildStage.SEALING
        assert "sealing" in str(exc_info.value)

    def test_raise_for_failure_noop_on_success(self, repository, recording_writer) -> None:
        _orchestrator(InMemoryStore([]), recording_writer).rebuild(repository).raise_for_failure()


# ── Cancellation ──────────────────────────────────────────────────────────────


class TestCancellation:
    def test_cancel_before_start(self, repository, recording_writer) -> None:
        cancel = threading.Event()
        cancel.set()
        outcome = _orchestrator(InMemoryStore([]), recording_writer).rebuild(repository, cancel)
        assert outcome.cancelled
        assert outcome.state is RebuildState.FAILED
        assert recording_writer.calls == []

    def test_cancel_between_pages(self, repository) -> None:
        cancel = threading.Event()

        class CancellingWriter(RecordingIndexWriter):
            def add_entries(self, batch, context) -> None:
                super().add_entries(batch, context)
                cancel.set()

        writer = CancellingWriter()
        store = InMemoryStore(make_groups(250, repository))
        outcome = _orchestrator(store, writer).rebuild(repository, cancel)

        assert outcome.cancelled
        assert isinstance(outcome.error, RebuildCancelled)
        assert outcome.stage is RebuildStage.PAGING
        assert store.fetches == [(0, 100)]
        assert writer.calls == ["purge", "add"]

    def test_cancel_during_last_page_skips_pack(self, repository) -> None:
        cancel = threading.Event()

        class CancellingWriter(RecordingIndexWriter):
            def add_entries(self, batch, context) -> None:
                super().add_entries(batch, context)
                cancel.set()

        writer = CancellingWriter()
        store = InMemoryStore(make_groups(50, repository))
        outcome = _orchestrator(store, writer).rebuild(repository, cancel)

        assert outcome.cancelled
        assert not outcome.ok
        assert outcome.stage is RebuildStage.PAGING
        assert outcome.batches_submitted == 1
        assert writer.calls == ["purge", "add"]

    def test_cancel_after_count_of_empty_repository(self, repository, recording_writer) -> None:
        cancel = threading.Event()

        class CancellingStore(InMemoryStore):
            def count_groups(self, storage_id, repository_id):
                cancel.set()
                return super().count_groups(storage_id, repository_id)

        outcome = _orchestrator(CancellingStore([]), recording_writer).rebuild(repository, cancel)

        assert outcome.cancelled
        assert recording_writer.calls == ["purge"]


# ── Hooks and concurrency ─────────────────────────────────────────────────────


class TestHooksAndConcurrency:
    def test_hooks_notified(self, repository, recording_writer) -> None:
        hooks = MagicMock()
        store = InMemoryStore(make_groups(150, repository))
        outcome = _orchestrator(store, recording_writer, hooks=hooks).rebuild(repository)

        hooks.run_rebuild_start.assert_called_once_with(repository)
        assert [c.args[1] for c in hooks.run_batch_submitted.call_args_list] == [0, 1]
        hooks.run_rebuild_finished.assert_called_once_with(repository, outcome)

    def test_rebuild_many_keeps_order(self, recording_writer) -> None:
        repos = [RepositoryIdentity("s", f"r{i}") for i in range(4)]
        store = InMemoryStore([])
        outcomes = _orchestrator(store, recording_writer).rebuild_many(repos, max_workers=2)
        assert [o.repository for o in outcomes] == repos
        assert all(o.ok for o in outcomes)

    def test_rebuild_many_empty(self, recording_writer) -> None:
        assert _orchestrator(InMemoryStore([]), recording_writer).rebuild_many([]) == []

    def test_same_repository_rebuilds_do_not_interleave(self, repository) -> None:
        log: list[str] = []
        lock = threading.Lock()

        class LoggingWriter(RecordingIndexWriter):
            def purge(self, location) -> None:
                with lock:
                    log.append("purge")

            def pack(self, location, context) -> None:
                with lock:
                    log.append("pack")

        orchestrator = _orchestrator(InMemoryStore(make_groups(20, repository)), LoggingWriter(), page_size=5)
        threads = [threading.Thread(target=orchestrator.rebuild, args=(repository,)) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert log == ["purge", "pack"] * 3
