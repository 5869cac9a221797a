"""Tests for GroupPageFetcher — error translation over the store."""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest

from conftest import InMemoryStore, make_groups
from repodex.index.errors import StoreUnavailable
from repodex.index.fetcher import GroupPageFetcher


class TestGroupPageFetcher:
    def test_count_passes_through(self, repository) -> None:
        fetcher = GroupPageFetcher(InMemoryStore(make_groups(7, repository)))
        assert fetcher.count(repository) == 7

    def test_fetch_page_passes_offsets(self, repository) -> None:
        store = InMemoryStore(make_groups(7, repository))
        page = GroupPageFetcher(store).fetch_page(repository, 5, 5)
        assert len(page) == 2
        assert store.fetches == [(5, 5)]

    def test_count_io_error_becomes_store_unavailable(self, repository) -> None:
        store = MagicMock()
        store.count_groups.side_effect = ConnectionError("refused")
        with pytest.raises(StoreUnavailable) as exc_info:
            GroupPageFetcher(store).count(repository)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_fetch_sqlite_error_becomes_store_unavailable(self, repository) -> None:
        store = MagicMock()
        store.fetch_groups.side_effect = sqlite3.OperationalError("database is locked")
        with pytest.raises(StoreUnavailable):
            GroupPageFetcher(store).fetch_page(repository, 0, 100)

    def test_unexpected_store_error_becomes_store_unavailable(self, repository) -> None:
        store = MagicMock()
        store.fetch_groups.side_effect = KeyError("group_id")
        with pytest.raises(StoreUnavailable) as exc_info:
            GroupPageFetcher(store).fetch_page(repository, 0, 100)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_store_unavailable_not_rewrapped(self, repository) -> None:
        store = MagicMock()
        original = StoreUnavailable("already mapped")
        store.count_groups.side_effect = original
        with pytest.raises(StoreUnavailable) as exc_info:
            GroupPageFetcher(store).count(repository)
        assert exc_info.value is original
