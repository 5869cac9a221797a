"""Hook execution engine wrapping pluggy with error handling."""

from __future__ import annotations

import logging

import pluggy

logger = logging.getLogger(__name__)


class HookRunner:
    """Wraps pluggy's PluginManager so a broken plugin cannot abort a rebuild."""

    def __init__(self, plugin_manager: pluggy.PluginManager) -> None:
        self._pm = plugin_manager

    def run_rebuild_start(self, repository: object) -> None:
        try:
            self._pm.hook.on_rebuild_start(repository=repository)
        except Exception:
            logger.exception("Error running on_rebuild_start hooks for %s", repository)

    def run_batch_submitted(self, repository: object, page: int, entries: list) -> None:
        try:
            self._pm.hook.on_batch_submitted(repository=repository, page=page, entries=entries)
        except Exception:
            logger.exception("Error running on_batch_submitted hooks for %s", repository)

    def run_rebuild_finished(self, repository: object, outcome: object) -> None:
        try:
            self._pm.hook.on_rebuild_finished(repository=repository, outcome=outcome)
        except Exception:
            logger.exception("Error running on_rebuild_finished hooks for %s", repository)
