"""Plugin interface and hook specifications using pluggy."""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("repodex")
hookimpl = pluggy.HookimplMarker("repodex")


class RepodexHookSpec:
    """Hook specifications for rebuild observers.

    Plugins only need to implement the hooks they care about.
    """

    @hookspec
    def on_rebuild_start(self, repository: object) -> None:
        """Called once the repository lease is held, before the purge.

        Args:
            repository: The RepositoryIdentity being rebuilt.
        """

    @hookspec
    def on_batch_submitted(self, repository: object, page: int, entries: list) -> None:
        """Called after a page's batch was accepted by the index writer.

        Args:
            repository: The RepositoryIdentity being rebuilt.
            page: Zero-based page number.
            entries: The IndexEntry list that was submitted (may be empty).
        """

    @hookspec
    def on_rebuild_finished(self, repository: object, outcome: object) -> None:
        """Called with the final RebuildOutcome, successful or not.

        Args:
            repository: The RepositoryIdentity that was rebuilt.
            outcome: The RebuildOutcome.
        """


class BasePlugin:
    """Base class for repodex plugins.

    Example::

        from repodex.plugins.base import BasePlugin, hookimpl

        class AuditPlugin(BasePlugin):
            name = "audit"

            @hookimpl
            def on_rebuild_finished(self, repository, outcome):
                print(repository, outcome.state)
    """

    name: str = "unnamed"
    version: str = "0.0.0"
    description: str = ""
