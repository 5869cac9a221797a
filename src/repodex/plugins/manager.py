"""Registers rebuild observers with pluggy.

Observers come from installed distributions that advertise a ``repodex``
entry point, and from ``*.py`` files in the configured plugin directory.
A plugin file that fails to run is logged and skipped; the rebuild still
goes ahead without it.
"""

from __future__ import annotations

import logging
import runpy
from pathlib import Path

import pluggy

from repodex.plugins.base import BasePlugin, RepodexHookSpec
from repodex.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

PROJECT_NAME = "repodex"


class PluginManager:
    """Owns the pluggy registry and hands the orchestrator a ``HookRunner``.

    Example::

        pm = PluginManager()
        pm.load_entrypoints()
        orchestrator = RebuildOrchestrator(..., hooks=pm.hooks)
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(RepodexHookSpec)
        self._hooks = HookRunner(self._pm)

    @property
    def hooks(self) -> HookRunner:
        return self._hooks

    def load_entrypoints(self) -> int:
        """Register plugins published under the ``repodex`` entry-point group."""
        count = self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        if count:
            logger.info("Registered %d plugin(s) from entry points", count)
        return count

    def load_from_directory(self, directory: Path) -> int:
        """Run each public ``*.py`` file and register the plugins it defines."""
        if not directory.is_dir():
            logger.warning("Plugin directory does not exist: %s", directory)
            return 0

        loaded = 0
        for py_file in sorted(directory.glob("[!_]*.py")):
            run_name = f"{PROJECT_NAME}_plugins.{py_file.stem}"
            try:
                namespace = runpy.run_path(str(py_file), run_name=run_name)
            except Exception:
                logger.exception("Skipping plugin file %s", py_file)
                continue
            for plugin_cls in _defined_plugins(namespace, run_name):
                self.load_plugin(plugin_cls())
                loaded += 1
        return loaded

    def load_plugin(self, plugin: BasePlugin) -> None:
        """Register one plugin instance under its ``name``.

        Raises:
            TypeError: If the plugin is not a BasePlugin instance.
            ValueError: If the name is already registered.
        """
        if not isinstance(plugin, BasePlugin):
            raise TypeError(f"Expected BasePlugin instance, got {type(plugin).__name__}")
        if self._pm.has_plugin(plugin.name):
            raise ValueError(f"Plugin '{plugin.name}' is already registered.")
        self._pm.register(plugin, name=plugin.name)
        logger.debug("Registered plugin %s v%s", plugin.name, plugin.version)

    def plugin_names(self) -> list[str]:
        """Names of every registered observer, sorted."""
        return sorted(name for name, _ in self._pm.list_name_plugin())


def _defined_plugins(namespace: dict[str, object], module_name: str) -> list[type[BasePlugin]]:
    # Only classes defined in the file itself, not ones it imported
    return [
        value
        for value in namespace.values()
        if isinstance(value, type)
        and issubclass(value, BasePlugin)
        and value is not BasePlugin
        and value.__module__ == module_name
    ]
