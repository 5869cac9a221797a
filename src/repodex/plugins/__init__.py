"""repodex plugin system powered by pluggy."""

from repodex.plugins.base import BasePlugin, RepodexHookSpec, hookimpl, hookspec
from repodex.plugins.hooks import HookRunner
from repodex.plugins.manager import PluginManager

__all__ = [
    "BasePlugin",
    "HookRunner",
    "PluginManager",
    "RepodexHookSpec",
    "hookimpl",
    "hookspec",
]
