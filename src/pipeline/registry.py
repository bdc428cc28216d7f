"""Plugin registry and lifecycle management."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import structlog

from .base import ExtensionPlugin, PluginContext, PluginInfo

logger = structlog.get_logger()


class RegistrationStatus(str, Enum):
    """Outcome of a register() call."""

    REGISTERED = "registered"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class _Entry:
    plugin: ExtensionPlugin
    order: int


class PluginRegistry:
    """Ordered registry of initialized plugins, keyed by plugin id.

    Readers take an immutable snapshot of the entries, so dispatch never
    blocks on registration. Writers are serialized by an asyncio lock and
    publish a new tuple when they are done.
    """

    def __init__(self) -> None:
        self._entries: Tuple[_Entry, ...] = ()
        self._write_lock = asyncio.Lock()
        self._next_order = 0

    async def register(
        self,
        plugin: ExtensionPlugin,
        context: PluginContext,
    ) -> RegistrationStatus:
        """Initialize a plugin and append it to the registry.

        Duplicates and plugins whose initialize() raises are logged and
        skipped; neither aborts the caller.
        """
        if not isinstance(plugin, ExtensionPlugin):
            logger.error(
                "Object is not a plugin", plugin_type=type(plugin).__name__
            )
            return RegistrationStatus.FAILED

        plugin_id = plugin.id
        if not plugin_id:
            logger.error("Plugin has no id", plugin_type=type(plugin).__name__)
            return RegistrationStatus.FAILED

        async with self._write_lock:
            if self._find(plugin_id) is not None:
                logger.warning("Plugin already registered", plugin=plugin_id)
                return RegistrationStatus.DUPLICATE

            try:
                await plugin.initialize(context.for_plugin(plugin_id))
            except Exception as exc:
                logger.error(
                    "Plugin initialization failed",
                    plugin=plugin_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return RegistrationStatus.FAILED

            entry = _Entry(plugin=plugin, order=self._next_order)
            self._next_order += 1
            self._entries = self._entries + (entry,)

        logger.info(
            "Plugin registered",
            plugin=plugin_id,
            name=plugin.name,
            version=plugin.version,
            author=plugin.author,
        )
        return RegistrationStatus.REGISTERED

    async def unregister(self, plugin_id: str) -> bool:
        """Remove one plugin and shut it down. Returns False if absent."""
        async with self._write_lock:
            entry = self._find(plugin_id)
            if entry is None:
                return False
            self._entries = tuple(e for e in self._entries if e is not entry)

        await self._shutdown(entry.plugin)
        return True

    async def unregister_all(self) -> int:
        """Shut down every plugin in registration order and empty the registry.

        The registry is emptied before the sweep starts; the dispatcher checks
        is_active() before every hook, so no dispatch reaches a plugin once it
        has been removed, including dispatches already in flight. Returns the number of plugins
        swept; a second call returns 0.
        """
        async with self._write_lock:
            entries = self._entries
            self._entries = ()

        for entry in entries:
            await self._shutdown(entry.plugin)

        if entries:
            logger.info("All plugins shut down", count=len(entries))
        return len(entries)

    def lookup(self, plugin_id: str) -> Optional[ExtensionPlugin]:
        """Get a plugin by id, or None if not registered."""
        entry = self._find(plugin_id)
        return entry.plugin if entry else None

    def is_active(self, plugin: ExtensionPlugin) -> bool:
        """Whether this exact instance is still registered."""
        return any(entry.plugin is plugin for entry in self._entries)

    def snapshot(self) -> Tuple[ExtensionPlugin, ...]:
        """Plugins in dispatch order, as of now."""
        return tuple(entry.plugin for entry in self._entries)

    def list_plugins(self) -> list[PluginInfo]:
        """Summaries of registered plugins in registration order."""
        return [
            PluginInfo(
                id=entry.plugin.id,
                name=entry.plugin.name,
                version=entry.plugin.version,
                description=entry.plugin.description,
                author=entry.plugin.author,
                order=entry.order,
            )
            for entry in self._entries
        ]

    def _find(self, plugin_id: str) -> Optional[_Entry]:
        for entry in self._entries:
            if entry.plugin.id == plugin_id:
                return entry
        return None

    async def _shutdown(self, plugin: ExtensionPlugin) -> None:
        try:
            await plugin.shutdown()
            logger.info("Plugin shut down", plugin=plugin.id)
        except Exception as exc:
            logger.error(
                "Plugin failed during shutdown",
                plugin=plugin.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, plugin_id: object) -> bool:
        return isinstance(plugin_id, str) and self._find(plugin_id) is not None
