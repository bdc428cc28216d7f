"""PluginManager — host-facing entry point of the plugin pipeline.

Typical host usage::

    manager = PluginManager.from_settings(settings, bridge=bridge)
    await manager.start()

    request = await manager.dispatch_before(RequestContext(prompt=text))
    if not request.cancel:
        reply = await bridge.send(request.prompt)
        await manager.dispatch_after(ResponseContext(response=reply))

    await manager.close()
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import structlog

from src.config.settings import Settings, get_settings

from .base import ExtensionPlugin, PluginContext, PluginInfo
from .context import RequestContext, ResponseContext
from .dispatcher import PipelineDispatcher
from .exceptions import PipelineClosedError
from .loader import DiscoveryResult, PluginLoader
from .registry import PluginRegistry, RegistrationStatus

logger = structlog.get_logger()


class PluginManager:
    """Owns the registry, the dispatcher and the loader for one host."""

    def __init__(
        self,
        bridge: Any = None,
        configuration: Optional[Mapping[str, str]] = None,
        shared_data: Optional[Dict[str, Any]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings
        self._context = PluginContext(
            configuration=dict(configuration or {}),
            shared_data=shared_data if shared_data is not None else {},
            logger=structlog.get_logger(),
            bridge=bridge,
        )
        self._registry = PluginRegistry()
        self._dispatcher = PipelineDispatcher(self._registry)
        self._loader = PluginLoader(self._registry, self._context)
        self._closed = False

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, bridge: Any = None
    ) -> "PluginManager":
        """Build a manager whose plugin configuration comes from settings.

        Falls back to the process-wide settings loaded from the environment.
        """
        settings = settings or get_settings()
        return cls(
            bridge=bridge,
            configuration=settings.plugin_configuration(),
            settings=settings,
        )

    @property
    def context(self) -> PluginContext:
        return self._context

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> Optional[DiscoveryResult]:
        """Discover the configured plugin directory, if any."""
        if self._settings is None or self._settings.plugin_dir is None:
            return None
        return await self.discover(self._settings.plugin_dir)

    async def register(self, plugin: ExtensionPlugin) -> RegistrationStatus:
        """Register a plugin directly. Registration order is dispatch order."""
        self._ensure_open()
        return await self._registry.register(plugin, self._context)

    async def discover(self, location: Union[str, Path]) -> DiscoveryResult:
        """Load and register plugins from a directory."""
        self._ensure_open()
        return await self._loader.discover(location)

    async def dispatch_before(self, request: RequestContext) -> RequestContext:
        return await self._dispatcher.run_before_request(request)

    async def dispatch_after(self, response: ResponseContext) -> ResponseContext:
        return await self._dispatcher.run_after_response(response)

    async def unregister(self, plugin_id: str) -> bool:
        return await self._registry.unregister(plugin_id)

    async def teardown(self) -> int:
        """Shut down every registered plugin. Safe to call repeatedly."""
        return await self._registry.unregister_all()

    async def close(self) -> None:
        """Tear down and refuse further registrations."""
        await self.teardown()
        self._closed = True

    def lookup(self, plugin_id: str) -> Optional[ExtensionPlugin]:
        return self._registry.lookup(plugin_id)

    def list_registered(self) -> list[PluginInfo]:
        return self._registry.list_plugins()

    def _ensure_open(self) -> None:
        if self._closed:
            raise PipelineClosedError("Plugin manager is closed")

    async def __aenter__(self) -> "PluginManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
