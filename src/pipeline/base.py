"""Base protocol and helpers for pipeline plugins."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

import structlog

from .context import RequestContext, ResponseContext


@dataclass
class PluginContext:
    """Handle given to a plugin on initialize.

    ``configuration`` and ``shared_data`` are shared by every plugin of one
    manager. ``bridge`` is the host's backend handle and is passed through
    untouched.
    """

    configuration: Mapping[str, str] = field(default_factory=dict)
    shared_data: Dict[str, Any] = field(default_factory=dict)
    logger: Any = field(default_factory=structlog.get_logger)
    bridge: Any = None

    def for_plugin(self, plugin_id: str) -> "PluginContext":
        """Return a view whose logger is bound to one plugin."""
        return replace(self, logger=self.logger.bind(plugin=plugin_id))


@dataclass(frozen=True)
class PluginInfo:
    """Summary of a registered plugin."""

    id: str
    name: str
    version: str
    description: str
    author: str
    order: int


@runtime_checkable
class ExtensionPlugin(Protocol):
    """Protocol every pipeline plugin satisfies."""

    id: str
    name: str
    version: str
    description: str
    author: str

    async def initialize(self, context: PluginContext) -> None:
        """Prepare the plugin. Raising prevents registration."""
        ...

    async def before_request(self, request: RequestContext) -> RequestContext:
        """Inspect or rewrite an outbound request."""
        ...

    async def after_response(self, response: ResponseContext) -> ResponseContext:
        """Inspect or rewrite an inbound response."""
        ...

    async def shutdown(self) -> None:
        """Release resources. Called once at teardown."""
        ...


class PluginBase:
    """Convenience base class with pass-through hooks.

    Subclasses set the identity attributes and override only the hooks they
    need. The initialization context is kept on ``self.context``.
    """

    id: str = ""
    name: str = ""
    version: str = "0.0.0"
    description: str = ""
    author: str = ""

    def __init__(self) -> None:
        self.context: Optional[PluginContext] = None

    @property
    def logger(self) -> Any:
        """Logger injected by the manager, or an unbound one before init."""
        if self.context is None:
            return structlog.get_logger().bind(plugin=self.id)
        return self.context.logger

    async def initialize(self, context: PluginContext) -> None:
        self.context = context

    async def before_request(self, request: RequestContext) -> RequestContext:
        return request

    async def after_response(self, response: ResponseContext) -> ResponseContext:
        return response

    async def shutdown(self) -> None:
        return None
