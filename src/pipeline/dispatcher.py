"""Pipeline dispatcher — folds contexts through the registered plugins."""

from typing import Optional, Type, TypeVar

import structlog

from .base import ExtensionPlugin
from .context import RequestContext, ResponseContext
from .exceptions import PluginHookError
from .registry import PluginRegistry

logger = structlog.get_logger()

ContextT = TypeVar("ContextT", RequestContext, ResponseContext)


class PipelineDispatcher:
    """Run the before-request and after-response chains.

    Plugins run one at a time in registration order. Each plugin receives a
    private deep copy of the current context; if its hook raises, the copy
    is dropped and the next plugin sees the last good context. A plugin
    removed from the registry mid-chain is skipped for the rest of it.
    """

    def __init__(self, registry: PluginRegistry) -> None:
        self._registry = registry

    async def run_before_request(self, request: RequestContext) -> RequestContext:
        """Dispatch a request, stopping at the first plugin that cancels it."""
        if not isinstance(request, RequestContext):
            raise TypeError(
                f"Expected RequestContext, got {type(request).__name__}"
            )
        context = request
        for plugin in self._registry.snapshot():
            result = await self._invoke(plugin, "before_request", context, RequestContext)
            if result is None:
                continue

            context = result
            if context.cancel:
                logger.info(
                    "Request cancelled by plugin",
                    plugin=plugin.id,
                    reason=context.cancel_reason,
                )
                break

        return context

    async def run_after_response(self, response: ResponseContext) -> ResponseContext:
        """Dispatch a response through every registered plugin."""
        if not isinstance(response, ResponseContext):
            raise TypeError(
                f"Expected ResponseContext, got {type(response).__name__}"
            )

        context = response
        for plugin in self._registry.snapshot():
            result = await self._invoke(plugin, "after_response", context, ResponseContext)
            if result is not None:
                context = result

        return context

    async def _invoke(
        self,
        plugin: ExtensionPlugin,
        hook: str,
        context: ContextT,
        expected: Type[ContextT],
    ) -> Optional[ContextT]:
        """Call one hook. Returns None when the plugin faulted or is gone."""
        if not self._registry.is_active(plugin):
            logger.debug("Skipping unregistered plugin", plugin=plugin.id, hook=hook)
            return None

        try:
            result = await getattr(plugin, hook)(context.model_copy(deep=True))
            if not isinstance(result, expected):
                raise PluginHookError(
                    plugin.id,
                    hook,
                    f"returned {type(result).__name__}, expected {expected.__name__}",
                )
        except Exception as exc:
            logger.error(
                "Plugin hook failed",
                plugin=plugin.id,
                hook=hook,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None
        return result
