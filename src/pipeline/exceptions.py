"""Error taxonomy for the plugin pipeline."""

from typing import Optional


class PluginError(Exception):
    """Base class for plugin pipeline errors."""

    def __init__(self, message: str, plugin_id: Optional[str] = None) -> None:
        self.plugin_id = plugin_id
        super().__init__(message)


class DuplicatePluginError(PluginError):
    """A plugin with the same id is already registered."""

    def __init__(self, plugin_id: str) -> None:
        super().__init__(f"Plugin {plugin_id} already registered", plugin_id)


class PluginInitializationError(PluginError):
    """A plugin's initialize hook failed; it was not registered."""


class PluginHookError(PluginError):
    """A plugin hook raised or returned an unusable value."""

    def __init__(self, plugin_id: str, hook: str, reason: str) -> None:
        self.hook = hook
        self.reason = reason
        super().__init__(f"Plugin {plugin_id} failed in {hook}: {reason}", plugin_id)


class PluginDiscoveryError(PluginError):
    """A candidate module could not be loaded or produced no plugins."""

    def __init__(self, module: str, reason: str) -> None:
        self.module = module
        self.reason = reason
        super().__init__(f"Failed to load plugins from {module}: {reason}")


class PipelineClosedError(PluginError):
    """The plugin manager has been closed and accepts no new plugins."""
