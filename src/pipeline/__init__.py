"""Plugin pipeline: observe and transform assistant requests and responses."""

from .base import ExtensionPlugin, PluginBase, PluginContext, PluginInfo
from .context import MetadataValue, RequestContext, ResponseContext
from .dispatcher import PipelineDispatcher
from .exceptions import (
    DuplicatePluginError,
    PipelineClosedError,
    PluginDiscoveryError,
    PluginError,
    PluginHookError,
    PluginInitializationError,
)
from .loader import DiscoveryResult, PluginLoader
from .manager import PluginManager
from .registry import PluginRegistry, RegistrationStatus

__all__ = [
    "DiscoveryResult",
    "DuplicatePluginError",
    "ExtensionPlugin",
    "MetadataValue",
    "PipelineClosedError",
    "PipelineDispatcher",
    "PluginBase",
    "PluginContext",
    "PluginDiscoveryError",
    "PluginError",
    "PluginHookError",
    "PluginInfo",
    "PluginInitializationError",
    "PluginLoader",
    "PluginManager",
    "PluginRegistry",
    "RegistrationStatus",
    "RequestContext",
    "ResponseContext",
]
