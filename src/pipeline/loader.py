"""Plugin discovery from a directory of Python modules.

A candidate module is any ``*.py`` file under the location whose name does
not start with an underscore. Each module lists its plugins explicitly::

    PLUGIN_FACTORIES = [MyPlugin, lambda: OtherPlugin(threshold=3)]

Every factory is called once and the resulting instance is registered.
"""

import hashlib
import importlib.util
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import List, Tuple, Union

import structlog

from .base import ExtensionPlugin, PluginContext
from .exceptions import (
    DuplicatePluginError,
    PluginDiscoveryError,
    PluginError,
    PluginInitializationError,
)
from .registry import PluginRegistry, RegistrationStatus

logger = structlog.get_logger()

FACTORY_ATTRIBUTE = "PLUGIN_FACTORIES"


@dataclass
class DiscoveryResult:
    """What a discover() call did."""

    location: Path
    registered: List[str] = field(default_factory=list)
    skipped: List[PluginError] = field(default_factory=list)
    failures: List[PluginDiscoveryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.skipped


class PluginLoader:
    """Load plugin modules from disk and register what they provide."""

    def __init__(self, registry: PluginRegistry, context: PluginContext) -> None:
        self._registry = registry
        self._context = context

    @staticmethod
    def candidates(location: Path) -> List[Path]:
        """Candidate module files, sorted so discovery order is stable."""
        return sorted(
            path
            for path in location.rglob("*.py")
            if not path.name.startswith("_")
        )

    async def discover(self, location: Union[str, Path]) -> DiscoveryResult:
        """Load every candidate module under location and register its plugins.

        Never raises for plugin-side problems: a missing directory is a
        warning, a broken module is a logged failure.
        """
        path = Path(location).expanduser()
        result = DiscoveryResult(location=path)

        if not path.is_dir():
            logger.warning("Plugin directory not found", location=str(path))
            return result

        for module_path in self.candidates(path):
            try:
                plugins, failures = self.load_module(module_path)
            except Exception as exc:
                plugins = []
                failures = [PluginDiscoveryError(str(module_path), str(exc))]
            for failure in failures:
                logger.error(
                    "Failed to load plugin module",
                    module=failure.module,
                    error=failure.reason,
                )
            result.failures.extend(failures)

            for plugin in plugins:
                status = await self._registry.register(plugin, self._context)
                if status is RegistrationStatus.REGISTERED:
                    result.registered.append(plugin.id)
                elif status is RegistrationStatus.DUPLICATE:
                    result.skipped.append(DuplicatePluginError(plugin.id))
                else:
                    result.skipped.append(
                        PluginInitializationError(
                            f"Plugin {plugin.id} failed to initialize", plugin.id
                        )
                    )

        logger.info(
            "Plugin discovery finished",
            location=str(path),
            registered=len(result.registered),
            skipped=len(result.skipped),
            failed=len(result.failures),
        )
        return result

    def load_module(
        self, module_path: Path
    ) -> Tuple[List[ExtensionPlugin], List[PluginDiscoveryError]]:
        """Import one module and build its plugins.

        A failing factory is reported without dropping the module's other
        plugins.
        """
        try:
            module = self._import(module_path)
        except Exception as exc:
            return [], [PluginDiscoveryError(str(module_path), str(exc))]

        factories = getattr(module, FACTORY_ATTRIBUTE, None)
        if factories is not None and not isinstance(factories, (list, tuple)):
            return [], [
                PluginDiscoveryError(
                    str(module_path),
                    f"{FACTORY_ATTRIBUTE} must be a list or tuple, "
                    f"got {type(factories).__name__}",
                )
            ]
        if not factories:
            return [], [
                PluginDiscoveryError(
                    str(module_path), f"module defines no {FACTORY_ATTRIBUTE}"
                )
            ]

        plugins: List[ExtensionPlugin] = []
        failures: List[PluginDiscoveryError] = []
        for factory in factories:
            factory_name = getattr(factory, "__name__", repr(factory))
            try:
                plugin = factory()
            except Exception as exc:
                failures.append(
                    PluginDiscoveryError(
                        str(module_path), f"factory {factory_name} failed: {exc}"
                    )
                )
                continue

            if not isinstance(plugin, ExtensionPlugin):
                failures.append(
                    PluginDiscoveryError(
                        str(module_path),
                        f"factory {factory_name} returned {type(plugin).__name__}, "
                        "which is not a plugin",
                    )
                )
                continue
            plugins.append(plugin)

        return plugins, failures

    @staticmethod
    def _import(module_path: Path) -> ModuleType:
        """Execute a module file under a name unique to its path."""
        digest = hashlib.sha1(str(module_path.resolve()).encode()).hexdigest()[:8]
        module_name = f"pipeline_plugin_{module_path.stem}_{digest}"

        spec = importlib.util.spec_from_file_location(module_name, str(module_path))
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot create import spec for {module_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module
