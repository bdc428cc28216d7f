"""Test plugin discovery from a directory of modules."""

import textwrap
from pathlib import Path

from structlog.testing import capture_logs

from src.pipeline.base import PluginContext
from src.pipeline.exceptions import DuplicatePluginError, PluginInitializationError
from src.pipeline.loader import PluginLoader
from src.pipeline.registry import PluginRegistry

PLUGIN_MODULE = """\
from src.pipeline.base import PluginBase


class {cls}(PluginBase):
    id = "{plugin_id}"
    name = "{cls}"
    version = "2.0.0"
    author = "loader-tests"

    async def before_request(self, request):
        return request.with_metadata("{plugin_id}", True)


PLUGIN_FACTORIES = [{cls}]
"""


def _write_plugin(directory: Path, filename: str, cls: str, plugin_id: str) -> Path:
    path = directory / filename
    path.write_text(PLUGIN_MODULE.format(cls=cls, plugin_id=plugin_id))
    return path


class TestPluginLoader:
    """Test PluginLoader.discover() and load_module()."""

    def setup_method(self) -> None:
        self.registry = PluginRegistry()
        self.loader = PluginLoader(self.registry, PluginContext())

    async def test_discovers_valid_modules_and_isolates_malformed(
        self, tmp_path: Path
    ) -> None:
        """Test two valid modules register and a broken one is logged."""
        _write_plugin(tmp_path, "alpha.py", "AlphaPlugin", "alpha")
        _write_plugin(tmp_path, "beta.py", "BetaPlugin", "beta")
        (tmp_path / "broken.py").write_text("def oops(:\n")

        with capture_logs() as logs:
            result = await self.loader.discover(tmp_path)

        assert sorted(result.registered) == ["alpha", "beta"]
        assert len(self.registry) == 2
        assert len(result.failures) == 1
        assert result.failures[0].module.endswith("broken.py")
        failures = [log for log in logs if log["event"] == "Failed to load plugin module"]
        assert len(failures) == 1
        assert failures[0]["module"].endswith("broken.py")

    async def test_discovery_order_is_sorted_by_path(self, tmp_path: Path) -> None:
        """Test registration order follows sorted module paths."""
        _write_plugin(tmp_path, "b_second.py", "Second", "second")
        _write_plugin(tmp_path, "a_first.py", "First", "first")

        await self.loader.discover(tmp_path)

        assert [info.id for info in self.registry.list_plugins()] == ["first", "second"]

    async def test_missing_location_warns_and_returns_empty(self, tmp_path: Path) -> None:
        """Test a nonexistent directory is not an error."""
        missing = tmp_path / "does-not-exist"

        with capture_logs() as logs:
            result = await self.loader.discover(missing)

        assert result.registered == []
        assert result.failures == []
        warnings = [log for log in logs if log["event"] == "Plugin directory not found"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"

    async def test_file_location_is_treated_as_missing(self, tmp_path: Path) -> None:
        """Test a path that is a file yields an empty result."""
        path = _write_plugin(tmp_path, "alpha.py", "AlphaPlugin", "alpha")

        result = await self.loader.discover(path)

        assert result.registered == []
        assert len(self.registry) == 0

    async def test_module_without_factories_is_a_failure(self, tmp_path: Path) -> None:
        """Test a module that exposes no PLUGIN_FACTORIES is reported."""
        (tmp_path / "helpers.py").write_text("VALUE = 1\n")

        result = await self.loader.discover(tmp_path)

        assert len(result.failures) == 1
        assert "PLUGIN_FACTORIES" in result.failures[0].reason

    async def test_private_modules_are_skipped(self, tmp_path: Path) -> None:
        """Test underscore-prefixed files are not candidates."""
        (tmp_path / "__init__.py").write_text("")
        (tmp_path / "_shared.py").write_text("raise RuntimeError('never imported')\n")
        _write_plugin(tmp_path, "alpha.py", "AlphaPlugin", "alpha")

        result = await self.loader.discover(tmp_path)

        assert result.registered == ["alpha"]
        assert result.failures == []

    async def test_nested_directories_are_searched(self, tmp_path: Path) -> None:
        """Test candidate modules are found recursively."""
        nested = tmp_path / "vendor" / "extras"
        nested.mkdir(parents=True)
        _write_plugin(nested, "gamma.py", "GammaPlugin", "gamma")

        result = await self.loader.discover(tmp_path)

        assert result.registered == ["gamma"]

    async def test_failing_factory_does_not_drop_siblings(self, tmp_path: Path) -> None:
        """Test one bad factory is reported while the others register."""
        (tmp_path / "mixed.py").write_text(
            textwrap.dedent(
                """\
                from src.pipeline.base import PluginBase


                class Good(PluginBase):
                    id = "good"


                def exploding():
                    raise ValueError("no config")


                def not_a_plugin():
                    return object()


                PLUGIN_FACTORIES = [exploding, Good, not_a_plugin]
                """
            )
        )

        result = await self.loader.discover(tmp_path)

        assert result.registered == ["good"]
        assert len(result.failures) == 2
        reasons = " ".join(failure.reason for failure in result.failures)
        assert "no config" in reasons
        assert "not a plugin" in reasons

    async def test_duplicates_and_init_failures_are_skipped(self, tmp_path: Path) -> None:
        """Test registry rejections are reported as skipped, not failures."""
        _write_plugin(tmp_path, "one.py", "One", "same")
        _write_plugin(tmp_path, "two.py", "Two", "same")
        (tmp_path / "three.py").write_text(
            textwrap.dedent(
                """\
                from src.pipeline.base import PluginBase


                class Fragile(PluginBase):
                    id = "fragile"

                    async def initialize(self, context):
                        raise RuntimeError("cannot start")


                PLUGIN_FACTORIES = [Fragile]
                """
            )
        )

        result = await self.loader.discover(tmp_path)

        assert result.registered == ["same"]
        assert result.failures == []
        assert not result.ok
        kinds = {type(error) for error in result.skipped}
        assert kinds == {DuplicatePluginError, PluginInitializationError}

    async def test_discovered_plugins_are_dispatchable(self, tmp_path: Path) -> None:
        """Test a discovered plugin participates in the request chain."""
        from src.pipeline.context import RequestContext
        from src.pipeline.dispatcher import PipelineDispatcher

        _write_plugin(tmp_path, "alpha.py", "AlphaPlugin", "alpha")
        await self.loader.discover(tmp_path)

        result = await PipelineDispatcher(self.registry).run_before_request(
            RequestContext(prompt="p")
        )
        assert result.metadata == {"alpha": True}

    def test_load_module_reports_import_errors(self, tmp_path: Path) -> None:
        """Test load_module() returns a failure instead of raising."""
        path = tmp_path / "bad_import.py"
        path.write_text("import definitely_not_a_real_module_name\n")

        plugins, failures = self.loader.load_module(path)

        assert plugins == []
        assert len(failures) == 1
        assert "definitely_not_a_real_module_name" in failures[0].reason

    async def test_non_list_factories_is_isolated(self, tmp_path: Path) -> None:
        """Test PLUGIN_FACTORIES set to a bare class fails only that module."""
        _write_plugin(tmp_path, "a_good.py", "GoodPlugin", "good")
        (tmp_path / "b_bad.py").write_text(
            textwrap.dedent(
                """\
                from src.pipeline.base import PluginBase


                class Bad(PluginBase):
                    id = "bad"


                PLUGIN_FACTORIES = Bad
                """
            )
        )
        _write_plugin(tmp_path, "c_after.py", "AfterPlugin", "after")

        with capture_logs() as logs:
            result = await self.loader.discover(tmp_path)

        assert result.registered == ["good", "after"]
        assert len(result.failures) == 1
        assert result.failures[0].module.endswith("b_bad.py")
        assert "must be a list or tuple" in result.failures[0].reason
        assert any(
            log["event"] == "Failed to load plugin module"
            and log["module"].endswith("b_bad.py")
            for log in logs
        )

    async def test_unexpected_load_error_does_not_escape(
        self, tmp_path: Path, monkeypatch
    ) -> None:
        """Test an error raised by load_module itself is recorded per module."""
        _write_plugin(tmp_path, "alpha.py", "AlphaPlugin", "alpha")
        _write_plugin(tmp_path, "beta.py", "BetaPlugin", "beta")
        original = self.loader.load_module

        def flaky_load(module_path: Path):
            if module_path.name == "alpha.py":
                raise RuntimeError("loader bug")
            return original(module_path)

        monkeypatch.setattr(self.loader, "load_module", flaky_load)

        result = await self.loader.discover(tmp_path)

        assert result.registered == ["beta"]
        assert len(result.failures) == 1
        assert result.failures[0].reason == "loader bug"
