"""Shared fixtures for plugin pipeline tests."""

from typing import Callable, List, Tuple

import pytest

from src.pipeline.base import PluginBase, PluginContext
from src.pipeline.context import RequestContext, ResponseContext
from src.pipeline.registry import PluginRegistry

CallLog = List[Tuple[str, str]]


class RecordingPlugin(PluginBase):
    """Plugin that records every hook call into a shared log.

    before_request/after_response append ``|<id>`` to the prompt/response so
    tests can see which plugins touched a context and in what order.
    """

    def __init__(
        self,
        plugin_id: str,
        calls: CallLog,
        cancel: bool = False,
        fail_in: Tuple[str, ...] = (),
    ) -> None:
        super().__init__()
        self.id = plugin_id
        self.name = f"Plugin {plugin_id}"
        self.version = "1.0.0"
        self.description = f"Recording plugin {plugin_id}"
        self.author = "tests"
        self.calls = calls
        self.cancel = cancel
        self.fail_in = fail_in
        self.initialize_count = 0
        self.shutdown_count = 0

    async def initialize(self, context: PluginContext) -> None:
        self.calls.append((self.id, "initialize"))
        self.initialize_count += 1
        if "initialize" in self.fail_in:
            raise RuntimeError("initialize exploded")
        await super().initialize(context)

    async def before_request(self, request: RequestContext) -> RequestContext:
        self.calls.append((self.id, "before_request"))
        if "before_request" in self.fail_in:
            request.metadata[self.id] = "half-done"
            raise RuntimeError("before_request exploded")
        request = request.evolve(prompt=f"{request.prompt}|{self.id}")
        if self.cancel:
            return request.cancelled(f"cancelled by {self.id}")
        return request

    async def after_response(self, response: ResponseContext) -> ResponseContext:
        self.calls.append((self.id, "after_response"))
        if "after_response" in self.fail_in:
            response.metadata[self.id] = "half-done"
            raise RuntimeError("after_response exploded")
        return response.evolve(response=f"{response.response}|{self.id}")

    async def shutdown(self) -> None:
        self.calls.append((self.id, "shutdown"))
        self.shutdown_count += 1
        if "shutdown" in self.fail_in:
            raise RuntimeError("shutdown exploded")


@pytest.fixture
def calls() -> CallLog:
    return []


@pytest.fixture
def make_plugin(calls: CallLog) -> Callable[..., RecordingPlugin]:
    """Factory for recording plugins sharing one call log."""

    def _make(plugin_id: str, **kwargs: object) -> RecordingPlugin:
        return RecordingPlugin(plugin_id, calls, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def plugin_context() -> PluginContext:
    return PluginContext(configuration={"answer": "42"}, shared_data={})


@pytest.fixture
def registry() -> PluginRegistry:
    return PluginRegistry()
