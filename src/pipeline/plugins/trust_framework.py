"""Trust framework plugin — blocks destructive operations before they run."""

from typing import Iterable, Optional

from src.pipeline.base import PluginBase, PluginContext
from src.pipeline.context import RequestContext, ResponseContext

UNSAFE_PATTERNS = ("rm -rf /", "rm -rf ~", "dd if=", "> /dev/", "mkfs", "fdisk")
SAFE_PATHS = ("/tmp/", "~/.cp-state/", "~/captain-cp/")
FILE_OPERATIONS = ("write", "delete", "modify")

CANCEL_REASON = "unsafe pattern"
REFUSAL_PROMPT = (
    "I cannot execute that operation as it appears to be destructive. "
    "Please verify your intent."
)


class TrustFrameworkPlugin(PluginBase):
    """Evaluate operation safety and cancel risky requests.

    Safe paths can be overridden with the ``trust_framework.safe_paths``
    configuration key (comma-separated).
    """

    id = "trust-framework"
    name = "Trust Framework Plugin"
    version = "1.0.0"
    description = "Evaluates operation safety and blocks risky operations"
    author = "BarrerSoftware"

    def __init__(
        self,
        unsafe_patterns: Optional[Iterable[str]] = None,
        safe_paths: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__()
        self.unsafe_patterns = tuple(unsafe_patterns or UNSAFE_PATTERNS)
        self.safe_paths = tuple(safe_paths or SAFE_PATHS)
        self.blocked_count = 0

    async def initialize(self, context: PluginContext) -> None:
        await super().initialize(context)
        configured = context.configuration.get("trust_framework.safe_paths")
        if configured:
            self.safe_paths = tuple(
                path.strip() for path in configured.split(",") if path.strip()
            )
        self.logger.info(
            "Protecting system from risky operations",
            unsafe_patterns=len(self.unsafe_patterns),
            safe_paths=list(self.safe_paths),
        )

    async def before_request(self, request: RequestContext) -> RequestContext:
        prompt = request.prompt.lower()

        for pattern in self.unsafe_patterns:
            if pattern.lower() in prompt:
                self.blocked_count += 1
                self.logger.warning("Blocked unsafe request", pattern=pattern)
                metadata = dict(request.metadata)
                metadata["blocked"] = True
                metadata["reason"] = f"Unsafe pattern detected: {pattern}"
                return request.evolve(
                    prompt=REFUSAL_PROMPT,
                    metadata=metadata,
                    cancel=True,
                    cancel_reason=CANCEL_REASON,
                )

        if any(operation in prompt for operation in FILE_OPERATIONS):
            if any(path in prompt for path in self.safe_paths):
                self.logger.debug("Safe path detected")
                return request

            self.logger.warning("File operation outside safe paths")
            return request.evolve(
                prompt=(
                    f"[TRUST CHECK] {request.prompt}\n\n"
                    "Note: This operation is outside safe paths. "
                    "Proceed with caution."
                ),
                metadata={**request.metadata, "warning": True},
            )

        return request

    async def after_response(self, response: ResponseContext) -> ResponseContext:
        if response.metadata.get("blocked"):
            self.logger.info(
                "Operation was blocked", reason=response.metadata.get("reason")
            )
        return response

    async def shutdown(self) -> None:
        self.logger.info("Protected session ended", blocked=self.blocked_count)


PLUGIN_FACTORIES = [TrustFrameworkPlugin]
