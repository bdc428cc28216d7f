"""Request and response contexts passed through the plugin chain.

Contexts are frozen pydantic models. A plugin never mutates the value it
receives in a way the engine has to trust: it returns a new value built with
``evolve()``/``with_metadata()``, and the dispatcher folds those values
through the chain one plugin at a time.
"""

from datetime import timedelta
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypeAliasType

# Tagged metadata value: scalar or nested mapping of the same.
MetadataValue = TypeAliasType(
    "MetadataValue",
    "Union[bool, int, float, str, Dict[str, MetadataValue]]",
)


class _PipelineContext(BaseModel):
    """Shared behaviour for both chain contexts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    metadata: Dict[str, MetadataValue] = Field(default_factory=dict)

    def evolve(self, **changes: Any) -> "_PipelineContext":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    def with_metadata(self, key: str, value: MetadataValue) -> "_PipelineContext":
        """Return a copy with one metadata entry set."""
        metadata = dict(self.metadata)
        metadata[key] = value
        return self.evolve(metadata=metadata)


class RequestContext(_PipelineContext):
    """Outbound prompt on its way to the assistant backend."""

    prompt: str = ""
    cancel: bool = False
    cancel_reason: Optional[str] = None

    def cancelled(self, reason: str) -> "RequestContext":
        """Return a copy that stops the before-request chain."""
        return self.evolve(cancel=True, cancel_reason=reason)


class ResponseContext(_PipelineContext):
    """Assistant reply on its way back to the user."""

    response: str = ""
    duration: timedelta = timedelta(0)
    success: bool = True
    error: Optional[str] = None
