"""Boundary between the conversation loop and a language-model backend."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..messages import BaseMessage
from ..tools.models import ToolCall, ToolSchema


class ModelResponse(BaseModel):
    """Normalized output of one model call.

    Attributes:
        text: Text content returned by the backend, if any.
        tool_calls: Tool calls requested by the backend, in the order issued.
        raw: Provider-specific response payload for advanced use cases.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    text: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    raw: Any = None

    @model_validator(mode="after")
    def _unique_call_ids(self) -> "ModelResponse":
        seen = set()
        for call in self.tool_calls:
            if call.call_id in seen:
                raise ValueError(f"Duplicate tool call id '{call.call_id}' in model response.")
            seen.add(call.call_id)
        return self

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ModelClient(ABC):
    """Abstract base class for language-model backends.

    Implementations translate the provider-agnostic transcript and tool schemas
    into a provider request and the provider's answer back into a
    ``ModelResponse``. Transport failures are raised as-is; retrying is the
    caller's business.
    """

    @abstractmethod
    async def complete(self, transcript: Sequence[BaseMessage], tools: Sequence[ToolSchema]) -> ModelResponse:
        """
        Send the running transcript and the advertised tools to the backend.

        Args:
            transcript: The ordered conversation so far.
            tools: Schemas of the tools the model may call.

        Returns:
            Either a final text answer or a batch of requested tool calls.
        """
        pass
