"""Provider-agnostic message models for the conversation transcript."""

from abc import ABC
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..tools.models import ToolCall, ToolErrorInfo, ToolResult

Author = Literal["system", "user", "assistant", "tool"]


class BaseMessage(ABC, BaseModel):
    """Base model for messages exchanged with a model backend.

    Messages are frozen: once appended to a transcript they never change.

    Attributes:
        author: Role associated with the message.
        content: Text payload of the message.
    """

    model_config = ConfigDict(frozen=True)

    author: Author
    content: str = ""


class SystemMessage(BaseMessage):
    """Message authored by the system to steer behavior."""

    author: Literal["system"] = "system"


class UserMessage(BaseMessage):
    """Message authored by an end user."""

    author: Literal["user"] = "user"


class AssistantMessage(BaseMessage):
    """Message authored by the assistant, optionally containing tool calls."""

    author: Literal["assistant"] = "assistant"
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ToolMessage(BaseMessage):
    """Result of one tool call, correlated to the request by ``tool_call_id``."""

    author: Literal["tool"] = "tool"
    tool_call_id: str
    name: str
    payload: Any = None
    error: Optional[ToolErrorInfo] = None

    @model_validator(mode="after")
    def _payload_xor_error(self) -> "ToolMessage":
        if self.error is not None and self.payload is not None:
            raise ValueError("ToolMessage cannot carry both a payload and an error.")
        return self

    @classmethod
    def from_result(cls, result: ToolResult) -> "ToolMessage":
        """Fold a tool result into a transcript message.

        ``content`` holds a readable summary; ``payload`` / ``error`` keep the
        structured value for adapters that send structured responses.
        """
        if result.error is not None:
            content = f"{result.error.type}: {result.error.message}"
        else:
            content = "" if result.payload is None else str(result.payload)
        return cls(
            content=content,
            tool_call_id=result.call_id,
            name=result.name,
            payload=result.payload,
            error=result.error,
        )

    def to_response(self) -> dict:
        """Wire shape of the result: ``{"result": ...}`` or ``{"error": {...}}``."""
        if self.error is not None:
            return {"error": self.error.to_dict()}
        return {"result": self.payload}
