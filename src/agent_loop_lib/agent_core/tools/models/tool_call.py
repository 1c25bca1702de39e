"""Data models for tool calls requested by the model and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...exceptions import AgentLoopError, ToolExecutionError


@dataclass(frozen=True)
class ToolCall:
    """Represents a normalized tool call request from a model response.

    Attributes:
        call_id: Identifier supplied by the model, unique within one round.
        name: Name of the requested tool.
        arguments: Raw, unparsed arguments (mapping, JSON string or None).
    """

    call_id: str
    name: str
    arguments: Any = None

    def __post_init__(self) -> None:
        if not self.call_id:
            raise ValueError("ToolCall requires a non-empty call_id.")


@dataclass(frozen=True)
class ToolErrorInfo:
    """Structured description of a failed tool call.

    Attributes:
        type: Error class tag, e.g. ``ValidationError`` or ``ToolTimeoutError``.
        message: Human readable description shown to the model.
        exception: Class name of the exception raised by the handler, if any.
    """

    type: str
    message: str
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.exception:
            data["exception"] = self.exception
        return data


@dataclass(frozen=True)
class ToolResult:
    """Represents the outcome of executing one tool call.

    Exactly one of ``payload`` (success) and ``error`` (failure) is meaningful;
    a result carrying an error never carries a payload.
    """

    call_id: str
    name: str
    payload: Any = None
    error: Optional[ToolErrorInfo] = None

    def __post_init__(self) -> None:
        if self.error is not None and self.payload is not None:
            raise ValueError("ToolResult cannot carry both a payload and an error.")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, call: ToolCall, payload: Any) -> "ToolResult":
        return cls(call_id=call.call_id, name=call.name, payload=payload)

    @classmethod
    def failure(cls, call: ToolCall, exc: AgentLoopError) -> "ToolResult":
        """Build an error result from one of the library's exceptions.

        For ``ToolExecutionError`` raised from a handler failure, the class name
        of the original exception is kept alongside the message.
        """
        original = exc.__cause__
        exception_name = None
        if isinstance(exc, ToolExecutionError) and original is not None:
            exception_name = type(original).__name__
        return cls(
            call_id=call.call_id,
            name=call.name,
            error=ToolErrorInfo(type=exc.error_type, message=str(exc), exception=exception_name),
        )

    def to_response(self) -> Dict[str, Any]:
        """Wire shape sent back to the model: ``{"result": ...}`` or ``{"error": {...}}``."""
        if self.error is not None:
            return {"error": self.error.to_dict()}
        return {"result": self.payload}
