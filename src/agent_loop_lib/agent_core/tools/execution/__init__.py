"""Tool execution and progress reporting."""

from .invoker import ToolInvoker
from .status import StatusChannel, StatusEvent, StatusSink, ToolCallStarted, ToolCallFinished

__all__ = ["ToolInvoker", "StatusChannel", "StatusEvent", "StatusSink", "ToolCallStarted", "ToolCallFinished"]
