"""Tool-related data models."""

from .models import ParameterSpec, ToolDefinition, ToolSchema, SUPPORTED_TYPES
from .tool_call import ToolCall, ToolResult, ToolErrorInfo

__all__ = ["ParameterSpec", "ToolDefinition", "ToolSchema", "SUPPORTED_TYPES", "ToolCall", "ToolResult", "ToolErrorInfo"]
