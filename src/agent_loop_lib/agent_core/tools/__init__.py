from .models import ParameterSpec, ToolDefinition, ToolSchema, ToolCall, ToolResult, ToolErrorInfo
from .registry import ToolRegistry
from .schema import SchemaBuilder, SchemaValidator, ToolParameterFactory
from .execution import ToolInvoker, StatusChannel, ToolCallStarted, ToolCallFinished

__all__ = [
    "ParameterSpec",
    "ToolDefinition",
    "ToolSchema",
    "ToolCall",
    "ToolResult",
    "ToolErrorInfo",
    "ToolRegistry",
    "SchemaBuilder",
    "SchemaValidator",
    "ToolParameterFactory",
    "ToolInvoker",
    "StatusChannel",
    "ToolCallStarted",
    "ToolCallFinished",
]
