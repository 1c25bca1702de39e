"""Agent Loop Library - a tool-augmented conversation loop for language-model agents."""

from .agent_core import (
    ConversationOrchestrator,
    ConversationPhase,
    ConversationResult,
    OrchestratorConfig,
    RetryPolicy,
    ModelClient,
    ModelResponse,
    ToolRegistry,
    ToolDefinition,
    ParameterSpec,
    ToolCall,
    ToolResult,
    ToolInvoker,
    StatusChannel,
    UserMessage,
    AssistantMessage,
    SystemMessage,
    ToolMessage,
)
from .agent_impl import GeminiModelClient, OpenAIModelClient

__all__ = [
    "ConversationOrchestrator",
    "ConversationPhase",
    "ConversationResult",
    "OrchestratorConfig",
    "RetryPolicy",
    "ModelClient",
    "ModelResponse",
    "ToolRegistry",
    "ToolDefinition",
    "ParameterSpec",
    "ToolCall",
    "ToolResult",
    "ToolInvoker",
    "StatusChannel",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ToolMessage",
    "GeminiModelClient",
    "OpenAIModelClient",
]
