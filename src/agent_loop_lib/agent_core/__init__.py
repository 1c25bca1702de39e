"""Public exports for the provider-agnostic conversation loop."""

from .config import OrchestratorConfig, RetryPolicy
from .exceptions import (
    AgentLoopError,
    ToolRegistrationError,
    DuplicateToolError,
    SchemaBuildError,
    ToolNotFoundError,
    ToolValidationError,
    ToolExecutionError,
    ToolTimeoutError,
    ConversationCancelledError,
    ModelUnavailableError,
    RoundLimitExceededError,
)
from .logger import get_logger, setup_logging
from .messages import BaseMessage, UserMessage, AssistantMessage, SystemMessage, ToolMessage
from .tools import (
    ParameterSpec,
    ToolDefinition,
    ToolSchema,
    ToolCall,
    ToolResult,
    ToolErrorInfo,
    ToolRegistry,
    SchemaBuilder,
    SchemaValidator,
    ToolParameterFactory,
    ToolInvoker,
    StatusChannel,
    ToolCallStarted,
    ToolCallFinished,
)
from .model_client import ModelClient, ModelResponse
from .orchestrator import ConversationOrchestrator, ConversationPhase, ConversationResult, ConversationState

__all__ = [
    "OrchestratorConfig",
    "RetryPolicy",
    "AgentLoopError",
    "ToolRegistrationError",
    "DuplicateToolError",
    "SchemaBuildError",
    "ToolNotFoundError",
    "ToolValidationError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "ConversationCancelledError",
    "ModelUnavailableError",
    "RoundLimitExceededError",
    "get_logger",
    "setup_logging",
    "BaseMessage",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ToolMessage",
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
    "ModelClient",
    "ModelResponse",
    "ConversationOrchestrator",
    "ConversationPhase",
    "ConversationResult",
    "ConversationState",
]
