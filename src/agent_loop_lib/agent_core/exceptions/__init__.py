"""Export the exception hierarchy used across registration, execution and conversation paths."""

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

__all__ = [
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
]
