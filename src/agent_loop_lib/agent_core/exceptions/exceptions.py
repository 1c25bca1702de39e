"""
Custom exception classes for the agent loop.

This module defines the hierarchy of exceptions raised while registering tools,
validating and executing tool calls, and driving a conversation against a
language-model backend. Every class carries an ``error_type`` tag, which is the
name reported to the model when the failure is folded into a tool result.
"""

from typing import Optional


class AgentLoopError(Exception):
    """Base exception for all agent loop errors."""

    error_type = "AgentLoopError"


class ToolRegistrationError(AgentLoopError):
    """Raised when a tool cannot be registered."""

    error_type = "ToolRegistrationError"


class DuplicateToolError(ToolRegistrationError):
    """Raised when a tool with the same name is already registered."""

    error_type = "DuplicateToolError"


class SchemaBuildError(ToolRegistrationError):
    """Raised when a tool declares malformed parameter metadata."""

    error_type = "SchemaBuildError"


class ToolNotFoundError(AgentLoopError):
    """Raised when a requested tool is not found in the registry."""

    error_type = "ToolNotFoundError"


class ToolValidationError(AgentLoopError):
    """Raised when tool call arguments do not match the declared schema."""

    error_type = "ValidationError"


class ToolExecutionError(AgentLoopError):
    """Raised when a tool handler fails during execution."""

    error_type = "ToolExecutionError"


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool handler does not finish within its timeout."""

    error_type = "ToolTimeoutError"


class ConversationCancelledError(AgentLoopError):
    """Raised for tool calls that were never dispatched because the conversation was cancelled."""

    error_type = "ConversationCancelledError"


class ModelUnavailableError(AgentLoopError):
    """Raised when the model backend keeps failing after the retry budget is spent."""

    error_type = "ModelUnavailableError"

    def __init__(self, message: str, attempts: int = 0, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class RoundLimitExceededError(AgentLoopError):
    """Raised when the model keeps requesting tools beyond the configured round limit."""

    error_type = "RoundLimitExceededError"
