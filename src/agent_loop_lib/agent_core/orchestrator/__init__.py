"""Conversation state machine and its result types."""

from .conversation import ConversationOrchestrator
from .state import ConversationPhase, ConversationResult, ConversationState

__all__ = ["ConversationOrchestrator", "ConversationPhase", "ConversationResult", "ConversationState"]
