"""Conversation state owned by a single orchestrator."""

from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..logger import get_logger
from ..messages import AssistantMessage, BaseMessage, ToolMessage

logger = get_logger(__name__)


class ConversationPhase(str, Enum):
    """Phases of the conversation state machine.

    ``IDLE -> AWAITING_MODEL -> (DONE | HAS_TOOL_CALLS) -> EXECUTING_TOOLS -> AWAITING_MODEL -> ...``

    ``CANCELLED`` and ``FAILED`` are the terminal phases reached through
    ``cancel()`` and an unavailable model backend respectively.
    """

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    HAS_TOOL_CALLS = "has_tool_calls"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ConversationPhase.DONE, ConversationPhase.CANCELLED, ConversationPhase.FAILED)


class ConversationState:
    """Append-only transcript plus round counter, cancellation flag and phase.

    Only the orchestrator writes to it. Readers get an immutable snapshot of
    the transcript, and ``phases`` lists every phase entered so far, so short
    lived ones such as ``HAS_TOOL_CALLS`` stay observable after the fact.
    """

    def __init__(self) -> None:
        self._transcript: List[BaseMessage] = []
        self.round = 0
        self.cancelled = False
        self._phase = ConversationPhase.IDLE
        self._phases: List[ConversationPhase] = [ConversationPhase.IDLE]

    @property
    def phase(self) -> ConversationPhase:
        return self._phase

    @phase.setter
    def phase(self, value: ConversationPhase) -> None:
        logger.debug(f"Conversation phase: {self._phase.value} -> {value.value}")
        self._phase = value
        self._phases.append(value)

    @property
    def phases(self) -> Tuple[ConversationPhase, ...]:
        return tuple(self._phases)

    @property
    def transcript(self) -> Tuple[BaseMessage, ...]:
        return tuple(self._transcript)

    def append(self, message: BaseMessage) -> None:
        self._transcript.append(message)

    def extend(self, messages: Iterable[BaseMessage]) -> None:
        self._transcript.extend(messages)

    def __len__(self) -> int:
        return len(self._transcript)


class ConversationResult(BaseModel):
    """Outcome of a conversation run.

    Attributes:
        answer: Final text answer, or None if the conversation was cancelled.
        transcript: The complete transcript, including tool calls and results.
        rounds: Number of model calls that completed.
        phase: Terminal phase the conversation ended in.
        raw: Provider-specific payload of the last model response.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    answer: Optional[str]
    transcript: List[BaseMessage]
    rounds: int
    phase: ConversationPhase
    raw: Any = None

    @property
    def cancelled(self) -> bool:
        return self.phase is ConversationPhase.CANCELLED

    def compact_transcript(self) -> List[BaseMessage]:
        """Removes intermediate tool calls and outputs from the transcript to save tokens.

        Keeps system and user messages and assistant messages that have content;
        tool calls are stripped from the assistant messages that are kept.
        """
        compacted: List[BaseMessage] = []
        for message in self.transcript:
            if isinstance(message, ToolMessage):
                continue
            if isinstance(message, AssistantMessage) and message.tool_calls:
                if message.content:
                    compacted.append(message.model_copy(update={"tool_calls": []}))
                continue
            compacted.append(message)
        return compacted
