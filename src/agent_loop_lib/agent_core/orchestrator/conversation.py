"""The tool-augmented conversation loop."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from ..config import OrchestratorConfig
from ..exceptions import ConversationCancelledError, ModelUnavailableError, RoundLimitExceededError
from ..logger import get_logger
from ..messages import AssistantMessage, BaseMessage, SystemMessage, ToolMessage, UserMessage
from ..model_client import ModelClient, ModelResponse
from ..tools.execution import StatusChannel, ToolInvoker
from ..tools.models import ToolCall, ToolResult, ToolSchema
from ..tools.registry import ToolRegistry
from .state import ConversationPhase, ConversationResult, ConversationState

logger = get_logger(__name__)


class ConversationOrchestrator:
    """Drives one conversation between a model backend and a set of tools.

    Each round sends the transcript and the advertised tool schemas to the
    model. A response without tool calls ends the conversation; otherwise the
    requested calls run concurrently (bounded by ``max_concurrent_tools``) and
    their results are appended in the order the model issued them before the
    next model call.

    Model calls are strictly sequential and retried with exponential backoff.
    When the retry budget is spent, ``ModelUnavailableError`` is raised and the
    failed round leaves the transcript untouched. Every per-tool failure is
    folded into the transcript instead, so the model can react to it.
    """

    def __init__(
        self,
        model_client: ModelClient,
        registry: ToolRegistry,
        status_channel: Optional[StatusChannel] = None,
        *,
        system_prompt: Optional[str] = None,
        config: Optional[OrchestratorConfig] = None,
    ) -> None:
        """
        Initializes the orchestrator.

        Args:
            model_client: Backend answering model calls.
            registry: Populated tool registry. Read-only for the duration of the conversation.
            status_channel: Optional sink for tool start/finish notifications.
            system_prompt: System instruction seeded at the start of the transcript.
            config: Loop settings. Defaults are read from the environment.
        """
        self.config = config or OrchestratorConfig()
        self.system_prompt = system_prompt
        self.state = ConversationState()

        self._model_client = model_client
        self._registry = registry
        self._invoker = ToolInvoker(
            registry=registry,
            status_channel=status_channel,
            default_timeout=self.config.tool_timeout,
        )

    @property
    def phase(self) -> ConversationPhase:
        return self.state.phase

    @property
    def transcript(self) -> Sequence[BaseMessage]:
        return self.state.transcript

    def cancel(self) -> None:
        """Stop the conversation from starting any new model call or tool execution.

        Tool handlers already running are left to finish or time out.
        """
        if not self.state.cancelled:
            logger.info(f"Conversation cancelled in phase '{self.state.phase.value}'.")
        self.state.cancelled = True

    async def run(self, user_prompt: str, history: Optional[Sequence[BaseMessage]] = None) -> ConversationResult:
        """
        Runs the conversation until the model answers without requesting tools.

        Args:
            user_prompt: The user's input message.
            history: Optional earlier messages, placed between the system prompt and the user prompt.

        Returns:
            The final answer together with the complete transcript.

        Raises:
            ModelUnavailableError: If the model backend keeps failing after all retries.
            RoundLimitExceededError: If ``max_rounds`` is configured and the model still requests tools.
            RuntimeError: If the orchestrator already ran a conversation.
        """
        if self.state.phase is not ConversationPhase.IDLE:
            raise RuntimeError("A ConversationOrchestrator drives exactly one conversation; create a new one.")

        self._seed(user_prompt, history)
        tools = self._registry.schemas()
        response: Optional[ModelResponse] = None

        while True:
            if self.state.cancelled:
                return self._finish(ConversationPhase.CANCELLED, response)

            self.state.phase = ConversationPhase.AWAITING_MODEL
            try:
                next_response = await self._call_model(tools)
            except ModelUnavailableError:
                self.state.phase = ConversationPhase.FAILED
                raise
            if next_response is None:
                return self._finish(ConversationPhase.CANCELLED, response)

            response = next_response
            self.state.round += 1

            if not response.has_tool_calls:
                self.state.append(AssistantMessage(content=response.text or ""))
                logger.info(f"Conversation finished after {self.state.round} round(s).")
                return self._finish(ConversationPhase.DONE, response)

            max_rounds = self.config.max_rounds
            if max_rounds is not None and self.state.round >= max_rounds:
                self.state.phase = ConversationPhase.FAILED
                msg = f"Model still requested tools after the maximum of {max_rounds} round(s)."
                logger.error(msg)
                raise RoundLimitExceededError(msg)

            self.state.append(AssistantMessage(content=response.text or "", tool_calls=list(response.tool_calls)))
            self.state.phase = ConversationPhase.HAS_TOOL_CALLS

            logger.info(f"Round {self.state.round}: Processing {len(response.tool_calls)} tool call(s).")
            self.state.phase = ConversationPhase.EXECUTING_TOOLS
            results = await self._execute_round(response.tool_calls)
            self.state.extend(ToolMessage.from_result(result) for result in results)

    def _seed(self, user_prompt: str, history: Optional[Sequence[BaseMessage]]) -> None:
        prior = list(history or [])
        if self.system_prompt and not any(isinstance(m, SystemMessage) for m in prior):
            self.state.append(SystemMessage(content=self.system_prompt))
        self.state.extend(prior)
        self.state.append(UserMessage(content=user_prompt))

    async def _call_model(self, tools: List[ToolSchema]) -> Optional[ModelResponse]:
        """Call the model backend with retry logic.

        Returns:
            The model response, or None if the conversation was cancelled while retrying.

        Raises:
            ModelUnavailableError: If every attempt failed.
        """
        policy = self.config.retry
        transcript = self.state.transcript
        last_error: Optional[Exception] = None
        attempts = 0

        for attempt in range(policy.max_retries + 1):
            if attempt and self.state.cancelled:
                return None
            attempts += 1
            try:
                return await self._model_client.complete(transcript, tools)
            except Exception as e:
                last_error = e
                if attempt == policy.max_retries:
                    break

                delay = policy.delay_for(attempt)
                logger.warning(f"Model backend error (Retry: {attempt + 1}/{policy.max_retries}): {e}. Waiting {delay}s...")
                await asyncio.sleep(delay)

        msg = f"Model backend unavailable after {attempts} attempt(s): {last_error}"
        logger.error(msg)
        raise ModelUnavailableError(msg, attempts=attempts, last_error=last_error) from last_error

    async def _execute_round(self, calls: Sequence[ToolCall]) -> List[ToolResult]:
        """Run every call of the round, at most ``max_concurrent_tools`` at a time.

        Results come back in call order regardless of completion order. Calls
        still waiting for a slot when the conversation is cancelled are not
        started and get a cancellation error instead.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrent_tools)

        async def dispatch(call: ToolCall) -> ToolResult:
            async with semaphore:
                if self.state.cancelled:
                    msg = f"Tool call '{call.call_id}' was not started because the conversation was cancelled."
                    logger.debug(msg)
                    return ToolResult.failure(call, ConversationCancelledError(msg))
                return await self._invoker.invoke(call)

        return list(await asyncio.gather(*(dispatch(call) for call in calls)))

    def _finish(self, phase: ConversationPhase, response: Optional[ModelResponse]) -> ConversationResult:
        self.state.phase = phase
        answer = None
        if phase is ConversationPhase.DONE and response is not None:
            answer = response.text or ""
        return ConversationResult(
            answer=answer,
            transcript=list(self.state.transcript),
            rounds=self.state.round,
            phase=phase,
            raw=response.raw if response is not None else None,
        )
