import json
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from google.genai import types
from google.genai.client import AsyncClient
from google.genai.types import GenerateContentResponse

from agent_loop_lib.agent_core import ModelClient, ModelResponse, ToolCall, ToolSchema, get_logger
from agent_loop_lib.agent_core.messages import (
    AssistantMessage,
    BaseMessage,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from . import schema_sanitizer

logger = get_logger(__name__)


class GeminiModelClient(ModelClient):
    """
    ModelClient for Google's Gemini models.

    Automatic function calling of the SDK is disabled; tool calls are handed back
    to the conversation loop, which executes them and sends the results on the
    next call.
    """

    def __init__(
        self,
        aclient: AsyncClient,
        model_name: str,
        temp: float = 1.0,
        max_tokens: int = 3000,
    ):
        """
        Initializes the Gemini model client.

        Args:
            aclient: The initialized Google GenAI async client.
            model_name: The identifier for the Gemini model to use (e.g., 'gemini-flash-latest').
            temp: The temperature for text generation, controlling randomness.
            max_tokens: The maximum number of tokens to generate in the response.
        """
        self.client: AsyncClient = aclient
        self.model: str = model_name
        self.temperature = temp
        self.max_tokens = max_tokens
        logger.info(f"Initialized GeminiModelClient with model='{model_name}', temp={temp}, max_tokens={max_tokens}")

    async def complete(self, transcript: Sequence[BaseMessage], tools: Sequence[ToolSchema]) -> ModelResponse:
        """Send the transcript to ``generate_content``.

        Args:
            transcript: The ordered conversation so far.
            tools: Schemas of the tools the model may call.

        Returns:
            The normalized model response.

        Raises:
            ValueError: If the response carries no candidates.
        """
        system_instruction, contents = self._convert_history(transcript)

        tools_config: Optional[List[types.Tool]] = None
        if tools:
            tools_config = [self._build_tool(tools)]

        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            tools=tools_config,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )

        logger.debug(f"Sending {len(contents)} content(s) to Gemini model '{self.model}'.")
        response = await self.client.models.generate_content(model=self.model, contents=contents, config=config)
        return self._to_model_response(response)

    @staticmethod
    def _build_tool(tools: Sequence[ToolSchema]) -> types.Tool:
        """Generates a ``types.Tool`` holding one function declaration per advertised tool."""
        declarations = []
        for tool in tools:
            properties = tool.parameters.get("properties")
            if properties:
                declarations.append(
                    types.FunctionDeclaration(
                        name=tool.name,
                        description=tool.description,
                        parameters=schema_sanitizer.sanitize(tool.parameters),  # type: ignore[arg-type]
                    )
                )
            else:
                declarations.append(types.FunctionDeclaration(name=tool.name, description=tool.description))
        return types.Tool(function_declarations=declarations)

    @staticmethod
    def _convert_history(history: Sequence[BaseMessage]) -> Tuple[Optional[str], List[types.Content]]:
        """
        Converts the generic transcript to Gemini specific Content history.

        Gemini has no system role in the content list, so system messages are
        joined into the system instruction. Consecutive tool results are sent
        together in one user turn, answering the preceding model turn.

        Args:
            history: List of BaseMessage objects.

        Returns:
            The system instruction (if any) and the list of Gemini Content objects.
        """
        system_parts: List[str] = []
        contents: List[types.Content] = []
        pending_responses: List[types.Part] = []

        def flush_responses() -> None:
            if pending_responses:
                contents.append(types.Content(role="user", parts=list(pending_responses)))
                pending_responses.clear()

        for msg in history:
            if isinstance(msg, ToolMessage):
                pending_responses.append(
                    types.Part(
                        function_response=types.FunctionResponse(
                            id=msg.tool_call_id,
                            name=msg.name,
                            response=msg.to_response(),
                        )
                    )
                )
                continue

            flush_responses()
            if isinstance(msg, SystemMessage):
                if msg.content:
                    system_parts.append(msg.content)
            elif isinstance(msg, UserMessage):
                contents.append(types.Content(role="user", parts=[types.Part(text=msg.content)]))
            elif isinstance(msg, AssistantMessage):
                parts: List[types.Part] = []
                if msg.content:
                    parts.append(types.Part(text=msg.content))
                for call in msg.tool_calls:
                    parts.append(
                        types.Part(
                            function_call=types.FunctionCall(
                                id=call.call_id,
                                name=call.name,
                                args=GeminiModelClient._decode_arguments(call.arguments),
                            )
                        )
                    )
                if parts:
                    contents.append(types.Content(role="model", parts=parts))

        flush_responses()
        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    @staticmethod
    def _decode_arguments(arguments: Any) -> Dict[str, Any]:
        if not arguments:
            return {}
        if isinstance(arguments, str):
            try:
                decoded = json.loads(arguments)
            except json.JSONDecodeError:
                return {}
            return decoded if isinstance(decoded, dict) else {}
        return dict(arguments)

    @staticmethod
    def _to_model_response(response: GenerateContentResponse) -> ModelResponse:
        """Normalize a Gemini response into a ModelResponse.

        Function calls without an id get a generated one so results can be correlated.
        """
        if not response.candidates:
            msg = "Gemini response contained no candidates."
            logger.warning(msg)
            raise ValueError(msg)

        content = response.candidates[0].content
        parts = (content.parts if content else None) or []

        text_parts = [p.text for p in parts if p.text and not p.thought]
        text = "".join(text_parts) if text_parts else None

        tool_calls = []
        for part in parts:
            function_call = part.function_call
            if function_call is None or not function_call.name:
                continue
            tool_calls.append(
                ToolCall(
                    call_id=function_call.id or f"call_{uuid.uuid4().hex[:12]}",
                    name=function_call.name,
                    arguments=dict(function_call.args or {}),
                )
            )

        return ModelResponse(text=text, tool_calls=tool_calls, raw=response)
