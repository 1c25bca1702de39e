import json
from typing import Any, Dict, Iterable, List, Optional, Sequence, cast

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionToolParam

from agent_loop_lib.agent_core import ModelClient, ModelResponse, ToolCall, ToolSchema, get_logger
from agent_loop_lib.agent_core.messages import (
    AssistantMessage,
    BaseMessage,
    SystemMessage,
    ToolMessage,
    UserMessage,
)

logger = get_logger(__name__)


class OpenAIModelClient(ModelClient):
    """
    ModelClient for OpenAI's chat completions API.
    Translates the transcript into chat messages and tool calls back into ``ToolCall``s.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str,
        temp: float = 1.0,
        max_tokens: int = 3000,
    ):
        """
        Initializes the OpenAI model client.

        Args:
            client: The initialized AsyncOpenAI client.
            model_name: The identifier for the OpenAI model to use (e.g., 'gpt-4o').
            temp: The temperature for text generation, controlling randomness.
            max_tokens: The maximum number of tokens to generate in the response.
        """
        self.client: AsyncOpenAI = client
        self.model: str = model_name
        self.temperature = temp
        self.max_tokens = max_tokens

    async def complete(self, transcript: Sequence[BaseMessage], tools: Sequence[ToolSchema]) -> ModelResponse:
        """Send the transcript to the chat completions endpoint.

        Args:
            transcript: The ordered conversation so far.
            tools: Schemas of the tools the model may call.

        Returns:
            The normalized model response.

        Raises:
            ValueError: If the completion carries no choices.
        """
        messages = self._convert_history(transcript)
        tool_params = self._convert_tools(tools)

        logger.debug(f"Sending {len(messages)} message(s) and {len(tool_params)} tool(s) to model '{self.model}'.")
        kwargs: Dict[str, Any] = {
            "model": self.model,
            # The library expects a union of message param types; plain dicts are structurally compatible.
            "messages": cast(Iterable[Any], messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if tool_params:
            kwargs["tools"] = tool_params

        response: ChatCompletion = await self.client.chat.completions.create(**kwargs)
        return self._to_model_response(response)

    @staticmethod
    def _convert_tools(tools: Sequence[ToolSchema]) -> List[ChatCompletionToolParam]:
        """Wrap advertised schemas into OpenAI function tool definitions."""
        return [
            cast(
                ChatCompletionToolParam,
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                },
            )
            for tool in tools
        ]

    @staticmethod
    def _convert_history(history: Sequence[BaseMessage]) -> List[Dict[str, Any]]:
        """
        Converts the generic transcript to OpenAI specific dictionary history.

        Args:
            history: List of BaseMessage objects.

        Returns:
            List of OpenAI message dictionaries.
        """
        openai_history: List[Dict[str, Any]] = []
        for msg in history:
            if isinstance(msg, UserMessage):
                openai_history.append({"role": "user", "content": msg.content})
            elif isinstance(msg, SystemMessage):
                openai_history.append({"role": "system", "content": msg.content})
            elif isinstance(msg, AssistantMessage):
                openai_msg: Dict[str, Any] = {"role": "assistant", "content": msg.content or None}
                if msg.tool_calls:
                    openai_msg["tool_calls"] = [
                        {
                            "id": call.call_id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": OpenAIModelClient._encode_arguments(call)},
                        }
                        for call in msg.tool_calls
                    ]
                openai_history.append(openai_msg)
            elif isinstance(msg, ToolMessage):
                openai_history.append(
                    {
                        "role": "tool",
                        "tool_call_id": msg.tool_call_id,
                        "name": msg.name,
                        "content": json.dumps(msg.to_response(), default=str),
                    }
                )
        return openai_history

    @staticmethod
    def _encode_arguments(call: ToolCall) -> str:
        if call.arguments is None:
            return "{}"
        if isinstance(call.arguments, str):
            return call.arguments
        return json.dumps(call.arguments, default=str)

    @staticmethod
    def _to_model_response(response: ChatCompletion) -> ModelResponse:
        """Normalize a chat completion into a ModelResponse."""
        if not response.choices:
            msg = "OpenAI response contained no choices."
            logger.warning(msg)
            raise ValueError(msg)

        message = response.choices[0].message
        tool_calls: List[ToolCall] = []
        for tool_call in message.tool_calls or []:
            # Only function tool calls can be answered by the registry
            if tool_call.type == "function":
                tool_calls.append(
                    ToolCall(
                        call_id=tool_call.id,
                        name=tool_call.function.name,
                        arguments=tool_call.function.arguments,
                    )
                )

        text: Optional[str] = message.content
        return ModelResponse(text=text, tool_calls=tool_calls, raw=response)
