from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import types

from agent_loop_lib.agent_core import (
    AssistantMessage,
    SystemMessage,
    ToolCall,
    ToolMessage,
    ToolResult,
    ToolSchema,
    UserMessage,
)
from agent_loop_lib.agent_impl import GeminiModelClient


@pytest.fixture
def mock_genai_client() -> Any:
    client = MagicMock()
    client.models.generate_content = AsyncMock()
    return client


def _response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


WEATHER = ToolSchema(
    name="get_weather",
    description="Get the weather.",
    parameters={
        "type": "object",
        "properties": {"city": {"type": "string", "description": "City name"}},
        "required": ["city"],
        "additionalProperties": False,
    },
)

PING = ToolSchema(
    name="ping",
    description="Ping.",
    parameters={"type": "object", "properties": {}, "additionalProperties": False},
)


@pytest.mark.asyncio
async def test_complete_returns_text(mock_genai_client: Any) -> None:
    mock_genai_client.models.generate_content.return_value = _response(types.Part(text="Hello world"))
    client = GeminiModelClient(mock_genai_client, model_name="gemini-pro", temp=0.3, max_tokens=50)

    response = await client.complete([SystemMessage(content="Be nice."), UserMessage(content="Hi")], [])

    assert response.text == "Hello world"
    assert not response.has_tool_calls

    kwargs = mock_genai_client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-pro"
    config = kwargs["config"]
    assert config.system_instruction == "Be nice."
    assert config.temperature == 0.3
    assert config.max_output_tokens == 50
    assert config.tools is None
    assert config.automatic_function_calling.disable is True
    assert [c.role for c in kwargs["contents"]] == ["user"]


@pytest.mark.asyncio
async def test_complete_returns_function_calls(mock_genai_client: Any) -> None:
    mock_genai_client.models.generate_content.return_value = _response(
        types.Part(text="Checking."),
        types.Part(function_call=types.FunctionCall(id="fc_1", name="get_weather", args={"city": "Oslo"})),
        types.Part(function_call=types.FunctionCall(name="ping", args={})),
    )
    client = GeminiModelClient(mock_genai_client, model_name="gemini-pro")

    response = await client.complete([UserMessage(content="Weather?")], [WEATHER, PING])

    assert response.text == "Checking."
    first, second = response.tool_calls
    assert first == ToolCall(call_id="fc_1", name="get_weather", arguments={"city": "Oslo"})
    # Missing ids are generated
    assert second.name == "ping"
    assert second.call_id.startswith("call_")


@pytest.mark.asyncio
async def test_thought_parts_are_not_part_of_the_answer(mock_genai_client: Any) -> None:
    mock_genai_client.models.generate_content.return_value = _response(
        types.Part(text="thinking...", thought=True),
        types.Part(text="Answer."),
    )
    client = GeminiModelClient(mock_genai_client, model_name="gemini-pro")

    response = await client.complete([UserMessage(content="Hi")], [])

    assert response.text == "Answer."


@pytest.mark.asyncio
async def test_complete_without_candidates_raises(mock_genai_client: Any) -> None:
    mock_genai_client.models.generate_content.return_value = types.GenerateContentResponse(candidates=[])
    client = GeminiModelClient(mock_genai_client, model_name="gemini-pro")

    with pytest.raises(ValueError, match="no candidates"):
        await client.complete([UserMessage(content="Hi")], [])


def test_build_tool_declarations() -> None:
    tool = GeminiModelClient._build_tool([WEATHER, PING])

    weather, ping = tool.function_declarations
    assert weather.name == "get_weather"
    assert weather.parameters is not None
    assert weather.parameters.required == ["city"]
    assert weather.parameters.properties["city"].description == "City name"
    # Tools without arguments get no parameter schema
    assert ping.name == "ping"
    assert ping.parameters is None


def test_convert_history_groups_tool_results() -> None:
    c1 = ToolCall(call_id="c1", name="get_weather", arguments='{"city": "Oslo"}')
    c2 = ToolCall(call_id="c2", name="ping")
    history = [
        SystemMessage(content="Be nice."),
        UserMessage(content="Weather?"),
        AssistantMessage(content="", tool_calls=[c1, c2]),
        ToolMessage.from_result(ToolResult.success(c1, {"temp": 20})),
        ToolMessage.from_result(ToolResult.success(c2, "pong")),
        AssistantMessage(content="It is 20 degrees."),
    ]

    system_instruction, contents = GeminiModelClient._convert_history(history)

    assert system_instruction == "Be nice."
    assert [c.role for c in contents] == ["user", "model", "user", "model"]

    calls = [p.function_call for p in contents[1].parts]
    assert [(fc.id, fc.name, fc.args) for fc in calls] == [
        ("c1", "get_weather", {"city": "Oslo"}),
        ("c2", "ping", {}),
    ]

    responses = [p.function_response for p in contents[2].parts]
    assert [(fr.id, fr.response) for fr in responses] == [("c1", {"result": {"temp": 20}}), ("c2", {"result": "pong"})]
    assert contents[3].parts[0].text == "It is 20 degrees."
