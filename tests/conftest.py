import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from agent_loop_lib.agent_core import (
    ModelClient,
    ModelResponse,
    OrchestratorConfig,
    ParameterSpec,
    RetryPolicy,
    ToolCall,
    ToolDefinition,
    ToolRegistry,
    ToolSchema,
)
from agent_loop_lib.agent_core.messages import BaseMessage


class ScriptedModelClient(ModelClient):
    """Model client replaying a fixed script of responses (or exceptions to raise)."""

    def __init__(self, script: Sequence[Union[ModelResponse, Exception]]) -> None:
        self.script = list(script)
        self.transcripts: List[Sequence[BaseMessage]] = []
        self.tools: List[Sequence[ToolSchema]] = []

    async def complete(self, transcript: Sequence[BaseMessage], tools: Sequence[ToolSchema]) -> ModelResponse:
        self.transcripts.append(transcript)
        self.tools.append(tools)
        if not self.script:
            raise AssertionError("Model client called more often than scripted.")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    @property
    def call_count(self) -> int:
        return len(self.transcripts)


def answer(text: str) -> ModelResponse:
    return ModelResponse(text=text)


def calls(*tool_calls: ToolCall, text: Optional[str] = None) -> ModelResponse:
    return ModelResponse(text=text, tool_calls=list(tool_calls))


def fast_config(**overrides: Any) -> OrchestratorConfig:
    values: Dict[str, Any] = {
        "tool_timeout": 1.0,
        "max_concurrent_tools": 4,
        "retry": RetryPolicy(max_retries=2, base_delay=0.0),
    }
    values.update(overrides)
    return OrchestratorConfig(**values)


@pytest.fixture
def balance_registry() -> ToolRegistry:
    registry = ToolRegistry()

    def lookup_balance(args: Dict[str, Any]) -> Dict[str, Any]:
        return {"balance": 42}

    registry.register(
        ToolDefinition(
            name="lookup_balance",
            description="Look up the balance of an account.",
            parameters=[ParameterSpec(name="account_id", type="string", description="Account identifier")],
            handler=lookup_balance,
        )
    )
    return registry


@pytest.fixture
def slow_fast_registry() -> ToolRegistry:
    registry = ToolRegistry()

    async def slow_tool(args: Dict[str, Any]) -> str:
        await asyncio.sleep(0.2)
        return "slow"

    async def fast_tool(args: Dict[str, Any]) -> str:
        return "fast"

    registry.register(ToolDefinition(name="slowTool", description="Slow.", handler=slow_tool))
    registry.register(ToolDefinition(name="fastTool", description="Fast.", handler=fast_tool))
    return registry
