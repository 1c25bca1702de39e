import asyncio
import json
import time
from typing import Annotated, Any, Dict, List
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel, Field

from agent_loop_lib.agent_core import (
    ParameterSpec,
    StatusChannel,
    ToolCall,
    ToolCallFinished,
    ToolCallStarted,
    ToolDefinition,
    ToolInvoker,
    ToolRegistry,
)


def _registry(*tools: ToolDefinition) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in tools:
        registry.register(tool)
    return registry


def _weather_tool(handler: Any) -> ToolDefinition:
    return ToolDefinition(
        name="get_weather",
        description="Get the weather.",
        parameters=(
            ParameterSpec(name="city", type="string", description="City name"),
            ParameterSpec(name="days", type="integer", description="Days", required=False, default=1),
        ),
        handler=handler,
    )


@pytest.mark.asyncio
async def test_invoke_success_fills_defaults() -> None:
    seen: List[Dict[str, Any]] = []

    async def handler(args: Dict[str, Any]) -> str:
        seen.append(args)
        return f"Sunny in {args['city']}"

    invoker = ToolInvoker(_registry(_weather_tool(handler)))

    result = await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    assert result.ok
    assert result.call_id == "c1"
    assert result.payload == "Sunny in Oslo"
    assert seen == [{"city": "Oslo", "days": 1}]


@pytest.mark.asyncio
async def test_invoke_accepts_json_string_arguments() -> None:
    invoker = ToolInvoker(_registry(_weather_tool(lambda args: args["days"])))

    result = await invoker.invoke(
        ToolCall(call_id="c1", name="get_weather", arguments=json.dumps({"city": "Oslo", "days": 4}))
    )

    assert result.payload == 4


@pytest.mark.asyncio
async def test_invoke_unknown_tool() -> None:
    invoker = ToolInvoker(ToolRegistry())

    result = await invoker.invoke(ToolCall(call_id="c1", name="missing", arguments={}))

    assert not result.ok
    assert result.payload is None
    assert result.error is not None
    assert result.error.type == "ToolNotFoundError"
    assert "missing" in result.error.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"city": 5},
        {"city": "Oslo", "days": "3"},
        {"city": "Oslo", "days": None},
        {"city": "Oslo", "country": "NO"},
        "{not json",
        "[1, 2]",
    ],
)
async def test_invoke_invalid_arguments_never_reach_the_handler(arguments: Any) -> None:
    handler = MagicMock(return_value="unreachable")
    invoker = ToolInvoker(_registry(_weather_tool(handler)))

    result = await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments=arguments))

    assert result.error is not None
    assert result.error.type == "ValidationError"
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_invoke_handler_exception_is_folded_into_result() -> None:
    def handler(args: Dict[str, Any]) -> None:
        raise KeyError("account")

    invoker = ToolInvoker(_registry(_weather_tool(handler)))

    result = await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    assert result.error is not None
    assert result.error.type == "ToolExecutionError"
    assert result.error.exception == "KeyError"
    assert "account" in result.error.message
    assert result.to_response()["error"]["exception"] == "KeyError"


@pytest.mark.asyncio
async def test_invoke_timeout_detaches_handler() -> None:
    release = asyncio.Event()

    async def handler(args: Dict[str, Any]) -> str:
        await release.wait()
        return "late"

    tool = _weather_tool(handler).model_copy(update={"timeout": 0.05})
    invoker = ToolInvoker(_registry(tool))

    result = await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    assert result.error is not None
    assert result.error.type == "ToolTimeoutError"
    assert result.payload is None
    assert invoker.detached_count == 1

    # The late result is discarded once the handler settles
    release.set()
    for _ in range(10):
        await asyncio.sleep(0)
        if invoker.detached_count == 0:
            break
    assert invoker.detached_count == 0


@pytest.mark.asyncio
async def test_invoke_uses_default_timeout() -> None:
    async def handler(args: Dict[str, Any]) -> str:
        await asyncio.sleep(1)
        return "late"

    invoker = ToolInvoker(_registry(_weather_tool(handler)), default_timeout=0.05)

    result = await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    assert result.error is not None
    assert result.error.type == "ToolTimeoutError"


@pytest.mark.asyncio
async def test_sync_handlers_do_not_block_the_loop() -> None:
    def blocking(args: Dict[str, Any]) -> str:
        time.sleep(0.2)
        return "done"

    ticks = 0

    async def ticker() -> None:
        nonlocal ticks
        for _ in range(5):
            await asyncio.sleep(0.01)
            ticks += 1

    invoker = ToolInvoker(_registry(_weather_tool(blocking)))

    result, _ = await asyncio.gather(
        invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"})),
        ticker(),
    )

    assert result.payload == "done"
    assert ticks == 5


@pytest.mark.asyncio
async def test_status_events_surround_execution() -> None:
    channel = MagicMock(spec=StatusChannel)
    invoker = ToolInvoker(_registry(_weather_tool(lambda args: {"temp": 20})), status_channel=channel)

    await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    events = [c.args[0] for c in channel.notify.call_args_list]
    assert len(events) == 2
    started, finished = events
    assert isinstance(started, ToolCallStarted)
    assert started.arguments == {"city": "Oslo", "days": 1}
    assert isinstance(finished, ToolCallFinished)
    assert finished.call_id == "c1"
    assert finished.result == {"temp": 20}
    assert finished.error is None


@pytest.mark.asyncio
async def test_no_status_events_for_rejected_calls() -> None:
    channel = MagicMock(spec=StatusChannel)
    invoker = ToolInvoker(_registry(_weather_tool(lambda args: None)), status_channel=channel)

    await invoker.invoke(ToolCall(call_id="c1", name="missing"))
    await invoker.invoke(ToolCall(call_id="c2", name="get_weather", arguments={}))

    channel.notify.assert_not_called()


@pytest.mark.asyncio
async def test_finished_event_carries_error() -> None:
    def handler(args: Dict[str, Any]) -> None:
        raise RuntimeError("boom")

    channel = MagicMock(spec=StatusChannel)
    invoker = ToolInvoker(_registry(_weather_tool(handler)), status_channel=channel)

    await invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))

    finished = channel.notify.call_args_list[-1].args[0]
    wire = finished.to_wire()
    assert wire["kind"] == "tool_call_finished"
    assert wire["error"]["type"] == "ToolExecutionError"
    assert "result" not in wire


def test_invalid_default_timeout() -> None:
    with pytest.raises(ValueError):
        ToolInvoker(ToolRegistry(), default_timeout=0)


@pytest.mark.asyncio
async def test_invoke_rejects_null_for_defaulted_argument() -> None:
    handler = MagicMock(return_value="unreachable")
    tool = ToolDefinition(
        name="search",
        description="Search the catalogue.",
        parameters=(ParameterSpec(name="limit", type="integer", required=False, default=10),),
        handler=handler,
    )
    invoker = ToolInvoker(_registry(tool))

    result = await invoker.invoke(ToolCall(call_id="c1", name="search", arguments={"limit": None}))

    assert result.error is not None
    assert result.error.type == "ValidationError"
    handler.assert_not_called()


class Address(BaseModel):
    street: str
    zip_code: int


def _shipping_registry(received: List[Any]) -> ToolRegistry:
    registry = ToolRegistry()

    @registry.tool
    def ship(address: Annotated[Address, Field(description="Destination")]) -> str:
        """Ship a parcel."""
        received.append(address)
        return f"Shipped to {address.street}"

    return registry


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "address",
    [
        {"street": 5, "zip_code": 1234},
        {"street": "Main St 1", "zip_code": 1234, "bogus": 1},
        {"street": "Main St 1", "zip_code": "1234"},
        {"street": "Main St 1"},
        "Main St 1",
    ],
)
async def test_invoke_validates_nested_model_arguments(address: Any) -> None:
    received: List[Any] = []
    invoker = ToolInvoker(_shipping_registry(received))

    result = await invoker.invoke(ToolCall(call_id="c1", name="ship", arguments={"address": address}))

    assert result.error is not None
    assert result.error.type == "ValidationError"
    assert received == []


@pytest.mark.asyncio
async def test_invoke_passes_model_instances_to_decorated_functions() -> None:
    received: List[Any] = []
    invoker = ToolInvoker(_shipping_registry(received))

    result = await invoker.invoke(
        ToolCall(
            call_id="c1",
            name="ship",
            arguments=json.dumps({"address": {"street": "Main St 1", "zip_code": 1234}}),
        )
    )

    assert result.ok
    assert result.payload == "Shipped to Main St 1"
    assert received == [Address(street="Main St 1", zip_code=1234)]


@pytest.mark.asyncio
async def test_invoke_validates_referenced_nested_schema() -> None:
    seen: List[Dict[str, Any]] = []
    fragment = {
        "type": "object",
        "properties": {"lines": {"type": "array", "items": {"$ref": "#/$defs/Line"}}},
        "required": ["lines"],
        "$defs": {
            "Line": {
                "type": "object",
                "properties": {"sku": {"type": "string"}, "qty": {"type": "integer"}},
                "required": ["sku", "qty"],
            }
        },
    }
    tool = ToolDefinition(
        name="place_order",
        description="Place an order.",
        parameters=(ParameterSpec(name="order", type="object", json_schema=fragment),),
        handler=seen.append,
    )
    invoker = ToolInvoker(_registry(tool))

    bad = await invoker.invoke(
        ToolCall(call_id="c1", name="place_order", arguments={"order": {"lines": [{"sku": "A-1", "qty": "2"}]}})
    )
    good = await invoker.invoke(
        ToolCall(call_id="c2", name="place_order", arguments={"order": {"lines": [{"sku": "A-1", "qty": 2}]}})
    )

    assert bad.error is not None
    assert bad.error.type == "ValidationError"
    assert good.ok
    assert seen == [{"order": {"lines": [{"sku": "A-1", "qty": 2}]}}]


@pytest.mark.asyncio
async def test_cancelled_caller_leaves_handler_tracked() -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(args: Dict[str, Any]) -> str:
        started.set()
        await release.wait()
        return "late"

    invoker = ToolInvoker(_registry(_weather_tool(handler)))
    caller = asyncio.ensure_future(
        invoker.invoke(ToolCall(call_id="c1", name="get_weather", arguments={"city": "Oslo"}))
    )
    await started.wait()

    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    assert invoker.detached_count == 1

    release.set()
    for _ in range(10):
        await asyncio.sleep(0)
        if invoker.detached_count == 0:
            break
    assert invoker.detached_count == 0
