"""Best-effort progress notifications for tool executions.

Tool executions report ``tool_call_started`` and ``tool_call_finished`` events
to an observer (typically a UI) through a bounded queue. Producers never wait:
when the queue is full, no observer is attached, or the channel is closed, the
event is dropped. A single delivery task forwards queued events to the sink in
FIFO order, so events emitted for one call id arrive start-before-finish.
"""

from __future__ import annotations

import asyncio
import inspect
from types import TracebackType
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from ..models import ToolErrorInfo, ToolResult
from ...config import OrchestratorConfig
from ...logger import get_logger

logger = get_logger(__name__)


class ToolCallStarted(BaseModel):
    """Emitted right before a tool handler starts executing."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_call_started"] = "tool_call_started"
    call_id: str
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ToolCallFinished(BaseModel):
    """Emitted once a tool handler concluded, successfully, with an error, or by timing out."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_call_finished"] = "tool_call_finished"
    call_id: str
    tool_name: str
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def from_result(cls, result: ToolResult) -> "ToolCallFinished":
        error: Optional[ToolErrorInfo] = result.error
        return cls(
            call_id=result.call_id,
            tool_name=result.name,
            result=result.payload if error is None else None,
            error=error.to_dict() if error is not None else None,
        )

    def to_wire(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        # Either result or error, never both
        if self.error is None:
            data.pop("error")
        else:
            data.pop("result")
        return data


StatusEvent = Union[ToolCallStarted, ToolCallFinished]
StatusSink = Callable[[StatusEvent], Union[None, Awaitable[None]]]


class StatusChannel:
    """
    Fire-and-forget notifier between tool executions and an external observer.

    Usage::

        async with StatusChannel(sink=websocket_sink) as channel:
            invoker = ToolInvoker(registry, channel)
            ...

    ``notify`` may be called before the delivery task runs; events wait in the
    queue (up to ``max_queue_size``) until ``start`` is called.
    """

    def __init__(self, sink: Optional[StatusSink] = None, max_queue_size: int = 100) -> None:
        """Initialize the channel.

        Args:
            sink: Callable receiving each event. May be sync or async. Without a
                  sink every event is dropped.
            max_queue_size: Capacity of the pending-event queue.
        """
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1.")
        self.sink = sink
        self.max_queue_size = max_queue_size
        self.delivered = 0
        self.dropped = 0
        self._queue: Optional[asyncio.Queue[StatusEvent]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._closed = False

    @classmethod
    def from_config(cls, sink: Optional[StatusSink], config: OrchestratorConfig) -> "StatusChannel":
        """Create a channel whose queue is sized by ``config.status_queue_size``."""
        return cls(sink=sink, max_queue_size=config.status_queue_size)

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self, event: StatusEvent) -> bool:
        """Queue an event for delivery without waiting.

        Returns:
            True if the event was queued, False if it was dropped.
        """
        if self._closed or self.sink is None:
            self.dropped += 1
            return False

        try:
            self._ensure_queue().put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Status queue full, dropping '{event.kind}' event for call '{event.call_id}'.")
            return False
        except Exception as e:
            # notify must never fail its caller
            self.dropped += 1
            logger.debug(f"Could not queue status event: {e}")
            return False
        return True

    def start(self) -> None:
        """Start the background delivery task on the running event loop."""
        if self._worker is not None and not self._worker.done():
            return
        self._closed = False
        self._worker = asyncio.get_running_loop().create_task(self._deliver())
        logger.debug("Status channel delivery started.")

    async def aclose(self, timeout: float = 1.0) -> None:
        """Stop accepting events, deliver what is pending and stop the worker.

        Args:
            timeout: Maximum number of seconds spent draining the queue.
        """
        self._closed = True
        if self._worker is None:
            return

        if self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.debug(f"Status channel drain timed out with {self._queue.qsize()} pending events.")

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.debug(f"Status channel closed (delivered={self.delivered}, dropped={self.dropped}).")

    async def __aenter__(self) -> "StatusChannel":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    def _ensure_queue(self) -> "asyncio.Queue[StatusEvent]":
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        return self._queue

    async def _deliver(self) -> None:
        queue = self._ensure_queue()
        while True:
            event = await queue.get()
            try:
                await self._send(event)
                self.delivered += 1
            except Exception as e:
                # Sink failures count as drops
                self.dropped += 1
                logger.warning(f"Status sink failed for '{event.kind}' event of call '{event.call_id}': {e}")
            finally:
                queue.task_done()

    async def _send(self, event: StatusEvent) -> None:
        """Hand one event to the sink.

        Plain callables run in a worker thread so a slow observer never stalls the loop.
        """
        if self.sink is None:
            return
        if inspect.iscoroutinefunction(self.sink):
            await self.sink(event)
            return

        outcome = await asyncio.to_thread(self.sink, event)
        if inspect.isawaitable(outcome):
            await outcome
