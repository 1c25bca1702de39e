"""Validate and execute single tool calls, normalizing every outcome into a ToolResult."""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Callable, Dict, Optional, Set

from pydantic import ValidationError

from ..models import ToolCall, ToolDefinition, ToolResult
from ..registry import ToolRegistry
from ...exceptions import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)
from ...logger import get_logger
from .status import StatusChannel, StatusEvent, ToolCallFinished, ToolCallStarted

logger = get_logger(__name__)


class ToolInvoker:
    """Executes tool calls against a registry.

    ``invoke`` never raises: unknown tools, argument mismatches, handler
    failures and timeouts all come back as a ``ToolResult`` carrying an error,
    so the model can see what went wrong and adapt.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        status_channel: Optional[StatusChannel] = None,
        default_timeout: float = 30.0,
        argument_error_formatter: Optional[Callable[[str, Exception], str]] = None,
    ) -> None:
        """Initialize the tool invoker.

        Args:
            registry: Tool registry used to resolve tool definitions.
            status_channel: Optional channel receiving start/finish notifications.
            default_timeout: Timeout in seconds for tools that do not declare their own.
            argument_error_formatter: Optional formatter for argument parsing errors.
        """
        if default_timeout <= 0:
            raise ValueError("default_timeout must be positive.")
        self._registry = registry
        self._status_channel = status_channel
        self._default_timeout = default_timeout
        self._argument_error_formatter = argument_error_formatter or self._default_argument_error
        # Handlers still running after their timeout, kept referenced until they settle
        self._detached: Set[asyncio.Future[Any]] = set()

    @property
    def detached_count(self) -> int:
        """Number of timed-out handlers that have not finished yet."""
        return len(self._detached)

    async def invoke(self, call: ToolCall) -> ToolResult:
        """Handle a single tool call.

        Validates the tool existence, normalizes and validates arguments, and
        executes the tool under its timeout.

        Args:
            call: The tool call request containing name, ID, and arguments.

        Returns:
            The result of the tool execution, including any errors.
        """
        logger.debug(f"Handling tool call: {call.name} (ID: {call.call_id})")

        try:
            tool = self._registry.lookup(call.name)
        except ToolNotFoundError as exc:
            logger.warning(str(exc))
            return ToolResult.failure(call, exc)

        try:
            arguments = self._validate_arguments(tool, call)
        except ToolValidationError as exc:
            logger.warning(f"Validation error for '{call.name}': {exc}")
            return ToolResult.failure(call, exc)

        self._notify(ToolCallStarted(call_id=call.call_id, tool_name=call.name, arguments=arguments))
        result = await self._execute(tool, call, arguments)
        self._notify(ToolCallFinished.from_result(result))
        return result

    def _validate_arguments(self, tool: ToolDefinition, call: ToolCall) -> Dict[str, Any]:
        """Normalize raw arguments and validate them against the tool's argument model.

        Returns:
            The validated arguments with defaults filled in for omitted optional fields.

        Raises:
            ToolValidationError: If arguments cannot be parsed or do not match the schema.
        """
        raw = self._normalize_function_args(call.name, call.arguments)
        args_model = self._registry.args_model(tool.name)

        # Validated as JSON, the shape the model produced, so nested objects are checked strictly too
        try:
            payload = json.dumps(raw)
        except (TypeError, ValueError) as exc:
            raise ToolValidationError(self._argument_error_formatter(call.name, exc)) from exc

        try:
            validated = args_model.model_validate_json(payload)
        except ValidationError as exc:
            raise ToolValidationError(f"Argument validation failed for tool '{call.name}': {exc}") from exc
        return validated.model_dump(by_alias=True)

    def _normalize_function_args(self, tool_name: str, raw_args: Any) -> Dict[str, Any]:
        """Normalize tool arguments into a dictionary.

        Handles JSON strings, mappings, or None values.

        Raises:
            ToolValidationError: If arguments cannot be parsed or do not form an object.
        """
        if raw_args is None or raw_args == "":
            return {}

        if isinstance(raw_args, dict):
            return raw_args

        if isinstance(raw_args, str):
            try:
                parsed = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                raise ToolValidationError(self._argument_error_formatter(tool_name, exc)) from exc

            if parsed is None:
                return {}

            if not isinstance(parsed, dict):
                error = ValueError("Function arguments must decode to a JSON object.")
                raise ToolValidationError(self._argument_error_formatter(tool_name, error))

            return parsed

        try:
            return dict(raw_args)
        except (TypeError, ValueError) as exc:
            raise ToolValidationError(self._argument_error_formatter(tool_name, exc)) from exc

    async def _execute(self, tool: ToolDefinition, call: ToolCall, arguments: Dict[str, Any]) -> ToolResult:
        """Run the handler under its timeout and wrap the outcome."""
        timeout = tool.timeout or self._default_timeout
        logger.info(f"Executing tool '{call.name}' (ID: {call.call_id})...")

        task = asyncio.ensure_future(self._run_handler(tool.handler, arguments))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            # The handler keeps running on its own, its outcome is discarded
            self._detach(task, call)
            raise

        if not done:
            self._detach(task, call)
            msg = f"Tool '{call.name}' timed out after {timeout} seconds."
            logger.warning(msg)
            return ToolResult.failure(call, ToolTimeoutError(msg))

        exc = task.exception()
        if exc is not None:
            msg = f"Error executing '{call.name}': {exc}"
            logger.warning(f"{msg} ({type(exc).__name__})")
            error = ToolExecutionError(msg)
            error.__cause__ = exc
            return ToolResult.failure(call, error)

        logger.info(f"Tool '{call.name}' executed successfully.")
        return ToolResult.success(call, task.result())

    @staticmethod
    async def _run_handler(handler: Callable[[Dict[str, Any]], Any], arguments: Dict[str, Any]) -> Any:
        """Execute a handler, handling async/sync variants.

        Plain functions run in a worker thread so blocking I/O does not stall the loop.
        """
        if inspect.iscoroutinefunction(handler):
            return await handler(dict(arguments))

        result = await asyncio.to_thread(handler, dict(arguments))
        if inspect.isawaitable(result):
            result = await result
        return result

    def _detach(self, task: asyncio.Future[Any], call: ToolCall) -> None:
        """Let a timed-out handler finish on its own and discard whatever it produces."""
        self._detached.add(task)

        def _discard(fut: asyncio.Future[Any]) -> None:
            self._detached.discard(fut)
            if fut.cancelled():
                return
            late_error = fut.exception()
            if late_error is not None:
                logger.debug(f"Late failure of timed-out tool '{call.name}' (ID: {call.call_id}) discarded: {late_error}")
            else:
                logger.debug(f"Late result of timed-out tool '{call.name}' (ID: {call.call_id}) discarded.")

        task.add_done_callback(_discard)

    def _notify(self, event: StatusEvent) -> None:
        if self._status_channel is not None:
            self._status_channel.notify(event)

    @staticmethod
    def _default_argument_error(tool_name: str, error: Exception) -> str:
        """Format a default error message for argument parsing failures.

        Args:
            tool_name: Name of the tool.
            error: The exception that occurred.

        Returns:
            A formatted error message string.
        """
        return f"Failed to parse arguments for tool '{tool_name}': {error}"
