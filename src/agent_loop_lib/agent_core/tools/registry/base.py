"""Tool registry and the decorator helper that turns annotated functions into tool definitions."""

import inspect
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel

from ..models import ToolDefinition, ToolSchema
from ..schema import SchemaBuilder, ToolParameterFactory
from ...exceptions import DuplicateToolError, SchemaBuildError, ToolNotFoundError
from ...logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    A registry holding every tool an agent may call.

    Schemas and argument models are built once, when a tool is registered, so a
    malformed declaration fails before any conversation starts. Registration is
    expected to happen during agent initialization; afterwards the registry is
    only read, from any number of concurrent conversations.
    """

    def __init__(self) -> None:
        """Initialize an empty ToolRegistry."""
        self.tools: Dict[str, ToolDefinition] = {}
        self._schemas: Dict[str, ToolSchema] = {}
        self._args_models: Dict[str, Type[BaseModel]] = {}
        self._lock = threading.Lock()

    def register(self, tool: ToolDefinition) -> None:
        """
        Register a new tool.

        Args:
            tool: The tool definition to add.

        Raises:
            DuplicateToolError: If a tool with the same name is already registered.
            SchemaBuildError: If the tool's parameter declarations are malformed.
        """
        schema = SchemaBuilder.build(tool)
        args_model = SchemaBuilder.build_args_model(tool)

        with self._lock:
            if tool.name in self.tools:
                msg = f"Tool '{tool.name}' is already registered."
                logger.error(msg)
                raise DuplicateToolError(msg)

            self._schemas[tool.name] = schema
            self._args_models[tool.name] = args_model
            self.tools[tool.name] = tool

        logger.info(f"Successfully registered tool: '{tool.name}'")

    def lookup(self, name: str) -> ToolDefinition:
        """Return the tool registered under ``name``.

        Raises:
            ToolNotFoundError: If no such tool exists.
        """
        try:
            return self.tools[name]
        except KeyError:
            raise ToolNotFoundError(f"Tool '{name}' not found in registry.") from None

    def list(self) -> List[ToolDefinition]:
        """All registered tools, in registration order."""
        return list(self.tools.values())

    def schemas(self) -> List[ToolSchema]:
        """The advertised schema set, in registration order."""
        return [self._schemas[name] for name in self.tools]

    def args_model(self, name: str) -> Type[BaseModel]:
        """Return the validation model for the tool registered under ``name``.

        Raises:
            ToolNotFoundError: If no such tool exists.
        """
        if name not in self._args_models:
            raise ToolNotFoundError(f"Tool '{name}' not found in registry.")
        return self._args_models[name]

    def tool(
        self,
        func: Optional[Callable[..., Any]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """A decorator to turn an annotated function into a registered tool.

        Can be used bare (``@registry.tool``) or with overrides
        (``@registry.tool(name="...", timeout=5)``). The function itself is
        returned unchanged.
        """

        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self.register(self.definition_from_function(f, name=name, description=description, timeout=timeout))
            return f

        if func is not None:
            return decorator(func)
        return decorator

    @classmethod
    def definition_from_function(
        cls,
        func: Callable[..., Any],
        name: Optional[str] = None,
        description: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ToolDefinition:
        """Generate a ToolDefinition from an annotated function.

        Every parameter needs ``Annotated[Type, Field(description=...)]``; the
        docstring becomes the tool description unless one is given. The handler
        stored in the definition receives the argument mapping and forwards it
        as keyword arguments, turning objects for pydantic-model parameters
        back into model instances.

        Raises:
            SchemaBuildError: If the docstring or a parameter description is missing.
        """
        tool_name = name or func.__name__
        if description is None:
            description = cls._get_docstring_from_func(func, tool_name)

        parameters = ToolParameterFactory.build_parameters(func, tool_name)
        models = ToolParameterFactory.model_parameters(func)

        def to_kwargs(args: Dict[str, Any]) -> Dict[str, Any]:
            # Model-typed parameters get an instance, not the validated dict
            return {
                key: models[key].model_validate(value) if key in models and value is not None else value
                for key, value in args.items()
            }

        handler: Callable[[Dict[str, Any]], Any]
        if inspect.iscoroutinefunction(func):

            async def async_handler(args: Dict[str, Any]) -> Any:
                return await func(**to_kwargs(args))

            handler = async_handler
        else:

            def sync_handler(args: Dict[str, Any]) -> Any:
                return func(**to_kwargs(args))

            handler = sync_handler

        return ToolDefinition(
            name=tool_name,
            description=description,
            parameters=tuple(parameters),
            handler=handler,
            timeout=timeout,
        )

    @staticmethod
    def _get_docstring_from_func(func: Callable[..., Any], tool_name: str) -> str:
        doc = inspect.getdoc(func)
        if not doc:
            msg = f"Tool '{tool_name}' missing docstring. LLMs need a description of what the tool does."
            logger.error(msg)
            raise SchemaBuildError(msg)
        return doc

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self.list())
