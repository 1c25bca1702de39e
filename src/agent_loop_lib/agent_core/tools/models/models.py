from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Type tags accepted in parameter declarations, mapped to their JSON schema type.
SUPPORTED_TYPES: Tuple[str, ...] = ("string", "integer", "number", "boolean", "array", "object")


class ParameterSpec(BaseModel):
    """
    Declares a single argument accepted by a tool.

    Attributes:
        name: Argument name as it appears in the call payload.
        type: Type tag, one of ``SUPPORTED_TYPES``.
        description: Text shown to the model for this argument.
        required: Whether the argument must be supplied. Required arguments
                  never carry a default.
        default: Value used when an optional argument is omitted.
        items: Element type tag for ``array`` arguments.
        enum: Optional closed set of accepted values.
        json_schema: Optional nested structural schema for ``object`` or ``array``
                     arguments. Local ``$ref``s are resolved at build time.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    description: str = ""
    required: bool = True
    default: Any = None
    items: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    json_schema: Optional[Dict[str, Any]] = None


class ToolDefinition(BaseModel):
    """
    Represents a tool that can be registered and offered to the model.

    Attributes:
        name: The unique name of the tool.
        description: A brief description of what the tool does.
        parameters: Declared arguments, in the order they are advertised.
        handler: Callable receiving the validated argument mapping. May be a
                 plain function or a coroutine function.
        timeout: Optional per-tool timeout in seconds, overriding the invoker default.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    description: str
    parameters: Tuple[ParameterSpec, ...] = ()
    handler: Callable[[Dict[str, Any]], Any]
    timeout: Optional[float] = Field(default=None, gt=0)

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]


class ToolSchema(BaseModel):
    """Machine-readable description of a tool, as advertised to the model backend."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: Dict[str, Any]
