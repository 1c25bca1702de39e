import inspect
import types
from typing import Any, Annotated, Dict, List, Literal, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ..models import ParameterSpec
from ...exceptions import SchemaBuildError
from ...logger import get_logger

logger = get_logger(__name__)

_TYPE_TAGS: Dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


class ToolParameterFactory:
    """Capsules the translation of annotated function parameters into explicit ``ParameterSpec``s.

    Only used when a tool is declared from a plain function; the resulting specs
    are what the schema builder and the invoker work with afterwards.
    """

    @classmethod
    def build_parameters(cls, func: Any, tool_name: str) -> List[ParameterSpec]:
        """Creates the parameter declarations for every argument of ``func``.

        Args:
            func: The function to inspect.
            tool_name: The name of the tool for error reporting.

        Returns:
            The declared parameters in signature order.
        """
        specs = []
        for param_name, param in inspect.signature(func).parameters.items():
            if param_name == "self":
                continue
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                msg = f"Tool '{tool_name}' cannot declare *args or **kwargs parameters ('{param_name}')."
                logger.error(msg)
                raise SchemaBuildError(msg)
            specs.append(cls.build_spec(param_name=param_name, param=param, tool_name=tool_name))
        return specs

    @classmethod
    def model_parameters(cls, func: Any) -> Dict[str, Type[BaseModel]]:
        """Maps the parameters of ``func`` that are annotated with a pydantic model to that model.

        Arguments arrive as plain JSON objects; the tool handler uses this mapping
        to hand the function model instances instead.
        """
        models: Dict[str, Type[BaseModel]] = {}
        for param_name, param in inspect.signature(func).parameters.items():
            annotation = param.annotation
            if get_origin(annotation) is Annotated:
                annotation = get_args(annotation)[0]
            if get_origin(annotation) is Union or get_origin(annotation) is types.UnionType:
                non_null = [a for a in get_args(annotation) if a is not type(None)]
                if len(non_null) == 1:
                    annotation = non_null[0]
            if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
                models[param_name] = annotation
        return models

    @classmethod
    def build_spec(cls, param_name: str, param: inspect.Parameter, tool_name: str) -> ParameterSpec:
        """Creates the ``ParameterSpec`` for a single function parameter.

        Args:
            param_name: The name of the parameter.
            param: The inspect.Parameter object.
            tool_name: The name of the tool for error reporting.
        """
        annotation = param.annotation
        description = cls._extract_description(annotation=annotation, param_name=param_name, tool_name=tool_name)
        base = get_args(annotation)[0]
        type_tag, items, enum, json_schema = cls._describe_type(base, param_name, tool_name)

        has_default = param.default is not inspect.Parameter.empty
        return ParameterSpec(
            name=param_name,
            type=type_tag,
            description=description,
            required=not has_default,
            default=param.default if has_default else None,
            items=items,
            enum=enum,
            json_schema=json_schema,
        )

    @classmethod
    def _describe_type(
        cls, annotation: Any, param_name: str, tool_name: str
    ) -> Tuple[str, Optional[str], Optional[Tuple[Any, ...]], Optional[Dict[str, Any]]]:
        origin = get_origin(annotation)

        # Optional[X] / X | None
        if origin is Union or origin is types.UnionType:
            non_null = [a for a in get_args(annotation) if a is not type(None)]
            if len(non_null) == 1:
                return cls._describe_type(non_null[0], param_name, tool_name)

        if origin is Literal:
            values = get_args(annotation)
            tag, _, _, _ = cls._describe_type(type(values[0]), param_name, tool_name)
            return tag, None, tuple(values), None

        if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
            return "object", None, None, annotation.model_json_schema()

        if origin in (list, tuple):
            args = [a for a in get_args(annotation) if a is not Ellipsis]
            items = _TYPE_TAGS.get(args[0]) if len(args) == 1 else None
            return "array", items, None, None

        if origin is dict:
            return "object", None, None, None

        if annotation in _TYPE_TAGS:
            return _TYPE_TAGS[annotation], None, None, None

        msg = f"Parameter '{param_name}' in tool '{tool_name}' has an unsupported annotation: {annotation!r}."
        logger.error(msg)
        raise SchemaBuildError(msg)

    @staticmethod
    def _extract_description(annotation: Any, param_name: str, tool_name: str) -> str:
        """Every tool parameter needs 'Annotated[<class>, Field(description='...')]' as its annotation.

        Args:
            annotation: The type annotation to inspect.
            param_name: The name of the parameter being checked.
            tool_name: The name of the tool for error reporting.

        Raises:
            SchemaBuildError: If the parameter is missing a Pydantic Field description.
        """

        if get_origin(annotation) is Annotated:
            for metadata in get_args(annotation):
                if isinstance(metadata, FieldInfo) and metadata.description:
                    return metadata.description

        msg = (
            f"Parameter '{param_name}' in tool '{tool_name}' is missing a description.\n"
            f"Usage: {param_name}: Annotated[Type, Field(description='...')] = ..."
        )
        logger.error(msg)
        raise SchemaBuildError(msg)
