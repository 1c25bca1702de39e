"""Derive advertised JSON schemas and validation models from declared tool parameters."""

import copy
from typing import Any, Dict, List, Literal, NoReturn, Optional, Tuple, Type, Union, cast

import jsonref  # type: ignore
from pydantic import BaseModel, ConfigDict, Field, create_model

from ..models import ParameterSpec, ToolDefinition, ToolSchema, SUPPORTED_TYPES
from ...exceptions import SchemaBuildError
from ...logger import get_logger
from .schema_validator import SchemaValidator

logger = get_logger(__name__)

_PYTHON_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
}


class SchemaBuilder:
    """
    Turns the parameter declarations of a ``ToolDefinition`` into

    * the JSON schema advertised to the model backend, and
    * a strict pydantic model used to validate inbound arguments.

    Output is deterministic: the same declaration always produces an equal
    schema, with properties in declaration order. Malformed declarations raise
    ``SchemaBuildError``; nothing here runs at call time.
    """

    @classmethod
    def build(cls, tool: ToolDefinition) -> ToolSchema:
        """Build the advertised schema for a tool.

        Args:
            tool: The tool definition to describe.

        Returns:
            The tool's name, description and parameter schema.

        Raises:
            SchemaBuildError: If the parameter declarations are malformed.
        """
        cls.check_parameters(tool)

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for spec in tool.parameters:
            properties[spec.name] = cls._property_schema(tool.name, spec)
            if spec.required:
                required.append(spec.name)

        parameters: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            parameters["required"] = required
        parameters["additionalProperties"] = False

        return ToolSchema(name=tool.name, description=tool.description, parameters=parameters)

    @classmethod
    def build_args_model(cls, tool: ToolDefinition) -> Type[BaseModel]:
        """Create the pydantic model used to validate a tool's arguments.

        The model forbids unknown fields and validates strictly, so a string is
        never silently coerced into a number. Nested ``json_schema`` fragments
        become nested models with the same rules. An explicit ``null`` is only
        accepted for optional parameters whose default is ``None``.

        Raises:
            SchemaBuildError: If the parameter declarations are malformed.
        """
        cls.check_parameters(tool)

        try:
            fields: Dict[str, Any] = {}
            for spec in tool.parameters:
                annotation = cls._annotation_for(tool.name, spec)
                if spec.required:
                    fields[spec.name] = (annotation, Field(default=..., description=spec.description))
                else:
                    if spec.default is None:
                        annotation = Optional[annotation]
                    fields[spec.name] = (
                        annotation,
                        Field(default=copy.deepcopy(spec.default), description=spec.description),
                    )

            # create_model expects **field_definitions: Any
            return create_model(
                f"{tool.name}Args",
                __config__=ConfigDict(extra="forbid", strict=True),
                **cast(Dict[str, Any], fields),
            )
        except SchemaBuildError:
            raise
        except Exception as e:
            msg = f"Could not build argument model for tool '{tool.name}': {e}"
            logger.error(msg)
            raise SchemaBuildError(msg) from e

    @classmethod
    def check_parameters(cls, tool: ToolDefinition) -> None:
        """Validate the declared parameter metadata of a tool.

        Raises:
            SchemaBuildError: On the first malformed declaration found.
        """
        seen = set()
        for spec in tool.parameters:
            if not spec.name or spec.name.startswith("_") or not spec.name.isidentifier():
                cls._fail(tool.name, spec.name, "parameter names must be identifiers not starting with '_'")
            if spec.name in seen:
                cls._fail(tool.name, spec.name, "parameter is declared more than once")
            seen.add(spec.name)

            if spec.type not in SUPPORTED_TYPES:
                cls._fail(tool.name, spec.name, f"unsupported type tag '{spec.type}'")

            if spec.items is not None:
                if spec.type != "array":
                    cls._fail(tool.name, spec.name, "'items' is only allowed on array parameters")
                if spec.items not in SUPPORTED_TYPES:
                    cls._fail(tool.name, spec.name, f"unsupported items type tag '{spec.items}'")

            if spec.required and spec.default is not None:
                cls._fail(tool.name, spec.name, "required parameters cannot declare a default")

            if spec.default is not None and not cls._matches(spec.type, spec.default):
                cls._fail(tool.name, spec.name, f"default {spec.default!r} does not match type '{spec.type}'")

            if spec.enum is not None:
                if not spec.enum:
                    cls._fail(tool.name, spec.name, "'enum' must not be empty")
                for value in spec.enum:
                    if not cls._matches(spec.type, value):
                        cls._fail(tool.name, spec.name, f"enum value {value!r} does not match type '{spec.type}'")

            if spec.json_schema is not None and spec.type not in ("object", "array"):
                cls._fail(tool.name, spec.name, "'json_schema' is only allowed on object and array parameters")

    @classmethod
    def _property_schema(cls, tool_name: str, spec: ParameterSpec) -> Dict[str, Any]:
        prop: Dict[str, Any]
        if spec.json_schema is not None:
            prop = cls._resolve_fragment(tool_name, spec)
        else:
            prop = {"type": spec.type}
            if spec.items is not None:
                prop["items"] = {"type": spec.items}

        if spec.description:
            prop["description"] = spec.description
        if spec.enum is not None:
            prop["enum"] = list(spec.enum)
        if not spec.required and spec.default is not None:
            prop["default"] = copy.deepcopy(spec.default)
        return prop

    @classmethod
    def _resolve_fragment(cls, tool_name: str, spec: ParameterSpec) -> Dict[str, Any]:
        fragment = copy.deepcopy(cast(Dict[str, Any], spec.json_schema))

        # 1. Check for recursion
        SchemaValidator.assert_no_recursive_refs(fragment)

        # 2. Resolve refs using jsonref
        # proxies=False ensures we get a plain dict back, not JsonRef objects
        try:
            resolved = jsonref.replace_refs(fragment, proxies=False)
        except Exception as e:
            cls._fail(tool_name, spec.name, f"could not resolve schema references: {e}")

        # 3. Sanitize schema (remove $defs, title, etc.)
        sanitized = cast(Dict[str, Any], SchemaValidator.sanitize_schema(resolved))

        declared_type = sanitized.get("type")
        if declared_type is not None and declared_type != spec.type:
            cls._fail(tool_name, spec.name, f"nested schema type '{declared_type}' does not match '{spec.type}'")
        sanitized["type"] = spec.type
        return sanitized

    @classmethod
    def _annotation_for(cls, tool_name: str, spec: ParameterSpec) -> Any:
        if spec.enum is not None:
            return Literal[tuple(spec.enum)]  # type: ignore[misc]
        if spec.json_schema is not None:
            fragment = cls._resolve_fragment(tool_name, spec)
            return cls._annotation_for_schema(fragment, f"{tool_name}_{spec.name}")
        if spec.type == "array":
            item_type = _PYTHON_TYPES[spec.items] if spec.items is not None else Any
            return List[item_type]  # type: ignore[valid-type]
        if spec.type == "object":
            return Dict[str, Any]
        return _PYTHON_TYPES[spec.type]

    @classmethod
    def _annotation_for_schema(cls, schema: Any, model_name: str) -> Any:
        """Translate a resolved, sanitized schema fragment into a validation annotation.

        Objects with ``properties`` become strict models; unknown keys are
        rejected unless the fragment allows additional properties.
        """
        if not isinstance(schema, dict):
            return Any

        if schema.get("enum"):
            return Literal[tuple(schema["enum"])]  # type: ignore[misc]
        if "const" in schema:
            return Literal[(schema["const"],)]  # type: ignore[misc]

        options = schema.get("anyOf") or schema.get("oneOf")
        if isinstance(options, list) and options:
            members = [cls._annotation_for_schema(o, f"{model_name}_{i}") for i, o in enumerate(options)]
            return members[0] if len(members) == 1 else Union[tuple(members)]  # type: ignore[return-value]

        type_tag = schema.get("type")
        if isinstance(type_tag, list):
            members = [cls._annotation_for_schema({**schema, "type": t}, f"{model_name}_{t}") for t in type_tag]
            return members[0] if len(members) == 1 else Union[tuple(members)]  # type: ignore[return-value]

        if type_tag == "null":
            return type(None)
        if type_tag == "array":
            items = schema.get("items")
            if isinstance(items, dict):
                return List[cls._annotation_for_schema(items, f"{model_name}_item")]  # type: ignore[misc]
            return List[Any]
        if type_tag == "object":
            return cls._model_for_object(schema, model_name)
        if type_tag in _PYTHON_TYPES:
            return _PYTHON_TYPES[type_tag]
        return Any

    @classmethod
    def _model_for_object(cls, schema: Dict[str, Any], model_name: str) -> Any:
        properties = schema.get("properties")
        additional = schema.get("additionalProperties", False)
        if not isinstance(properties, dict) or not properties:
            if isinstance(additional, dict):
                return Dict[str, cls._annotation_for_schema(additional, f"{model_name}_value")]  # type: ignore[misc]
            return Dict[str, Any]

        required = set(schema.get("required") or [])
        fields: Dict[str, Any] = {}
        for index, (prop_name, prop_schema) in enumerate(properties.items()):
            annotation = cls._annotation_for_schema(prop_schema, f"{model_name}_{index}")
            # Property names are arbitrary strings, so fields are addressed by alias
            if prop_name in required:
                fields[f"field_{index}"] = (annotation, Field(default=..., alias=prop_name))
            else:
                default = prop_schema.get("default") if isinstance(prop_schema, dict) else None
                if default is None:
                    annotation = Optional[annotation]
                fields[f"field_{index}"] = (annotation, Field(default=copy.deepcopy(default), alias=prop_name))

        extra = "forbid" if additional is False else "allow"
        return create_model(
            model_name,
            __config__=ConfigDict(extra=extra, strict=True),
            **cast(Dict[str, Any], fields),
        )

    @staticmethod
    def _matches(type_tag: str, value: Any) -> bool:
        # bool is an int subclass, keep it out of the numeric tags
        if type_tag == "boolean":
            return isinstance(value, bool)
        if isinstance(value, bool):
            return False
        if type_tag == "number":
            return isinstance(value, (int, float))
        expected: Tuple[type, ...] = (_PYTHON_TYPES[type_tag],) if type_tag in _PYTHON_TYPES else ()
        return bool(expected) and isinstance(value, expected)

    @staticmethod
    def _fail(tool_name: str, param_name: str, reason: str) -> NoReturn:
        msg = f"Invalid parameter '{param_name}' in tool '{tool_name}': {reason}."
        logger.error(msg)
        raise SchemaBuildError(msg)
