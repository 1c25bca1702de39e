"""
A module for sanitizing tool schemas for the Google Gemini API.

The advertised parameter schemas are plain JSON schema. Gemini's function
declarations accept a subset of it: ``additionalProperties`` is rejected,
``enum`` values must be strings, and every name listed in ``required`` must be
defined in ``properties``.
"""

from typing import Any, Dict, Set, cast
from functools import singledispatch


def sanitize(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Performs all necessary, recursive sanitization steps on a tool schema.

    Args:
        schema: The tool parameter schema to sanitize.

    Returns:
        A sanitized copy of the schema, ready for the Gemini API.
    """
    # The top-level input is a dict and the dict dispatch returns a dict
    return cast(Dict[str, Any], _recursive_sanitize(schema, set()))


@singledispatch
def _recursive_sanitize(schema: Any, seen: Set[int]) -> Any:
    """Base case for anything that is neither a dict nor a list."""
    return schema


@_recursive_sanitize.register(dict)
def _(schema: dict, seen: Set[int]) -> dict:
    obj_id = id(schema)
    if obj_id in seen:
        return schema  # Circular reference detected
    seen.add(obj_id)

    level = _stringify_enum(_ensure_required_params(schema))

    result = {
        key: _recursive_sanitize(value, seen)
        for key, value in level.items()
        if key != "additionalProperties"
    }

    seen.remove(obj_id)
    return result


@_recursive_sanitize.register(list)
def _(schema: list, seen: Set[int]) -> list:
    obj_id = id(schema)
    if obj_id in seen:
        return schema  # Circular reference detected
    seen.add(obj_id)

    result = [_recursive_sanitize(item, seen) for item in schema]

    seen.remove(obj_id)
    return result


def _ensure_required_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drops names from 'required' that are not defined in 'properties', keeping their order."""
    if "required" not in params or not isinstance(params.get("properties"), dict):
        return params

    _params = params.copy()
    defined = _params["properties"]
    valid_required = [name for name in _params["required"] if name in defined]

    if valid_required:
        _params["required"] = valid_required
    else:
        _params.pop("required", None)

    return _params


def _stringify_enum(params: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(params.get("enum"), list):
        return params
    if all(isinstance(value, str) for value in params["enum"]):
        return params
    _params = params.copy()
    _params["enum"] = [str(value) for value in params["enum"]]
    return _params
