"""Tool schema generation and validation."""

from .schema_validator import SchemaValidator
from .schema_builder import SchemaBuilder
from .tool_param_factory import ToolParameterFactory

__all__ = ["SchemaValidator", "SchemaBuilder", "ToolParameterFactory"]
