from agent_loop_lib.agent_impl.gemini import schema_sanitizer


def test_strip_additional_properties() -> None:
    """Tests that 'additionalProperties' is recursively removed."""
    schema = {
        "type": "object",
        "properties": {
            "user": {
                "type": "object",
                "properties": {"name": {"type": "string"}},
                "additionalProperties": False,
            },
            "items": {
                "type": "array",
                "items": [
                    {
                        "type": "object",
                        "properties": {"price": {"type": "number"}},
                        "additionalProperties": False,
                    }
                ],
            },
        },
        "additionalProperties": False,
    }

    sanitized = schema_sanitizer.sanitize(schema)

    assert "additionalProperties" not in sanitized
    assert "additionalProperties" not in sanitized["properties"]["user"]
    assert "additionalProperties" not in sanitized["properties"]["items"]["items"][0]
    assert "price" in sanitized["properties"]["items"]["items"][0]["properties"]


def test_required_keeps_order_and_drops_undefined() -> None:
    """Required names missing from 'properties' are dropped, the rest keep their order."""
    schema = {
        "type": "object",
        "properties": {"b": {"type": "string"}, "a": {"type": "string"}},
        "required": ["b", "undefined_prop", "a"],
    }

    sanitized = schema_sanitizer.sanitize(schema)

    assert sanitized["required"] == ["b", "a"]


def test_required_key_removed_if_empty() -> None:
    schema = {
        "type": "object",
        "properties": {"defined_prop": {"type": "string"}},
        "required": ["undefined_prop_1", "undefined_prop_2"],
    }

    sanitized = schema_sanitizer.sanitize(schema)

    assert "required" not in sanitized


def test_enum_values_are_stringified() -> None:
    schema = {"type": "object", "properties": {"level": {"type": "integer", "enum": [1, 2, 3]}}}

    sanitized = schema_sanitizer.sanitize(schema)

    assert sanitized["properties"]["level"]["enum"] == ["1", "2", "3"]


def test_sanitize_handles_clean_schema() -> None:
    """Tests that a schema that is already clean remains unchanged."""
    schema = {
        "type": "object",
        "properties": {"prop1": {"type": "string", "enum": ["a", "b"]}},
        "required": ["prop1"],
    }
    original_schema = {
        "type": "object",
        "properties": {"prop1": {"type": "string", "enum": ["a", "b"]}},
        "required": ["prop1"],
    }

    sanitized = schema_sanitizer.sanitize(schema)

    assert sanitized == original_schema
    assert schema == original_schema
