"""Schema validation utilities using package-data schemas."""

import json
from functools import cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    """Load a packaged schema by canonical name (without .schema.json).

    Raises:
        KeyError: If the schema is not shipped with the package
    """
    schema_file = files("recipex.schemas") / f"{schema_name}.schema.json"
    if not schema_file.is_file():
        raise KeyError(f"Schema '{schema_name}' not found in recipex package data")
    schema: dict[str, Any] = json.loads(schema_file.read_text(encoding="utf-8"))
    return schema


def validate_data(
    data: Any,
    schema_name: str,
    strict: bool = True,
) -> tuple[bool, list[str]]:
    """Validate data against a packaged schema.

    Args:
        data: Parsed document to validate
        schema_name: Name of schema to validate against
        strict: If True, raise on validation errors; if False, return error list

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        ValueError: If validation fails and strict=True
    """
    validator = Draft202012Validator(load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])

    if errors:
        error_messages = [
            f"{'.'.join(str(p) for p in e.path)}: {e.message}"
            if e.path
            else e.message
            for e in errors
        ]

        if strict:
            raise ValueError(
                f"Schema validation failed for '{schema_name}':\n" +
                "\n".join(f"  - {msg}" for msg in error_messages)
            )

        return False, error_messages

    return True, []
