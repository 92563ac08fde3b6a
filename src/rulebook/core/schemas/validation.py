"""Schema validation for rule documents and scope configs.

Schemas are JSON Schema (draft 2020-12) documents written in YAML and
bundled under ``rulebook.data/schemas``. Validation is done with
``jsonschema.Draft202012Validator`` so every violation is reported, not just
the first one.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from rulebook.data import read_yaml as read_data_yaml


@dataclass(frozen=True)
class SchemaIssue:
    """One schema violation, flattened for error reporting.

    ``field`` is the dotted path to the offending value (for ``required``
    violations, the path of the missing property itself).
    """

    field: str
    message: str
    keyword: str
    expected: Any = None
    received: Any = None


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema by name (``rule`` or ``rule.schema.yaml``).

    Raises:
        FileNotFoundError: If the schema is not bundled.
        ValueError: If the schema is not a mapping.
    """
    filename = schema_name if schema_name.endswith((".yaml", ".yml")) else f"{schema_name}.schema.yaml"
    schema = read_data_yaml("schemas", filename)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


@lru_cache(maxsize=8)
def _validator(schema_name: str) -> Draft202012Validator:
    schema = load_schema(schema_name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def iter_schema_issues(payload: Any, schema_name: str) -> List[SchemaIssue]:
    """Return every violation of ``schema_name`` in ``payload``, path-sorted."""
    issues: List[SchemaIssue] = []
    errors = sorted(
        _validator(schema_name).iter_errors(payload),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    for error in errors:
        path = [str(p) for p in error.absolute_path]
        expected: Optional[Any] = None
        if error.validator == "required":
            missing = _missing_property(error.message)
            if missing:
                path.append(missing)
        elif error.validator == "enum":
            expected = list(error.validator_value)
        elif error.validator in ("type", "pattern", "minLength", "minimum", "maximum"):
            expected = error.validator_value
        issues.append(
            SchemaIssue(
                field=".".join(path) or "<root>",
                message=error.message,
                keyword=str(error.validator),
                expected=expected,
                received=None if error.validator == "required" else error.instance,
            )
        )
    return issues


def _missing_property(message: str) -> Optional[str]:
    # jsonschema renders required violations as "'name' is a required property".
    if message.startswith("'") and "' is a required property" in message:
        return message[1 : message.index("' is a required property")]
    return None


__all__ = [
    "SchemaIssue",
    "load_schema",
    "iter_schema_issues",
]
