"""
Option Schema.

This module provides option declarations and validation for project settings
and plugin options.

Key features:
- Typed option definitions with min/max/choices constraints
- Validation that fills in defaults for omitted options
- Integers accepted where a float is declared (TOML writes 120, not 120.0)
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Raised when an option definition itself is invalid."""

    pass


class ValidationError(SchemaError):
    """Raised when a value does not satisfy its option definition."""

    pass


def _matches(value: Any, type_: type) -> bool:
    if type_ is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_ is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, type_)


@dataclass
class OptionField:
    """
    A single option with type and constraints.

    Attributes:
        type_: Expected type of the value
        default: Default value
        description: Human-readable description (written as a TOML comment)
        min: Minimum value (numbers) or minimum length (strings/lists)
        max: Maximum value (numbers) or maximum length (strings/lists)
        choices: Allowed values
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: list[Any] | None = None

    def __post_init__(self):
        if not _matches(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )

        if (self.min is not None or self.max is not None) and self.type_ not in (
            int,
            float,
            str,
            list,
        ):
            raise SchemaError(
                f"min/max constraints only supported for int, float, str, list. "
                f"Got {self.type_.__name__}"
            )

        if self.choices is not None and self.default not in self.choices:
            raise SchemaError(
                f"Default value {self.default!r} not in choices {self.choices}"
            )

    def validate(self, value: Any) -> None:
        """
        Validate a value against this option.

        Raises:
            ValidationError: If validation fails
        """
        if not _matches(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(f"Value {value!r} not in allowed choices {self.choices}")

        if self.type_ in (int, float):
            measured, label = value, "Value"
        elif self.type_ in (str, list):
            measured, label = len(value), "Length"
        else:
            return

        if self.min is not None and measured < self.min:
            raise ValidationError(f"{label} {measured} is less than minimum {self.min}")
        if self.max is not None and measured > self.max:
            raise ValidationError(f"{label} {measured} is greater than maximum {self.max}")


def default_options(schema: dict[str, OptionField]) -> dict[str, Any]:
    """Return the default value of every option in ``schema``."""
    return {name: option.default for name, option in schema.items()}


def validate_options(values: dict[str, Any], schema: dict[str, OptionField]) -> dict[str, Any]:
    """
    Validate values against a schema and fill in defaults.

    Args:
        values: Values read from config or returned by a plugin
        schema: Option definitions

    Returns:
        A new dict with every schema option present

    Raises:
        ValidationError: On unknown options or invalid values
    """
    for key in values:
        if key not in schema:
            raise ValidationError(f"Unknown option: {key}")

    merged = default_options(schema)
    for name, option in schema.items():
        if name not in values:
            continue
        try:
            option.validate(values[name])
        except ValidationError as e:
            raise ValidationError(f"Option '{name}': {e}") from e
        merged[name] = values[name]

    return merged
