"""
TOML File I/O Handler.

This module reads project config files and renders the commented default
config.

Key features:
- Parse TOML files using tomllib (Python 3.11+)
- Write TOML files using tomlkit (keeps comments and layout)
- Render a schema-driven section with descriptions as comments
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.items import Table

from agentinit.config.schema import OptionField


class TOMLError(Exception):
    """Base exception for TOML-related errors."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Raises:
        TOMLError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def write_toml(file_path: Path, data: dict[str, Any] | tomlkit.TOMLDocument) -> None:
    """
    Write data to a TOML file using tomlkit.

    Raises:
        TOMLError: If file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            tomlkit.dump(data, f)
    except OSError as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def schema_table(schema: dict[str, OptionField], values: dict[str, Any]) -> Table:
    """
    Build a TOML table from a schema, one commented key per option.

    Args:
        schema: Option definitions
        values: Values to write (missing keys use the default)

    Returns:
        tomlkit table
    """
    table = tomlkit.table()

    for name, option in schema.items():
        if option.description:
            table.add(tomlkit.comment(option.description))

        constraints = []
        if option.min is not None:
            constraints.append(f"min: {option.min}")
        if option.max is not None:
            constraints.append(f"max: {option.max}")
        if option.choices is not None:
            constraints.append(f"choices: {option.choices}")
        if constraints:
            table.add(tomlkit.comment(f"Constraints: {', '.join(constraints)}"))

        table.add(name, values.get(name, option.default))

    return table
