"""
Parser configuration.

Settings that bound the lexer and grammar, loadable from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ConfigError(ValueError):
    """Raised when a configuration document cannot be loaded."""


class ParserConfig(BaseModel):
    """
    Limits and behaviour switches for one evaluation.

    Attributes:
        max_identifier_length: Characters stored per identifier; longer names
            are consumed in full but truncated.
        max_depth: Maximum nesting of parenthesised groups.
        report_truncation: Emit a warning diagnostic when a name is truncated.
        short_circuit: Skip resolving identifiers of a right operand whose
            result is already decided. Tokens are still consumed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_identifier_length: int = Field(default=31, ge=1)
    max_depth: int = Field(default=100, ge=1, le=150)
    report_truncation: bool = True
    short_circuit: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParserConfig":
        """Build a config from a mapping, accepting a nested ``parser`` key."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping, got {type(data).__name__}")

        settings = data.get("parser", data)
        if settings is None:
            return cls()
        try:
            return cls(**settings)
        except ValidationError as e:
            raise ConfigError(f"Invalid parser configuration: {e}") from e
        except TypeError as e:
            raise ConfigError(f"Invalid parser configuration: {e}") from e

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ParserConfig":
        """Load a config from YAML content."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ParserConfig":
        """Load a config from a file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_yaml(f.read())


DEFAULT_CONFIG = ParserConfig()
