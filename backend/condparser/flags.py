"""
Runtime configuration flags gated by conditions.

A flag file declares flags whose values depend on named conditions
supplied by the host (platform, build configuration, etc.):

    parser:
      max_depth: 32
    conditions:
      debug: false
    flags:
      - name: validation_layers
        when: "debug && !mobile"
      - name: texture_quality
        default: medium
        rules:
          - when: "console || highend"
            value: high
          - when: mobile
            value: low

Rules are tried in order and the first one whose condition holds sets the
value; otherwise the flag takes its default.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .config import ConfigError, ParserConfig
from .logic.analyzer import LogicAnalyzer
from .logic.evaluator import ExpressionEvaluator, ResolverLike, make_resolver
from .logic.lexer import ParseError

logger = logging.getLogger("condparser.flags")

FLAG_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")


class FlagRule(BaseModel):
    """A condition and the value it selects."""

    model_config = ConfigDict(extra="forbid")

    when: str = Field(min_length=1)
    value: Any = True


class FlagDefinition(BaseModel):
    """A single flag definition."""

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    default: Any = False
    rules: List[FlagRule] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def expand_when(cls, data: Any) -> Any:
        # `when:` on the flag is shorthand for a single rule enabling it
        if isinstance(data, dict) and "when" in data:
            data = dict(data)
            when = data.pop("when")
            data["rules"] = [{"when": when, "value": True}] + list(data.get("rules") or [])
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not FLAG_NAME_PATTERN.match(v):
            raise ValueError(
                f"Flag name '{v}' must start with a letter and contain only "
                "letters, digits, '_', '.' or '-'"
            )
        return v


class FlagSet(BaseModel):
    """A complete flag file."""

    model_config = ConfigDict(extra="forbid")

    parser: ParserConfig = Field(default_factory=ParserConfig)
    conditions: Dict[str, bool] = Field(default_factory=dict)
    flags: List[FlagDefinition] = Field(default_factory=list)

    @field_validator("flags")
    @classmethod
    def validate_unique_names(cls, v: List[FlagDefinition]) -> List[FlagDefinition]:
        seen = set()
        for flag in v:
            if flag.name in seen:
                raise ValueError(f"Duplicate flag name: {flag.name}")
            seen.add(flag.name)
        return v

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "FlagSet":
        """Load a flag set from YAML content."""
        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at top level, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid flag file: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FlagSet":
        """Load a flag set from a file."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_yaml(f.read())

    def get_flag(self, name: str) -> Optional[FlagDefinition]:
        for flag in self.flags:
            if flag.name == name:
                return flag
        return None


@dataclass
class FlagResult:
    """Resolved value of one flag."""

    name: str
    value: Any
    matched_rule: Optional[int] = None
    diagnostics: List[ParseError] = field(default_factory=list)

    @property
    def from_default(self) -> bool:
        return self.matched_rule is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "value": self.value,
            "matched_rule": self.matched_rule,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class FlagResolution:
    """Resolved values of every flag in a set."""

    results: Dict[str, FlagResult] = field(default_factory=dict)

    @property
    def values(self) -> Dict[str, Any]:
        return {name: r.value for name, r in self.results.items()}

    @property
    def errors(self) -> List[str]:
        """Error messages prefixed with the name of the flag they came from."""
        messages = []
        for result in self.results.values():
            for d in result.diagnostics:
                if d.is_error:
                    messages.append(f"{result.name}: {d}")
        return messages

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "values": self.values,
            "flags": [r.to_dict() for r in self.results.values()],
            "errors": self.errors,
        }


@dataclass
class FlagIssue:
    """A problem found while validating a flag set."""

    flag: str
    rule: int
    message: str
    severity: str = "error"

    def __str__(self) -> str:
        return f"{self.flag}[{self.rule}]: {self.message}"


class FlagEngine:
    """
    Resolves flag values against host conditions.

    Conditions given at resolve time override the defaults declared in the
    flag file. A rule whose condition is malformed never matches; its
    diagnostics are kept on the flag's result.
    """

    def __init__(self, flag_set: FlagSet):
        self.flag_set = flag_set
        self.evaluator = ExpressionEvaluator(flag_set.parser)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FlagEngine":
        return cls(FlagSet.from_file(path))

    def _resolver(self, conditions: ResolverLike):
        defaults = self.flag_set.conditions
        if conditions is None:
            return make_resolver(defaults)
        if isinstance(conditions, Mapping):
            merged = dict(defaults)
            merged.update(conditions)
            return make_resolver(merged)
        if callable(conditions):
            return conditions
        if isinstance(conditions, str):
            raise TypeError("Conditions must not be a string; pass a collection of names")

        # Collections list the names that are true; defaults fill the rest
        names = frozenset(conditions)
        return lambda name: name in names or bool(defaults.get(name, False))

    def resolve_flag(self, flag: FlagDefinition, conditions: ResolverLike = None) -> FlagResult:
        """Resolve a single flag."""
        resolver = self._resolver(conditions)
        result = FlagResult(name=flag.name, value=flag.default)

        for index, rule in enumerate(flag.rules):
            outcome = self.evaluator.evaluate(rule.when, resolver)
            result.diagnostics.extend(outcome.diagnostics)
            if not outcome.ok:
                logger.warning(
                    "Flag '%s' rule %d has an invalid condition %r; skipping",
                    flag.name, index, rule.when,
                )
                continue
            if outcome.value:
                result.value = rule.value
                result.matched_rule = index
                break

        logger.debug("Flag '%s' resolved to %r (rule %s)", flag.name, result.value, result.matched_rule)
        return result

    def resolve(self, conditions: ResolverLike = None) -> FlagResolution:
        """
        Resolve every flag.

        Args:
            conditions: Mapping of condition values, collection of true
                condition names, or a resolver callable.

        Returns:
            FlagResolution with per-flag results.
        """
        resolution = FlagResolution()
        for flag in self.flag_set.flags:
            resolution.results[flag.name] = self.resolve_flag(flag, conditions)
        return resolution

    def validate(self) -> List[FlagIssue]:
        """
        Check every rule without resolving anything.

        Reports malformed conditions as errors, and conditions that are always
        true or always false as warnings. Rules after an always-true rule are
        unreachable.
        """
        analyzer = LogicAnalyzer(self.flag_set.parser)
        issues: List[FlagIssue] = []

        for flag in self.flag_set.flags:
            shadowed = False
            for index, rule in enumerate(flag.rules):
                if shadowed:
                    issues.append(FlagIssue(
                        flag.name, index, "unreachable after an always-true rule", "warning",
                    ))
                    continue

                analysis = analyzer.analyze(rule.when)
                if not analysis.valid:
                    for d in analysis.diagnostics:
                        if d.is_error:
                            issues.append(FlagIssue(flag.name, index, str(d)))
                    continue
                for warning in analysis.warnings:
                    issues.append(FlagIssue(flag.name, index, warning, "warning"))
                if analysis.tautology:
                    issues.append(FlagIssue(flag.name, index, "condition is always true", "warning"))
                    shadowed = True
                elif analysis.contradiction:
                    issues.append(FlagIssue(flag.name, index, "condition is always false", "warning"))

        return issues


def load_flags(path: Union[str, Path], conditions: ResolverLike = None) -> Dict[str, Any]:
    """Load a flag file and return the resolved values."""
    return FlagEngine.from_file(path).resolve(conditions).values
