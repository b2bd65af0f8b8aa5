"""
Expression Evaluator for condition expressions.

Evaluates an expression in a single pass while it is parsed, resolving
identifiers through a host-supplied resolver.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..config import DEFAULT_CONFIG, ParserConfig
from .grammar import ErrorCallback, ExpressionGrammar
from .lexer import ParseError, TokenType

logger = logging.getLogger("condparser.evaluator")

Resolver = Callable[[str], bool]
ResolverLike = Union[Resolver, Mapping, Collection, None]


class ConditionError(ValueError):
    """Raised by strict evaluation when an expression is malformed."""

    def __init__(self, expression: str, diagnostics: List[ParseError]):
        self.expression = expression
        self.diagnostics = diagnostics
        details = "; ".join(str(d) for d in diagnostics if d.is_error)
        super().__init__(f"Invalid condition {expression!r}: {details}")


def make_resolver(source: ResolverLike) -> Resolver:
    """
    Normalise the accepted resolver forms into a callable.

    Args:
        source: A callable ``name -> bool``, a mapping of names to values
            (missing names are false), a collection of names that are true,
            or None (every identifier is false).

    Returns:
        A callable resolver.
    """
    if source is None:
        return lambda name: False
    if callable(source):
        return source
    if isinstance(source, Mapping):
        return lambda name: bool(source.get(name, False))
    if isinstance(source, str):
        raise TypeError("Resolver must not be a string; pass a collection of names")
    if isinstance(source, Collection):
        names = frozenset(source)
        return lambda name: name in names
    raise TypeError(f"Unsupported resolver type: {type(source).__name__}")


@dataclass
class EvaluationResult:
    """
    Outcome of one evaluation.

    ``value`` is False whenever an error was reported; the grammar's
    best-effort value for the malformed input is kept in ``partial_value``.
    """

    value: bool
    diagnostics: List[ParseError] = field(default_factory=list)
    resolved: List[str] = field(default_factory=list)
    partial_value: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> List[ParseError]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> List[ParseError]:
        return [d for d in self.diagnostics if not d.is_error]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "value": self.value,
            "ok": self.ok,
            "resolved": list(self.resolved),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


class _EvaluatingGrammar(ExpressionGrammar[bool]):
    """Grammar whose productions are boolean values."""

    def __init__(
        self,
        expression: str,
        resolver: Resolver,
        config: ParserConfig,
        report_error: Optional[ErrorCallback],
    ):
        super().__init__(expression, config, report_error)
        self.resolver = resolver
        self.resolved: List[str] = []

    def identifier(self, name: str) -> bool:
        if self.skipping:
            return False
        self.resolved.append(name)
        return bool(self.resolver(name))

    def negate(self, operand: bool) -> bool:
        return not operand

    def conjunction(self, left: bool, right: bool) -> bool:
        return left and right

    def disjunction(self, left: bool, right: bool) -> bool:
        return left or right

    def failure(self) -> bool:
        return False

    def skips_operand(self, operator: TokenType, left: bool) -> bool:
        if not self.config.short_circuit:
            return False
        if operator is TokenType.AND:
            return not left
        return left


class ExpressionEvaluator:
    """
    Evaluator for condition expressions.

    Holds only configuration, so a single instance can be shared between
    threads. Every call builds its own cursor and grammar state.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        """
        Initialize the evaluator.

        Args:
            config: Parser limits; defaults to ``ParserConfig()``.
        """
        self.config = config or DEFAULT_CONFIG

    def evaluate(
        self,
        expression: str,
        resolve_identifier: ResolverLike = None,
        report_error: Optional[ErrorCallback] = None,
    ) -> EvaluationResult:
        """
        Evaluate an expression.

        Identifiers are resolved once per occurrence, left to right. Unless
        ``short_circuit`` is configured, both operands of every ``&&`` and
        ``||`` are resolved even when the left one decides the result.

        Args:
            expression: The expression text.
            resolve_identifier: Resolver for identifier values.
            report_error: Optional sink receiving each error message,
                newline-terminated.

        Returns:
            EvaluationResult with the value and any diagnostics.
        """
        if not isinstance(expression, str):
            raise TypeError(f"Expected string expression, got {type(expression).__name__}")

        grammar = _EvaluatingGrammar(
            expression,
            make_resolver(resolve_identifier),
            self.config,
            report_error,
        )
        value = grammar.parse()

        result = EvaluationResult(
            value=value,
            diagnostics=grammar.diagnostics,
            resolved=grammar.resolved,
            partial_value=value,
        )
        if not result.ok:
            result.value = False
            logger.debug(
                "Expression %r degraded to false with %d error(s)",
                expression, len(result.errors),
            )
        else:
            logger.debug("Expression %r evaluated to %s", expression, value)
        return result

    def evaluate_bool(
        self,
        expression: str,
        resolve_identifier: ResolverLike = None,
        report_error: Optional[ErrorCallback] = None,
    ) -> bool:
        """Evaluate and return only the boolean value."""
        return self.evaluate(expression, resolve_identifier, report_error).value

    def evaluate_strict(
        self,
        expression: str,
        resolve_identifier: ResolverLike = None,
    ) -> bool:
        """
        Evaluate, raising on malformed input.

        Raises:
            ConditionError: If any error diagnostic was reported.
        """
        result = self.evaluate(expression, resolve_identifier)
        if not result.ok:
            raise ConditionError(expression, result.diagnostics)
        return result.value


def evaluate(
    expression: str,
    resolve_identifier: ResolverLike = None,
    report_error: Optional[ErrorCallback] = None,
    config: Optional[ParserConfig] = None,
) -> EvaluationResult:
    """Evaluate an expression with a throwaway evaluator."""
    return ExpressionEvaluator(config).evaluate(expression, resolve_identifier, report_error)


def evaluate_bool(
    expression: str,
    resolve_identifier: ResolverLike = None,
    report_error: Optional[ErrorCallback] = None,
    config: Optional[ParserConfig] = None,
) -> bool:
    """Evaluate an expression and return only its value."""
    return ExpressionEvaluator(config).evaluate_bool(expression, resolve_identifier, report_error)


def evaluate_strict(
    expression: str,
    resolve_identifier: ResolverLike = None,
    config: Optional[ParserConfig] = None,
) -> bool:
    """Evaluate an expression, raising ``ConditionError`` on malformed input."""
    return ExpressionEvaluator(config).evaluate_strict(expression, resolve_identifier)
