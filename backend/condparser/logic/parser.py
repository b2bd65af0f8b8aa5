"""
Expression Parser for condition expressions.

Builds a small expression tree for callers that evaluate the same
condition repeatedly against changing identifier values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..config import DEFAULT_CONFIG, ParserConfig
from .evaluator import ResolverLike, make_resolver
from .grammar import ErrorCallback, ExpressionGrammar
from .lexer import ParseError

logger = logging.getLogger("condparser.parser")

Resolver = Callable[[str], bool]


@dataclass(frozen=True)
class Constant:
    """Placeholder for a subtree that failed to parse."""

    value: bool

    def evaluate(self, resolver: Resolver, short_circuit: bool = False) -> bool:
        return self.value

    def identifiers(self) -> Tuple[str, ...]:
        return ()

    def to_json_logic(self) -> Any:
        return self.value

    def __str__(self) -> str:
        return "<error>"


@dataclass(frozen=True)
class Identifier:
    name: str

    def evaluate(self, resolver: Resolver, short_circuit: bool = False) -> bool:
        return bool(resolver(self.name))

    def identifiers(self) -> Tuple[str, ...]:
        return (self.name,)

    def to_json_logic(self) -> Any:
        return {"var": self.name}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Not:
    operand: "Node"

    def evaluate(self, resolver: Resolver, short_circuit: bool = False) -> bool:
        return not self.operand.evaluate(resolver, short_circuit)

    def identifiers(self) -> Tuple[str, ...]:
        return self.operand.identifiers()

    def to_json_logic(self) -> Any:
        return {"!": self.operand.to_json_logic()}

    def __str__(self) -> str:
        if isinstance(self.operand, (And, Or)):
            return f"!({self.operand})"
        return f"!{self.operand}"


@dataclass(frozen=True)
class And:
    operands: Tuple["Node", ...]

    def evaluate(self, resolver: Resolver, short_circuit: bool = False) -> bool:
        value = True
        for operand in self.operands:
            if short_circuit and not value:
                break
            value = operand.evaluate(resolver, short_circuit) and value
        return value

    def identifiers(self) -> Tuple[str, ...]:
        return tuple(name for operand in self.operands for name in operand.identifiers())

    def to_json_logic(self) -> Any:
        return {"and": [operand.to_json_logic() for operand in self.operands]}

    def __str__(self) -> str:
        return " && ".join(
            f"({operand})" if isinstance(operand, (And, Or)) else str(operand)
            for operand in self.operands
        )


@dataclass(frozen=True)
class Or:
    operands: Tuple["Node", ...]

    def evaluate(self, resolver: Resolver, short_circuit: bool = False) -> bool:
        value = False
        for operand in self.operands:
            if short_circuit and value:
                break
            value = operand.evaluate(resolver, short_circuit) or value
        return value

    def identifiers(self) -> Tuple[str, ...]:
        return tuple(name for operand in self.operands for name in operand.identifiers())

    def to_json_logic(self) -> Any:
        return {"or": [operand.to_json_logic() for operand in self.operands]}

    def __str__(self) -> str:
        return " || ".join(
            f"({operand})" if isinstance(operand, Or) else str(operand)
            for operand in self.operands
        )


Node = Union[Constant, Identifier, Not, And, Or]


class _TreeGrammar(ExpressionGrammar[Node]):
    """Grammar whose productions are tree nodes."""

    def identifier(self, name: str) -> Node:
        return Identifier(name)

    def negate(self, operand: Node) -> Node:
        # !!x collapses to x
        if isinstance(operand, Not):
            return operand.operand
        return Not(operand)

    # Chains fold into one n-ary node, so tree depth only grows with nesting

    def conjunction(self, left: Node, right: Node) -> Node:
        if isinstance(left, And):
            return And(left.operands + (right,))
        return And((left, right))

    def disjunction(self, left: Node, right: Node) -> Node:
        if isinstance(left, Or):
            return Or(left.operands + (right,))
        return Or((left, right))

    def failure(self) -> Node:
        return Constant(False)


@dataclass
class CompiledExpression:
    """A parsed expression that can be evaluated many times."""

    source: str
    root: Node
    diagnostics: List[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.is_error for d in self.diagnostics)

    @property
    def identifiers(self) -> List[str]:
        """Distinct identifiers in first-occurrence order."""
        return list(dict.fromkeys(self.root.identifiers()))

    def evaluate(self, resolve_identifier: ResolverLike = None, short_circuit: bool = False) -> bool:
        """
        Evaluate the tree.

        Malformed expressions always evaluate to False. Without
        ``short_circuit`` every identifier occurrence is resolved, in source
        order, matching single-pass evaluation.
        """
        if not self.ok:
            return False
        return self.root.evaluate(make_resolver(resolve_identifier), short_circuit)

    def to_json_logic(self) -> Any:
        """Render as JSON Logic (``var``, ``!``, ``and``, ``or``)."""
        return self.root.to_json_logic()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "ok": self.ok,
            "canonical": str(self.root),
            "identifiers": self.identifiers,
            "json_logic": self.to_json_logic(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    def __str__(self) -> str:
        return str(self.root)


class ExpressionParser:
    """
    Parser producing ``CompiledExpression`` trees.

    Uses the same grammar, limits and diagnostics as direct evaluation.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def parse(
        self,
        expression: str,
        report_error: Optional[ErrorCallback] = None,
    ) -> CompiledExpression:
        """
        Parse an expression into a tree.

        Args:
            expression: The expression to parse.
            report_error: Optional sink receiving each error message.

        Returns:
            CompiledExpression; check ``ok`` before relying on it.
        """
        if not isinstance(expression, str):
            raise TypeError(f"Expected string expression, got {type(expression).__name__}")

        grammar = _TreeGrammar(expression, self.config, report_error)
        root = grammar.parse()
        logger.debug("Compiled %r to %s", expression, root)
        return CompiledExpression(source=expression, root=root, diagnostics=grammar.diagnostics)

    def validate(self, expression: str) -> Tuple[bool, Optional[str]]:
        """
        Check an expression without evaluating it.

        Returns:
            Tuple of (is_valid, error_message).
        """
        compiled = self.parse(expression)
        if compiled.ok:
            return True, None
        return False, "; ".join(str(d) for d in compiled.diagnostics if d.is_error)


def compile_expression(
    expression: str,
    report_error: Optional[ErrorCallback] = None,
    config: Optional[ParserConfig] = None,
) -> CompiledExpression:
    """Parse an expression into a reusable tree."""
    return ExpressionParser(config).parse(expression, report_error)
