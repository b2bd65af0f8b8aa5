"""
Recursive-descent grammar for condition expressions.

Precedence, lowest first: OR, AND, NOT, primary (identifier or group).
Subclasses supply the semantics of each production, so one grammar drives
both direct evaluation and tree building.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar

from ..config import DEFAULT_CONFIG, ParserConfig
from .lexer import Lexer, ParseError, TokenType

logger = logging.getLogger("condparser.grammar")

T = TypeVar("T")

ErrorCallback = Callable[[str], None]


class ExpressionGrammar(Generic[T]):
    """
    One pass over one expression.

    Malformed input never raises: each failure is recorded as a
    ``ParseError``, the offending subtree takes the value from
    ``failure()``, and parsing continues with whatever tokens remain.
    """

    def __init__(
        self,
        expression: str,
        config: Optional[ParserConfig] = None,
        report_error: Optional[ErrorCallback] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.expression = expression
        self.diagnostics: List[ParseError] = []
        self.depth = 0
        self.aborted = False
        self._skipping = 0
        self._report_error = report_error
        self.lexer = Lexer(expression, self.config, self._record)

    # Semantic hooks

    def identifier(self, name: str) -> T:
        raise NotImplementedError

    def negate(self, operand: T) -> T:
        raise NotImplementedError

    def conjunction(self, left: T, right: T) -> T:
        raise NotImplementedError

    def disjunction(self, left: T, right: T) -> T:
        raise NotImplementedError

    def failure(self) -> T:
        raise NotImplementedError

    def skips_operand(self, operator: TokenType, left: T) -> bool:
        """Whether the right operand of ``operator`` only needs to be consumed."""
        return False

    # Diagnostics

    def _record(self, diagnostic: ParseError) -> None:
        self.diagnostics.append(diagnostic)
        if diagnostic.is_error and self._report_error is not None:
            self._report_error(diagnostic.message)

    def error(self, kind: str, message: str) -> None:
        self.lexer.error = True
        self._record(ParseError(
            kind=kind,
            message=message,
            position=self.lexer.token.position,
            expression=self.expression,
        ))

    # Rules

    def parse(self) -> T:
        """Prime the lookahead and parse the whole input."""
        self.lexer.advance()
        try:
            value = self.parse_expression()
        except RecursionError:
            # max_depth assumes the whole stack; callers nested inside a
            # resolver may run out first
            self.error(
                "limit",
                f"Error: nesting depth {self.depth} exceeds the available stack\n",
            )
            self._drain()
            value = self.failure()

        token = self.lexer.token
        if token.type is not TokenType.END and not self.aborted:
            self.error("syntax", f"Error: unexpected {token.describe()} after end of expression\n")
        return value

    def parse_expression(self) -> T:
        return self.parse_or()

    def parse_or(self) -> T:
        value = self.parse_and()
        while self.lexer.token.type is TokenType.OR:
            self.lexer.advance()
            skip = self.skips_operand(TokenType.OR, value)
            self._enter_skip(skip)
            right = self.parse_and()
            self._leave_skip(skip)
            value = self.disjunction(value, right)
        return value

    def parse_and(self) -> T:
        value = self.parse_not()
        while self.lexer.token.type is TokenType.AND:
            self.lexer.advance()
            skip = self.skips_operand(TokenType.AND, value)
            self._enter_skip(skip)
            right = self.parse_not()
            self._leave_skip(skip)
            value = self.conjunction(value, right)
        return value

    def parse_not(self) -> T:
        count = 0
        while self.lexer.token.type is TokenType.NOT:
            count += 1
            self.lexer.advance()

        value = self.parse_primary()

        # negate if odd
        if count % 2:
            value = self.negate(value)
        return value

    def parse_primary(self) -> T:
        token = self.lexer.token

        if token.type is TokenType.IDENTIFIER:
            value = self.identifier(token.text)
            self.lexer.advance()
            return value

        if token.type is TokenType.LPAREN:
            if self.depth >= self.config.max_depth:
                self._abort()
                return self.failure()

            self.lexer.advance()  # consume '('
            self.depth += 1
            value = self.parse_expression()
            self.depth -= 1

            if self.lexer.token.type is not TokenType.RPAREN:
                if not self.aborted:
                    self.error(
                        "syntax",
                        f"Error: expected ')', found: {self.lexer.token.describe()}\n",
                    )
                return self.failure()
            self.lexer.advance()  # consume ')'
            return value

        if not self.aborted:
            self.error("syntax", "Error: expected identifier or '('\n")
        return self.failure()

    def _abort(self) -> None:
        self.error(
            "limit",
            f"Error: maximum nesting depth of {self.config.max_depth} exceeded\n",
        )
        self._drain()

    def _drain(self) -> None:
        logger.debug("Abandoning %r at offset %d", self.expression, self.lexer.token.position)
        self.aborted = True
        self.lexer.pos = len(self.expression)
        self.lexer.advance()

    # Skip tracking, used by subclasses that avoid work on decided operands

    def _enter_skip(self, skip: bool) -> None:
        if skip:
            self._skipping += 1

    def _leave_skip(self, skip: bool) -> None:
        if skip:
            self._skipping -= 1

    @property
    def skipping(self) -> bool:
        return self._skipping > 0
