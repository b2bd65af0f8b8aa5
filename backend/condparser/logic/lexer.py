"""
Tokenizer for condition expressions.

Produces one token of lookahead at a time from the raw expression text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..config import DEFAULT_CONFIG, ParserConfig

logger = logging.getLogger("condparser.lexer")

WHITESPACE = frozenset(" \t\n\v\f\r")

TWO_CHAR_OPERATORS = {
    "&&": "AND",
    "||": "OR",
}

SINGLE_CHAR_TOKENS = {
    "!": "NOT",
    "(": "LPAREN",
    ")": "RPAREN",
}


class TokenType(Enum):
    IDENTIFIER = "ID"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    NOT = "NOT"
    AND = "AND"
    OR = "OR"
    END = "END"


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    type: TokenType
    text: str = ""
    position: int = 0

    def describe(self) -> str:
        """Render the token as it appears in error messages."""
        if self.type is TokenType.IDENTIFIER:
            return f"ID [{self.text}]"
        return self.type.value


@dataclass
class ParseError:
    """Represents a diagnostic raised while reading an expression."""

    kind: str  # lexical | syntax | limit | truncation
    message: str
    position: int
    expression: str
    severity: str = "error"

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message.rstrip("\n"),
            "position": self.position,
        }

    def __str__(self) -> str:
        return self.message.rstrip("\n")


DiagnosticSink = Callable[[ParseError], None]


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or ("0" <= c <= "9")


class Lexer:
    """
    Cursor over an expression with a single lookahead token.

    The lookahead in ``token`` always describes the text starting at the
    cursor's last read position; ``advance`` is the only operation that
    moves the cursor. Unknown characters are reported, skipped, and lexing
    resumes, so ``advance`` always yields a usable token. Once set, the
    ``error`` flag stays set for the lifetime of the lexer.
    """

    def __init__(
        self,
        expression: str,
        config: Optional[ParserConfig] = None,
        on_diagnostic: Optional[DiagnosticSink] = None,
    ):
        self.expression = expression
        self.config = config or DEFAULT_CONFIG
        self.pos = 0
        self.error = False
        self.token = Token(TokenType.END, position=0)
        self._on_diagnostic = on_diagnostic

    def _report(self, kind: str, message: str, position: int, severity: str = "error") -> None:
        if severity == "error":
            self.error = True
        if self._on_diagnostic is not None:
            self._on_diagnostic(ParseError(
                kind=kind,
                message=message,
                position=position,
                expression=self.expression,
                severity=severity,
            ))

    def advance(self) -> Token:
        """Read the next token into ``token`` and return it."""
        text = self.expression
        length = len(text)

        while True:
            while self.pos < length and text[self.pos] in WHITESPACE:
                self.pos += 1

            start = self.pos
            if start >= length:
                self.token = Token(TokenType.END, position=start)
                return self.token

            pair = text[start:start + 2]
            if pair in TWO_CHAR_OPERATORS:
                self.pos += 2
                self.token = Token(TokenType[TWO_CHAR_OPERATORS[pair]], position=start)
                return self.token

            c = text[start]
            if c in SINGLE_CHAR_TOKENS:
                self.pos += 1
                self.token = Token(TokenType[SINGLE_CHAR_TOKENS[c]], position=start)
                return self.token

            if _is_alpha(c):
                self.token = self._read_identifier(start)
                return self.token

            self._report("lexical", f"Unknown character: {c}\n", start)
            self.pos += 1

    def _read_identifier(self, start: int) -> Token:
        text = self.expression
        end = start
        while end < len(text) and _is_alnum(text[end]):
            end += 1
        self.pos = end

        limit = self.config.max_identifier_length
        name = text[start:end]
        if len(name) > limit:
            stored = name[:limit]
            logger.debug("Identifier at %d truncated to %r", start, stored)
            if self.config.report_truncation:
                self._report(
                    "truncation",
                    f"Warning: identifier '{name}' truncated to '{stored}'\n",
                    start,
                    severity="warning",
                )
            name = stored

        return Token(TokenType.IDENTIFIER, text=name, position=start)
