"""
Logic Analyzer.

Detects conditions that can never change: always-true and always-false
expressions, found by enumerating their truth table.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import ParserConfig
from .lexer import ParseError
from .parser import ExpressionParser

logger = logging.getLogger("condparser.analyzer")


@dataclass
class AnalysisResult:
    """Result of analysing one expression."""

    expression: str
    valid: bool
    identifiers: List[str] = field(default_factory=list)
    canonical: str = ""
    satisfiable: Optional[bool] = None
    tautology: Optional[bool] = None
    true_assignments: int = 0
    diagnostics: List[ParseError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def contradiction(self) -> Optional[bool]:
        if self.satisfiable is None:
            return None
        return not self.satisfiable

    @property
    def constant(self) -> bool:
        """True when the expression ignores its identifiers entirely."""
        return bool(self.tautology or self.contradiction)

    def summary(self) -> str:
        """Generate a summary of the analysis."""
        lines = [f"Expression: {self.expression}"]
        if not self.valid:
            lines.append("  Status: INVALID")
            for diagnostic in self.diagnostics:
                if diagnostic.is_error:
                    lines.append(f"  - {diagnostic}")
            return "\n".join(lines)

        lines.append(f"  Canonical: {self.canonical}")
        lines.append(f"  Identifiers: {', '.join(self.identifiers) or 'none'}")
        if self.tautology:
            lines.append("  Always true")
        elif self.contradiction:
            lines.append("  Always false")
        elif self.satisfiable is not None:
            total = 2 ** len(self.identifiers)
            lines.append(f"  True for {self.true_assignments} of {total} assignments")
        for warning in self.warnings:
            lines.append(f"  Warning: {warning}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "expression": self.expression,
            "valid": self.valid,
            "canonical": self.canonical,
            "identifiers": self.identifiers,
            "satisfiable": self.satisfiable,
            "tautology": self.tautology,
            "contradiction": self.contradiction,
            "true_assignments": self.true_assignments,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "warnings": self.warnings,
        }


class LogicAnalyzer:
    """
    Analyzes condition expressions for constant results.

    Enumeration is exponential in the number of distinct identifiers, so it
    is skipped above ``max_identifiers``.
    """

    def __init__(self, config: Optional[ParserConfig] = None, max_identifiers: int = 12):
        self.parser = ExpressionParser(config)
        self.max_identifiers = max_identifiers

    def analyze(self, expression: str) -> AnalysisResult:
        """
        Analyze an expression.

        Args:
            expression: The expression to analyze.

        Returns:
            AnalysisResult; truth-table fields stay None when the
            expression is invalid or has too many identifiers.
        """
        compiled = self.parser.parse(expression)
        result = AnalysisResult(
            expression=expression,
            valid=compiled.ok,
            identifiers=compiled.identifiers,
            canonical=str(compiled),
            diagnostics=compiled.diagnostics,
        )
        result.warnings.extend(str(d) for d in compiled.diagnostics if not d.is_error)

        if not compiled.ok:
            return result

        names = result.identifiers
        if len(names) > self.max_identifiers:
            message = (
                f"{len(names)} identifiers exceed the analysis limit of "
                f"{self.max_identifiers}; truth table not enumerated"
            )
            logger.warning("%s: %s", expression, message)
            result.warnings.append(message)
            return result

        true_count = 0
        for values in itertools.product((False, True), repeat=len(names)):
            assignment = dict(zip(names, values))
            if compiled.root.evaluate(assignment.__getitem__, short_circuit=True):
                true_count += 1

        result.true_assignments = true_count
        result.satisfiable = true_count > 0
        result.tautology = true_count == 2 ** len(names)
        return result

    def is_always_true(self, expression: str) -> bool:
        return bool(self.analyze(expression).tautology)

    def is_always_false(self, expression: str) -> bool:
        """Check if a condition is always false (invalid ones count)."""
        result = self.analyze(expression)
        return not result.valid or bool(result.contradiction)
