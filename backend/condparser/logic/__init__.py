"""
Logic engine for condparser.

Provides tokenizing, single-pass evaluation, tree compilation and analysis
of condition expressions.
"""

from .lexer import Lexer, ParseError, Token, TokenType
from .evaluator import (
    ConditionError,
    EvaluationResult,
    ExpressionEvaluator,
    evaluate,
    evaluate_bool,
    evaluate_strict,
    make_resolver,
)
from .parser import CompiledExpression, ExpressionParser, compile_expression
from .analyzer import AnalysisResult, LogicAnalyzer

__all__ = [
    "Lexer",
    "ParseError",
    "Token",
    "TokenType",
    "ConditionError",
    "EvaluationResult",
    "ExpressionEvaluator",
    "evaluate",
    "evaluate_bool",
    "evaluate_strict",
    "make_resolver",
    "CompiledExpression",
    "ExpressionParser",
    "compile_expression",
    "AnalysisResult",
    "LogicAnalyzer",
]
