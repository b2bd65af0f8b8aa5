"""
condparser: boolean condition expressions for runtime configuration.

Evaluates expressions built from identifiers, ``&&``, ``||``, ``!`` and
parentheses, with identifier values supplied by the host.
"""

__version__ = "1.0.0"

from .config import ConfigError, ParserConfig
from .logic import (
    AnalysisResult,
    CompiledExpression,
    ConditionError,
    EvaluationResult,
    ExpressionEvaluator,
    ExpressionParser,
    LogicAnalyzer,
    ParseError,
    compile_expression,
    evaluate,
    evaluate_bool,
    evaluate_strict,
)
from .flags import FlagDefinition, FlagEngine, FlagResolution, FlagRule, FlagSet, load_flags

__all__ = [
    "ConfigError",
    "ParserConfig",
    "AnalysisResult",
    "CompiledExpression",
    "ConditionError",
    "EvaluationResult",
    "ExpressionEvaluator",
    "ExpressionParser",
    "LogicAnalyzer",
    "ParseError",
    "compile_expression",
    "evaluate",
    "evaluate_bool",
    "evaluate_strict",
    "FlagDefinition",
    "FlagEngine",
    "FlagResolution",
    "FlagRule",
    "FlagSet",
    "load_flags",
]
