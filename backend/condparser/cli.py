"""
Command line interface for condparser.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from . import __version__
from .config import ConfigError, ParserConfig
from .flags import FlagEngine, FlagSet
from .logic.analyzer import LogicAnalyzer
from .logic.evaluator import ExpressionEvaluator

EXIT_TRUE = 0
EXIT_FALSE = 1
EXIT_ERROR = 2

# Identifier "true" resolves to true, everything else to false.
REFERENCE_CASES: Tuple[Tuple[str, bool], ...] = (
    ("true", True),
    ("false", False),
    ("true && true", True),
    ("true && false", False),
    ("false || true", True),
    ("false || false", False),
    ("!true", False),
    ("!false", True),
    ("true || false && false", True),
    ("true && true || false", True),
    ("false || true && false", False),
    ("!(true && false)", True),
    ("!true || false", False),
    ("!(false || true) && true", False),
    ("true && (false || true)", True),
    ("(true || false) && false", False),
    ("!(true && true) || (false && true)", False),
    ("!(false || false) && (true || false)", True),
    ("(!true || true) && (true || !false)", True),
    ("true || !(false && true)", True),
    ("(true || false) && !(true && false)", True),
    ("!(true && true) || false", False),
    ("!((true || false) && (true && true))", False),
    ("!!true", True),
    ("!((true || false) && !(false || true))", True),
    (
        "(!((true && false) || (true || false) && !(false || !true)) && (true || false && true)"
        " || (!(true && (false || !false)) || !!false))",
        False,
    ),
)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _add_condition_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-t",
        "--true",
        dest="true_names",
        action="append",
        default=[],
        metavar="NAME",
        help="Identifier that resolves to true (repeatable).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="condparser")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--config", type=str, default=None, help="Parser settings YAML file.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_p = subparsers.add_parser("eval", help="Evaluate an expression.")
    eval_p.add_argument("expression")
    _add_condition_flags(eval_p)
    eval_p.add_argument(
        "--short-circuit",
        action="store_true",
        help="Skip resolving operands whose result is already decided.",
    )
    eval_p.add_argument("--json", action="store_true", help="Print the result as JSON.")

    check_p = subparsers.add_parser("check", help="Validate and analyse an expression.")
    check_p.add_argument("expression")
    check_p.add_argument("--json", action="store_true", help="Print the analysis as JSON.")

    flags_p = subparsers.add_parser("flags", help="Resolve a flag file.")
    flags_p.add_argument("file")
    _add_condition_flags(flags_p)
    flags_p.add_argument("--validate", action="store_true", help="Only check the rules.")
    flags_p.add_argument("--json", action="store_true", help="Print the values as JSON.")

    subparsers.add_parser("selftest", help="Run the built-in scenario table.")

    return parser


def parse_args(argv: List[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _load_config(args: argparse.Namespace) -> ParserConfig:
    if args.config is None:
        return ParserConfig()
    return ParserConfig.from_file(args.config)


def cmd_eval(args: argparse.Namespace, config: ParserConfig) -> int:
    if args.short_circuit:
        config = config.model_copy(update={"short_circuit": True})

    names = frozenset(args.true_names)
    result = ExpressionEvaluator(config).evaluate(args.expression, names)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for diagnostic in result.diagnostics:
            _eprint(str(diagnostic))
        print("true" if result.value else "false")

    if not result.ok:
        return EXIT_ERROR
    return EXIT_TRUE if result.value else EXIT_FALSE


def cmd_check(args: argparse.Namespace, config: ParserConfig) -> int:
    analysis = LogicAnalyzer(config).analyze(args.expression)
    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        print(analysis.summary())
    return EXIT_TRUE if analysis.valid else EXIT_ERROR


def cmd_flags(args: argparse.Namespace, config: ParserConfig) -> int:
    flag_set = FlagSet.from_file(args.file)
    if args.config is not None:
        flag_set = flag_set.model_copy(update={"parser": config})
    engine = FlagEngine(flag_set)

    if args.validate:
        issues = engine.validate()
        for issue in issues:
            _eprint(f"{issue.severity}: {issue}")
        if any(i.severity == "error" for i in issues):
            return EXIT_ERROR
        print(f"{len(flag_set.flags)} flag(s) OK")
        return EXIT_TRUE

    resolution = engine.resolve(args.true_names)
    if args.json:
        print(json.dumps(resolution.to_dict(), indent=2, default=str))
    else:
        for error in resolution.errors:
            _eprint(f"error: {error}")
        for name, value in resolution.values.items():
            print(f"{name} = {value}")
    return EXIT_TRUE if resolution.valid else EXIT_ERROR


def cmd_selftest(args: argparse.Namespace, config: ParserConfig) -> int:
    evaluator = ExpressionEvaluator(config)
    failures = 0
    for index, (expression, expected) in enumerate(REFERENCE_CASES):
        print(f"Testing: {expression}")
        result = evaluator.evaluate(expression, lambda name: name == "true", _eprint_fragment)
        if result.value != expected or not result.ok:
            _eprint(f"Test {index} failed: {expression}")
            failures += 1

    if failures:
        print("Some tests failed!")
        return EXIT_FALSE
    print("All tests passed!")
    return EXIT_TRUE


def _eprint_fragment(message: str) -> None:
    sys.stderr.write(message)


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_ERROR

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = _load_config(args)
        if args.command == "eval":
            return cmd_eval(args, config)
        if args.command == "check":
            return cmd_check(args, config)
        if args.command == "flags":
            return cmd_flags(args, config)
        if args.command == "selftest":
            return cmd_selftest(args, config)
    except (ConfigError, OSError) as e:
        _eprint(f"error: {e}")
        return EXIT_ERROR

    return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
