from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Optional, Sequence

from mathsolver.arithmetic import ArithmeticFormat
from mathsolver.config import SolverConfig
from mathsolver.errors import ConfigError, FormatConfigError, MathSolverError
from mathsolver.solver import MathSolver, split_assignment
from mathsolver.utils.print_utils import format_expression, number_to_text, pformat_ast

logger = logging.getLogger("mathsolver")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mathsolver",
        description="Evaluate infix or LaTeX math expressions, optionally step by step.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    mathsolver "2 + 3 * 4"
    mathsolver --steps --mode round --precision 2 "\\frac{1}{3} + \\frac{1}{6}"
    mathsolver --var x=2 "\\sum_{i=1}^{x}{i^2}"
    mathsolver --file session.txt          # one expression or 'name = expr' per line
        """,
    )
    parser.add_argument("expressions", nargs="*", metavar="EXPR",
                        help="expressions to evaluate, in order, sharing one variable table")
    parser.add_argument("--file", "-f", help="read expressions from a file, one per line")
    parser.add_argument("--steps", action="store_true", help="print every calculation step")
    parser.add_argument("--latex", action="store_true",
                        help="print each expression as LaTeX and use LaTeX in steps")
    parser.add_argument("--ast", action="store_true", help="print the parsed tree")
    parser.add_argument("--mode", choices=["none", "truncate", "round"],
                        help="arithmetic formatting applied after every operation")
    parser.add_argument("--precision", type=int, default=None,
                        help="decimal places (or significant digits with --significant)")
    parser.add_argument("--significant", action="store_true",
                        help="interpret --precision as significant digits")
    parser.add_argument("--var", action="append", default=[], metavar="NAME=VALUE",
                        help="define a variable; may be repeated")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def load_config(args: argparse.Namespace) -> SolverConfig:
    """Config file first, then command-line overrides."""
    config = SolverConfig.from_file(args.config) if args.config else SolverConfig()
    if args.mode is not None or args.precision is not None or args.significant:
        current = config.arithmetic
        arithmetic = ArithmeticFormat.from_options(
            args.mode if args.mode is not None else current.mode,
            args.precision if args.precision is not None else current.precision,
            args.significant or current.significant,
        )
        config = config.with_arithmetic(arithmetic)
    if args.latex:
        config = SolverConfig(config.arithmetic, config.decimal_precision, "latex")
    return config


def parse_assignment(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")
    return name.strip(), value.strip()


def read_lines(path: str) -> list[str]:
    with open(path, "r", encoding="utf-8") as f:
        return f.read().splitlines()


def run_expression(solver: MathSolver, line: str, args: argparse.Namespace) -> None:
    text = line.strip()
    if not text or text.startswith("#"):
        return

    assignment = split_assignment(text)
    if assignment is not None:
        value = solver.run_line(text)
        print(f"{assignment[0]} = {number_to_text(value)}")
        return

    if args.ast:
        print(pformat_ast(solver.parse(text)))
    if args.latex:
        print(format_expression(solver.parse(text), "latex"))
    if args.steps:
        print(solver.evaluate_with_steps(text))
    else:
        print(solver.evaluate_to_string(text))


def run(solver: MathSolver, lines: Iterable[str], args: argparse.Namespace) -> int:
    status = 0
    for line in lines:
        try:
            run_expression(solver, line, args)
        except MathSolverError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            status = 1
    return status


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point; returns the process exit status."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.expressions and not args.file:
        parser.error("no expressions given (pass EXPR arguments or --file)")

    try:
        solver = MathSolver(load_config(args))
        for assignment in args.var:
            name, value = parse_assignment(assignment)
            solver.set_variable(name, solver.evaluate(value))
        lines = list(args.expressions)
        if args.file:
            lines.extend(read_lines(args.file))
    except (ConfigError, FormatConfigError, ValueError, OSError, MathSolverError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.debug("Evaluating %d line(s) with %s", len(lines), solver.arithmetic.describe())
    return run(solver, lines, args)


if __name__ == "__main__":
    sys.exit(main())
