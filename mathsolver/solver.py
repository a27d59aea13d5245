from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from mathsolver.arithmetic import ArithmeticFormat, ArithmeticMode
from mathsolver.config import SolverConfig
from mathsolver.errors import EvalError, ParseError
from mathsolver.evaluator import CalculationStep, Evaluator, StepEvaluator
from mathsolver.parser import parse
from mathsolver.utils.ast_utils import Node
from mathsolver.utils.parser_utils import free_variables
from mathsolver.utils.print_utils import format_expression, format_report, number_to_text

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of :meth:`MathSolver.evaluate_with_steps`.

    ``value`` is what the evaluator returned; ``formatted_value`` is the
    same value passed through the session's formatter once more (equal by
    idempotence, kept so callers can display both).
    """

    expression: str
    mode: str
    precision_info: str
    value: Decimal
    formatted_value: Decimal
    steps: list[CalculationStep] = field(default_factory=list)

    def __str__(self) -> str:
        return format_report(self)


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # shortest round-tripping text, not the binary expansion
        return Decimal(repr(value))
    return Decimal(str(value).strip())


class MathSolver:
    """Session facade: a variable table plus a formatting policy.

    Parameters
    ----------
    config : SolverConfig or None
        Arithmetic policy, decimal precision and step notation.  Defaults
        to unformatted arithmetic at 28 digits.

    Examples
    --------
    >>> solver = MathSolver()
    >>> solver.set_variable("x", 4)
    >>> solver.evaluate("sqrt(x) + 1")
    Decimal('3.0')
    >>> solver.set_arithmetic_mode("truncate", 2)
    >>> solver.evaluate_to_string("10 / 3")
    '3.33'
    """

    def __init__(self, config: Optional[SolverConfig] = None) -> None:
        self.config = config if config is not None else SolverConfig()
        self.variables: dict[str, Decimal] = {}

    @property
    def arithmetic(self) -> ArithmeticFormat:
        return self.config.arithmetic

    # Variables
    def set_variable(self, name: str, value: Number) -> None:
        self.variables[name.lower()] = _to_decimal(value)

    def get_variable(self, name: str) -> Decimal:
        key = name.lower()
        if key not in self.variables:
            raise EvalError(f"Variable '{name}' is not defined")
        return self.variables[key]

    def assign(self, name: str, expression: str) -> Decimal:
        """Evaluate *expression* and store the result under *name*."""
        value = self.evaluate(expression)
        self.variables[name.lower()] = value
        logger.debug("Assigned %s = %s", name, number_to_text(value))
        return value

    # Settings
    def set_arithmetic_mode(self, mode: Union[str, ArithmeticMode], precision: int = 0,
                            significant_digits: bool = False) -> None:
        """Switch the formatting policy for subsequent evaluations.

        Raises
        ------
        FormatConfigError
            For negative decimal places or non-positive significant digits.
        """
        arithmetic = ArithmeticFormat.from_options(mode, precision, significant_digits)
        self.config = self.config.with_arithmetic(arithmetic)
        logger.debug("Arithmetic mode set to %s", arithmetic.describe())

    # Evaluation
    def parse(self, expression: str) -> Node:
        try:
            return parse(expression)
        except ParseError as exc:
            logger.debug("Parse failed for %r: %s", expression, exc)
            raise

    def evaluate(self, expression: str) -> Decimal:
        ast = self.parse(expression)
        evaluator = Evaluator(self.variables, self.arithmetic, self.config.decimal_precision)
        try:
            return evaluator.evaluate(ast)
        except EvalError as exc:
            logger.debug("Evaluation failed for %r: %s", expression, exc)
            raise

    def evaluate_to_string(self, expression: str) -> str:
        return number_to_text(self.arithmetic.apply(self.evaluate(expression)))

    def evaluate_with_steps(self, expression: str) -> CalculationResult:
        ast = self.parse(expression)
        evaluator = StepEvaluator(self.variables, self.arithmetic,
                                  self.config.decimal_precision, self.config.notation)
        try:
            value, steps = evaluator.evaluate(ast)
        except EvalError as exc:
            logger.debug("Evaluation failed for %r: %s", expression, exc)
            raise
        logger.debug("Recorded %d step(s) for %r", len(steps), expression)
        return CalculationResult(
            expression=expression,
            mode=self.arithmetic.mode_name,
            precision_info=self.arithmetic.precision_info(),
            value=value,
            formatted_value=self.arithmetic.apply(value),
            steps=steps,
        )

    def format(self, expression: str, notation: str = "plain") -> str:
        return format_expression(self.parse(expression), notation)

    def validate(self, expression: str) -> bool:
        return self.check(expression) is None

    def check(self, expression: str) -> Optional[str]:
        """Return a parse error message for *expression*, or None if it parses."""
        try:
            parse(expression)
        except ParseError as exc:
            return str(exc)
        return None

    def missing_variables(self, expression: str) -> list[str]:
        """Names *expression* reads that are neither constants nor set."""
        return [name for name in free_variables(self.parse(expression)) if name not in self.variables]

    def run_line(self, line: str) -> Optional[Decimal]:
        """Evaluate one line of a script; ``name = expr`` assigns.

        Blank lines and lines starting with ``#`` return None.
        """
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        assignment = split_assignment(text)
        if assignment is not None:
            return self.assign(*assignment)
        return self.evaluate(text)


def split_assignment(line: str) -> Optional[tuple[str, str]]:
    """Return ``(name, expression)`` if *line* reads ``name = expression``.

    Examples
    --------
    >>> split_assignment("r = 2 * 3")
    ('r', '2 * 3')
    >>> split_assignment("2 = 3") is None
    True
    """
    name, sep, rest = line.partition("=")
    if sep and name.strip().isidentifier():
        return name.strip(), rest.strip()
    return None
