from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, DecimalException, localcontext
from typing import Callable, Iterator, MutableMapping, NamedTuple, Optional

from mathsolver.arithmetic import NO_FORMAT, ArithmeticFormat
from mathsolver.errors import EvalError, SourcePosition
from mathsolver.runtime import (is_effectively_integer
                                , lookup_constant
                                , lookup_function
                                , real_power)
from mathsolver.utils.ast_utils import Node
from mathsolver.utils.print_utils import ExpressionPrinter, Notation, number_to_text

logger = logging.getLogger(__name__)

Variables = MutableMapping[str, Decimal]

DEFAULT_PRECISION = 28

_MISSING = object()


@dataclass(frozen=True)
class CalculationStep:
    """One line of a calculation trace.

    Examples
    --------
    >>> str(CalculationStep("2 + 3", "Add 2 and 3, with no formatting", "5"))
    '2 + 3 => Add 2 and 3, with no formatting => 5'
    """

    expression: str
    operation: str
    result: str

    def __str__(self) -> str:
        return f"{self.expression} => {self.operation} => {self.result}"


class StepResult(NamedTuple):
    value: Decimal
    steps: list


class BaseEvaluator:
    """Arithmetic shared by the direct and the step-recording evaluators.

    Holds the variable table, the formatting policy and the decimal
    precision, and implements each primitive once (checks, formatting,
    error messages).  Subclasses provide ``self.handlers``, a table from
    AST tag to a method taking the node.

    Parameters
    ----------
    variables : MutableMapping[str, Decimal] or None
        Caller-owned variable table.  Shared by reference; summations and
        products rebind their iteration variable in it for the duration of
        the loop and restore it afterwards.
    fmt : ArithmeticFormat or None
        Formatting applied after every arithmetic primitive.  Defaults to
        no formatting.
    precision : int, default 28
        Significant digits of the decimal context used for evaluation.
    """

    handlers: dict[str, Callable]

    def __init__(self, variables: Optional[Variables] = None,
                 fmt: Optional[ArithmeticFormat] = None,
                 precision: int = DEFAULT_PRECISION) -> None:
        self.variables = variables if variables is not None else {}
        self.fmt = fmt if fmt is not None else NO_FORMAT
        self.precision = precision

    def evaluate(self, node: Node):
        with localcontext() as ctx:
            ctx.prec = self.precision
            return self.visit(node)

    def visit(self, node: Node):
        return self.handlers[node[0]](node)

    def format(self, value: Decimal) -> Decimal:
        return self.fmt.apply(value)

    # Primitives
    def lookup(self, name: str, position: SourcePosition) -> Decimal:
        constant = lookup_constant(name)
        if constant is not None:
            # unary plus rounds the literal to the context precision
            return self.format(+constant)
        value = self.variables.get(name, _MISSING)
        if value is _MISSING:
            raise EvalError(f"Variable '{name}' is not defined", position)
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value

    def arithmetic(self, tag: str, left: Decimal, right: Decimal, position: SourcePosition) -> Decimal:
        if tag == "div" and right == 0:
            raise EvalError("Division by zero", position)
        try:
            if tag == "add":
                raw = left + right
            elif tag == "sub":
                raw = left - right
            elif tag == "mul":
                raw = left * right
            else:
                raw = left / right
        except DecimalException as exc:
            raise EvalError(f"Arithmetic error: {type(exc).__name__}", position) from exc
        return self.format(raw)

    def power(self, base: Decimal, exponent: Decimal, position: SourcePosition) -> Decimal:
        if exponent == 0:
            return Decimal(1)
        if base == 0:
            return Decimal(0)
        if is_effectively_integer(exponent):
            try:
                raw = base ** int(exponent.to_integral_value())
            except DecimalException as exc:
                raise EvalError(f"Arithmetic error: {type(exc).__name__}", position) from exc
        else:
            raw = real_power(base, exponent, position)
        return self.format(raw)

    def call(self, name: str, args: list, position: SourcePosition):
        function = lookup_function(name, position)
        return function, self.format(function(args, position))

    def factorial(self, value: Decimal, position: SourcePosition) -> tuple[int, Decimal]:
        if value < 0 or not is_effectively_integer(value):
            raise EvalError("Factorial is only defined for non-negative integers", position)
        n = int(value.to_integral_value())
        result = Decimal(1)
        try:
            for i in range(2, n + 1):
                result *= i
        except DecimalException as exc:
            raise EvalError(f"Arithmetic error: {type(exc).__name__}", position) from exc
        return n, self.format(result)

    def iteration_bounds(self, tag: str, start: Decimal, end: Decimal,
                         position: SourcePosition) -> tuple[int, int]:
        if not (is_effectively_integer(start) and is_effectively_integer(end)):
            kind = "Summation" if tag == "sum" else "Product"
            raise EvalError(f"{kind} bounds must be integers", position)
        first, last = int(start.to_integral_value()), int(end.to_integral_value())
        logger.debug("%s over %d..%d", tag, first, last)
        return first, last

    def accumulate(self, tag: str, total: Decimal, term: Decimal, position: SourcePosition) -> Decimal:
        return self.arithmetic("add" if tag == "sum" else "mul", total, term, position)

    @contextmanager
    def scoped_binding(self, name: str) -> Iterator[Callable[[Decimal], None]]:
        """Rebind *name* for the body of a ``with`` block.

        Yields a setter; on exit the previous value is put back, or the
        name removed if it was unbound, whether the block finished or
        raised.
        """
        previous = self.variables.get(name, _MISSING)

        def bind(value: Decimal) -> None:
            self.variables[name] = value

        try:
            yield bind
        finally:
            if previous is _MISSING:
                self.variables.pop(name, None)
            else:
                self.variables[name] = previous


class Evaluator(BaseEvaluator):
    """Evaluate an AST to a single Decimal.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> Evaluator().evaluate(parse("2 ^ 3 ^ 2"))
    Decimal('512')
    >>> Evaluator({"x": Decimal("1.5")}).evaluate(parse("2 * x"))
    Decimal('3.0')
    """

    def __init__(self, variables: Optional[Variables] = None,
                 fmt: Optional[ArithmeticFormat] = None,
                 precision: int = DEFAULT_PRECISION) -> None:
        super().__init__(variables, fmt, precision)
        self.handlers = {
            "num": self.eval_number,
            "var": self.eval_variable,
            "add": self.eval_binary,
            "sub": self.eval_binary,
            "mul": self.eval_binary,
            "div": self.eval_binary,
            "pow": self.eval_power,
            "paren": self.eval_parenthesis,
            "call": self.eval_function,
            "fact": self.eval_factorial,
            "sum": self.eval_iterator,
            "prod": self.eval_iterator,
        }

    def eval_number(self, node: Node) -> Decimal:
        return node.value

    def eval_variable(self, node: Node) -> Decimal:
        return self.lookup(node.name, node.position)

    def eval_binary(self, node: Node) -> Decimal:
        left = self.visit(node.left)
        right = self.visit(node.right)
        return self.arithmetic(node[0], left, right, node.position)

    def eval_power(self, node: Node) -> Decimal:
        base = self.visit(node.left)
        exponent = self.visit(node.right)
        return self.power(base, exponent, node.position)

    def eval_parenthesis(self, node: Node) -> Decimal:
        return self.visit(node.inner)

    def eval_function(self, node: Node) -> Decimal:
        args = [self.visit(arg) for arg in node.args]
        _, value = self.call(node.name, args, node.position)
        return value

    def eval_factorial(self, node: Node) -> Decimal:
        _, value = self.factorial(self.visit(node.inner), node.position)
        return value

    def eval_iterator(self, node: Node) -> Decimal:
        tag = node[0]
        start, end = self.iteration_bounds(tag, self.visit(node.start), self.visit(node.end), node.position)
        total = Decimal(0) if tag == "sum" else Decimal(1)
        with self.scoped_binding(node.variable) as bind:
            for i in range(start, end + 1):
                bind(Decimal(i))
                total = self.accumulate(tag, total, self.visit(node.body), node.position)
        return total


_BINARY_DESCRIPTIONS = {
    "add": "Add {0} and {1}",
    "sub": "Subtract {1} from {0}",
    "mul": "Multiply {0} by {1}",
    "div": "Divide {0} by {1}",
}

_ITERATOR_TEXT = {
    "sum": ("summation", "Calculate each term and sum", "sum + {term}",
            "Add term value {term} to current sum {total}"),
    "prod": ("product", "Calculate each term and multiply", "product * {term}",
             "Multiply term value {term} with current product {total}"),
}


class StepEvaluator(BaseEvaluator):
    """Evaluate an AST and record every intermediate calculation.

    Each handler returns a :class:`StepResult` whose steps are the
    children's steps, left to right, followed by the node's own step when
    it performs arithmetic.

    Parameters
    ----------
    variables, fmt, precision
        As for :class:`BaseEvaluator`.
    notation : {"plain", "latex"}, default "plain"
        Notation of the expression column of each step.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> result = StepEvaluator().evaluate(parse("2 + 3 * 4"))
    >>> result.value
    Decimal('14')
    >>> [str(step) for step in result.steps]
    ['3 * 4 => Multiply 3 by 4, with no formatting => 12', '2 + 3 * 4 => Add 2 and 12, with no formatting => 14']
    """

    def __init__(self, variables: Optional[Variables] = None,
                 fmt: Optional[ArithmeticFormat] = None,
                 precision: int = DEFAULT_PRECISION,
                 notation: Notation = "plain") -> None:
        super().__init__(variables, fmt, precision)
        self.printer = ExpressionPrinter(notation)
        self.handlers = {
            "num": self.step_number,
            "var": self.step_variable,
            "add": self.step_binary,
            "sub": self.step_binary,
            "mul": self.step_binary,
            "div": self.step_binary,
            "pow": self.step_power,
            "paren": self.step_parenthesis,
            "call": self.step_function,
            "fact": self.step_factorial,
            "sum": self.step_iterator,
            "prod": self.step_iterator,
        }

    def step(self, node: Node, operation: str, value: Decimal, formatted: bool = True) -> CalculationStep:
        if formatted:
            operation = f"{operation}, {self.fmt.describe()}"
        return CalculationStep(self.printer.format(node), operation, number_to_text(value))

    def step_number(self, node: Node) -> StepResult:
        return StepResult(node.value, [])

    def step_variable(self, node: Node) -> StepResult:
        value = self.lookup(node.name, node.position)
        step = CalculationStep(node.name, f"Substitute variable {node.name}", number_to_text(value))
        return StepResult(value, [step])

    def step_binary(self, node: Node) -> StepResult:
        left = self.visit(node.left)
        right = self.visit(node.right)
        tag = node[0]
        value = self.arithmetic(tag, left.value, right.value, node.position)
        operation = _BINARY_DESCRIPTIONS[tag].format(number_to_text(left.value), number_to_text(right.value))
        return StepResult(value, left.steps + right.steps + [self.step(node, operation, value)])

    def step_power(self, node: Node) -> StepResult:
        base = self.visit(node.left)
        exponent = self.visit(node.right)
        value = self.power(base.value, exponent.value, node.position)
        if exponent.value == 0:
            operation = "Any number raised to power 0 is 1"
        elif base.value == 0:
            operation = "0 raised to any non-zero power is 0"
        elif exponent.value == 1:
            operation = "Any number raised to power 1 is the number itself"
        else:
            operation = f"Raise {number_to_text(base.value)} to the power of {number_to_text(exponent.value)}"
        return StepResult(value, base.steps + exponent.steps + [self.step(node, operation, value)])

    def step_parenthesis(self, node: Node) -> StepResult:
        inner = self.visit(node.inner)
        steps = list(inner.steps)
        if steps:
            steps.append(self.step(node, "Evaluate parentheses", inner.value, formatted=False))
        return StepResult(inner.value, steps)

    def step_function(self, node: Node) -> StepResult:
        results = [self.visit(arg) for arg in node.args]
        steps = [step for result in results for step in result.steps]
        args = [result.value for result in results]
        function, value = self.call(node.name, args, node.position)
        operation = function.describe([number_to_text(arg) for arg in args])
        steps.append(self.step(node, operation, value))
        return StepResult(value, steps)

    def step_factorial(self, node: Node) -> StepResult:
        inner = self.visit(node.inner)
        n, value = self.factorial(inner.value, node.position)
        return StepResult(value, inner.steps + [self.step(node, f"Calculate factorial of {n}", value)])

    def step_iterator(self, node: Node) -> StepResult:
        tag = node[0]
        kind, setup_result, term_expression, term_operation = _ITERATOR_TEXT[tag]
        start_result = self.visit(node.start)
        end_result = self.visit(node.end)
        start, end = self.iteration_bounds(tag, start_result.value, end_result.value, node.position)

        expression = self.printer.format(node)
        var = node.variable
        steps = start_result.steps + end_result.steps
        steps.append(CalculationStep(expression, f"Setup {kind} with {var} from {start} to {end}", setup_result))

        total = Decimal(0) if tag == "sum" else Decimal(1)
        with self.scoped_binding(var) as bind:
            for i in range(start, end + 1):
                bind(Decimal(i))
                steps.append(CalculationStep(f"{var} = {i}", f"Set iteration variable {var} to {i}", str(i)))
                term = self.visit(node.body)
                steps.extend(term.steps)
                new_total = self.accumulate(tag, total, term.value, node.position)
                term_text = number_to_text(term.value)
                operation = term_operation.format(term=term_text, total=number_to_text(total))
                steps.append(CalculationStep(term_expression.format(term=term_text),
                                             f"{operation}, {self.fmt.describe()}",
                                             number_to_text(new_total)))
                total = new_total

        steps.append(CalculationStep(expression, f"Complete {kind} from {start} to {end}", number_to_text(total)))
        return StepResult(total, steps)


def evaluate(ast: Node, variables: Optional[Variables] = None,
             fmt: Optional[ArithmeticFormat] = None,
             precision: int = DEFAULT_PRECISION) -> Decimal:
    """Evaluate *ast* to a Decimal.

    Parameters
    ----------
    ast : Node
        Tree returned by :func:`mathsolver.parser.parse`.
    variables : MutableMapping[str, Decimal] or None
        Variable table; read, and transiently rebound by summations.
    fmt : ArithmeticFormat or None
        Formatting policy applied after every primitive.
    precision : int, default 28
        Decimal context precision.

    Raises
    ------
    EvalError
        On undefined variables, division by zero, domain violations or
        non-integer factorial/iteration bounds.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> evaluate(parse("\\\\sum_{i=1}^{5}{i}"))
    Decimal('15')
    """
    return Evaluator(variables, fmt, precision).evaluate(ast)


def evaluate_with_steps(ast: Node, variables: Optional[Variables] = None,
                        fmt: Optional[ArithmeticFormat] = None,
                        precision: int = DEFAULT_PRECISION,
                        notation: Notation = "plain") -> StepResult:
    """Evaluate *ast* and return ``(value, steps)``.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> value, steps = evaluate_with_steps(parse("5!"))
    >>> value, steps[-1].operation
    (Decimal('120'), 'Calculate factorial of 5, with no formatting')
    """
    return StepEvaluator(variables, fmt, precision, notation).evaluate(ast)
