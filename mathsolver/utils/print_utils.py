from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Literal

from mathsolver.utils.ast_utils import Node, strip_positions

Notation = Literal["plain", "latex"]
NOTATIONS = ("plain", "latex")

# Precedence tiers, lowest binds loosest
ADDITIVE = 1
MULTIPLICATIVE = 2
EXPONENT = 3
ATOM = 4

_PLAIN_OPERATORS = {"add": "+", "sub": "-", "mul": "*", "div": "/"}
_LATEX_OPERATORS = {"add": "+", "sub": "-", "mul": "\\cdot"}


def number_to_text(value: Decimal) -> str:
    """Render a Decimal in plain positional notation without trailing zeros.

    Examples
    --------
    >>> from decimal import Decimal
    >>> number_to_text(Decimal("2.500"))
    '2.5'
    >>> number_to_text(Decimal("1.23E+3"))
    '1230'
    >>> number_to_text(Decimal("-0.00"))
    '0'
    """
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def _is_negative_literal(node: Node) -> bool:
    return node[0] == "num" and node.value < 0


def precedence(node: Node, notation: Notation = "plain") -> int:
    """Return the precedence tier of *node* when printed in *notation*.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> precedence(parse("1 + 2")), precedence(parse("1 / 2")), precedence(parse("1 / 2"), "latex")
    (1, 2, 4)
    """
    tag = node[0]
    if tag == "num":
        return ADDITIVE if node.value < 0 else ATOM
    if tag in ("add", "sub"):
        return ADDITIVE
    if tag == "div":
        # \frac{}{} delimits its own operands
        return ATOM if notation == "latex" else MULTIPLICATIVE
    if tag == "mul":
        return MULTIPLICATIVE
    if tag == "pow":
        return EXPONENT
    return ATOM


class ExpressionPrinter:
    """Render an AST as plain infix text or LaTeX markup.

    Inserts the minimal parentheses needed for the output to parse back
    into an equivalent tree: a child is wrapped when its tier is below its
    parent's, when it is the right operand of ``-`` or ``/`` at the same
    tier, or when it is the base of an exponent and itself an exponent.

    Parameters
    ----------
    notation : {"plain", "latex"}
        Output notation.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> ExpressionPrinter("plain").format(parse("(2 ^ 3) ^ 2"))
    '(2^3)^2'
    >>> ExpressionPrinter("latex").format(parse("\\\\frac{1}{2} * x"))
    '\\\\frac{1}{2} \\\\cdot x'
    """

    def __init__(self, notation: Notation = "plain") -> None:
        if notation not in NOTATIONS:
            raise ValueError(f"Unknown notation '{notation}', expected one of {NOTATIONS}")
        self.notation = notation
        self.latex = notation == "latex"
        self.handlers: dict[str, Callable[[Node], str]] = {
            "num": self.format_number,
            "var": self.format_variable,
            "add": self.format_binary,
            "sub": self.format_binary,
            "mul": self.format_binary,
            "div": self.format_division,
            "pow": self.format_power,
            "paren": self.format_parenthesis,
            "call": self.format_function,
            "fact": self.format_factorial,
            "sum": self.format_iterator,
            "prod": self.format_iterator,
        }

    def format(self, node: Node) -> str:
        return self.handlers[node[0]](node)

    def wrap(self, child: Node, parent_tier: int, strict: bool = False) -> str:
        text = self.format(child)
        tier = precedence(child, self.notation)
        if tier < parent_tier or (strict and tier == parent_tier):
            return f"({text})"
        return text

    def format_number(self, node: Node) -> str:
        return number_to_text(node.value)

    def format_variable(self, node: Node) -> str:
        if self.latex and node.name in ("pi", "phi"):
            return "\\" + node.name
        return node.name

    def format_binary(self, node: Node) -> str:
        tag = node[0]
        tier = precedence(node, self.notation)
        left = self.wrap(node.left, tier)
        if tag == "add" and _is_negative_literal(node.right):
            return f"{left} - {number_to_text(-node.right.value)}"
        # the parser is left-associative, so a same-tier right operand needs parentheses
        right = self.wrap(node.right, tier, strict=True)
        operators = _LATEX_OPERATORS if self.latex else _PLAIN_OPERATORS
        return f"{left} {operators[tag]} {right}"

    def format_division(self, node: Node) -> str:
        if self.latex:
            return f"\\frac{{{self.format(node.left)}}}{{{self.format(node.right)}}}"
        left = self.wrap(node.left, MULTIPLICATIVE)
        right = self.wrap(node.right, MULTIPLICATIVE, strict=True)
        return f"{left} / {right}"

    def format_power(self, node: Node) -> str:
        base = self.format(node.left)
        if precedence(node.left, self.notation) < ATOM:
            base = f"({base})"
        if self.latex:
            return f"{base}^{{{self.format(node.right)}}}"
        return f"{base}^{self.wrap(node.right, EXPONENT)}"

    def format_parenthesis(self, node: Node) -> str:
        return f"({self.format(node.inner)})"

    def format_function(self, node: Node) -> str:
        args = ", ".join(self.format(arg) for arg in node.args)
        if self.latex and len(node.args) == 1:
            return f"\\{node.name}{{{args}}}"
        return f"{node.name}({args})"

    def format_factorial(self, node: Node) -> str:
        return f"{self.wrap(node.inner, ATOM)}!"

    def format_iterator(self, node: Node) -> str:
        # Same markup in both notations; the parser only reads it as LaTeX
        start = self.format(node.start)
        end = self.format(node.end)
        body = self.format(node.body)
        return f"\\{node[0]}_{{{node.variable}={start}}}^{{{end}}}{{{body}}}"


def format_expression(node: Node, notation: Notation = "plain") -> str:
    """Render *node* as text.

    Parameters
    ----------
    node : Node
        Root of the tree to print.
    notation : {"plain", "latex"}, default "plain"
        ``"plain"`` gives infix text such as ``2 + 3 * 4``; ``"latex"``
        uses ``\\cdot``, ``\\frac{}{}`` and ``^{}``.

    Returns
    -------
    str
        Text that parses back to a value-equivalent tree.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> format_expression(parse("2+3*4"))
    '2 + 3 * 4'
    >>> format_expression(parse("1/(2+x)^2"), "latex")
    '\\\\frac{1}{(2 + x)^{2}}'
    """
    return ExpressionPrinter(notation).format(node)


def _pformat(value: Any, indent: int = 0) -> str:
    """Pretty-format a position-free AST dump with indentation.

    Short tuples that fit within 80 columns stay on one line; longer ones
    are expanded one child per line.
    """
    prefix = "  " * indent

    if isinstance(value, Decimal):
        return f"{prefix}{number_to_text(value)}"

    if isinstance(value, str):
        return f"{prefix}{value!r}"

    if isinstance(value, (list, tuple)):
        opener, closer = ("[", "]") if isinstance(value, list) else ("(", ")")
        if not value:
            return f"{prefix}{opener}{closer}"
        oneline = f"{prefix}{opener}{', '.join(_pformat(v).strip() for v in value)}{closer}"
        if len(oneline) <= 80 and "\n" not in oneline:
            return oneline
        lines = [f"{prefix}{opener}"]
        for item in value:
            lines.append(f"{_pformat(item, indent + 1)},")
        lines.append(f"{prefix}{closer}")
        return "\n".join(lines)

    return f"{prefix}{value!r}"


def pformat_ast(node: Node) -> str:
    """Return an indented dump of *node* for debugging (``--ast``).

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> print(pformat_ast(parse("2 * x")))
    ('mul', ('num', 2), ('var', 'x'))
    """
    return _pformat(strip_positions(node))


def format_steps(steps) -> str:
    """Join calculation steps one per line as ``* Step N: ...``."""
    return "\n".join(f"* Step {index}: {step}" for index, step in enumerate(steps, start=1))


def format_report(result) -> str:
    """Render a ``CalculationResult`` as the multi-line ``--steps`` report.

    Examples
    --------
    >>> from mathsolver.solver import MathSolver
    >>> print(format_report(MathSolver().evaluate_with_steps("1 + 2")))
    Solving   : 1 + 2
    Mode      : none
    Precision : Maximum
    Start Calculation
    * Step 1: 1 + 2 => Add 1 and 2, with no formatting => 3
    End Calculation
    Result: 3
    """
    lines = [
        f"Solving   : {result.expression}",
        f"Mode      : {result.mode}",
        f"Precision : {result.precision_info}",
        "Start Calculation",
    ]
    if result.steps:
        lines.append(format_steps(result.steps))
    lines.append("End Calculation")
    lines.append(f"Result: {number_to_text(result.formatted_value)}")
    return "\n".join(lines)
