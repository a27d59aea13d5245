from __future__ import annotations

from decimal import Decimal
from typing import Iterator as IteratorType, Literal, NamedTuple, Union

from mathsolver.errors import SourcePosition


# AST TYPE DEFINITIONS
# The parser produces a tree of tagged named tuples.  Every node is a tuple
# whose first element is a string tag and whose last element is the node's
# SourcePosition; the fields in between are child nodes or scalar leaves.
#
# The tag literals below are the closed vocabulary of the tree.  Every
# operation over the tree (evaluation, step recording, printing) keeps one
# handler per tag; the test suite checks the tables against ExprTag.

BinaryTag = Literal[
    "add", "sub", "mul", "div",   # arithmetic
    "pow",                        # right-associative exponent
]

IteratorTag = Literal[
    "sum",    # \sum_{v=S}^{E}{body}
    "prod",   # \prod_{v=S}^{E}{body}
]

ExprTag = Literal[
    "num", "var",                  # literals / references
    "add", "sub", "mul", "div", "pow",
    "paren",                       # ( inner )
    "call",                        # f(arg, ...)
    "fact",                        # inner!
    "sum", "prod",
]


class Number(NamedTuple):
    tag: Literal["num"]
    value: Decimal
    position: SourcePosition


class Variable(NamedTuple):
    tag: Literal["var"]
    name: str
    position: SourcePosition


class BinaryOp(NamedTuple):
    tag: BinaryTag
    left: "Node"
    right: "Node"
    position: SourcePosition


class Parenthesis(NamedTuple):
    tag: Literal["paren"]
    inner: "Node"
    position: SourcePosition


class Function(NamedTuple):
    tag: Literal["call"]
    name: str
    args: tuple
    position: SourcePosition


class Factorial(NamedTuple):
    tag: Literal["fact"]
    inner: "Node"
    position: SourcePosition


class Iterator(NamedTuple):
    tag: IteratorTag
    variable: str
    start: "Node"
    end: "Node"
    body: "Node"
    position: SourcePosition


Node = Union[Number, Variable, BinaryOp, Parenthesis, Function, Factorial, Iterator]

BINARY_TAGS = frozenset({"add", "sub", "mul", "div", "pow"})
ITERATOR_TAGS = frozenset({"sum", "prod"})


def span(first: SourcePosition, last: SourcePosition, anchor: SourcePosition) -> SourcePosition:
    """Union two spans, keeping the line/column of *anchor*.

    Parameters
    ----------
    first : SourcePosition
        Span of the leftmost part of the construct.
    last : SourcePosition
        Span of the rightmost part of the construct.
    anchor : SourcePosition
        Position of the token that names the construct (an operator or a
        LaTeX command); its line and column are kept.

    Returns
    -------
    SourcePosition
        ``(first.start, last.end, anchor.line, anchor.column)``.

    Examples
    --------
    >>> from mathsolver.errors import SourcePosition
    >>> span(SourcePosition(0, 1, 1, 1), SourcePosition(4, 5, 1, 5), SourcePosition(2, 3, 1, 3))
    SourcePosition(start=0, end=5, line=1, column=3)
    """
    return SourcePosition(first.start, last.end, anchor.line, anchor.column)


def make_number(value, position: SourcePosition) -> Number:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return Number("num", value, position)


def make_variable(name: str, position: SourcePosition) -> Variable:
    return Variable("var", name, position)


def make_binary(tag: str, left: Node, right: Node, operator: SourcePosition) -> BinaryOp:
    """Build a binary node whose span covers both operands.

    Examples
    --------
    >>> from mathsolver.errors import SourcePosition
    >>> one = make_number(1, SourcePosition(0, 1, 1, 1))
    >>> two = make_number(2, SourcePosition(4, 5, 1, 5))
    >>> node = make_binary("add", one, two, SourcePosition(2, 3, 1, 3))
    >>> node.tag, node.position.start, node.position.end, node.position.column
    ('add', 0, 5, 3)
    """
    if tag not in BINARY_TAGS:
        raise ValueError(f"Unknown binary tag '{tag}'")
    return BinaryOp(tag, left, right, span(left.position, right.position, operator))


def make_parenthesis(inner: Node, position: SourcePosition) -> Parenthesis:
    return Parenthesis("paren", inner, position)


def make_function(name: str, args, position: SourcePosition) -> Function:
    return Function("call", name, tuple(args), position)


def make_factorial(inner: Node, position: SourcePosition) -> Factorial:
    return Factorial("fact", inner, position)


def make_iterator(tag: str, variable: str, start: Node, end: Node, body: Node,
                  position: SourcePosition) -> Iterator:
    if tag not in ITERATOR_TAGS:
        raise ValueError(f"Unknown iterator tag '{tag}'")
    return Iterator(tag, variable, start, end, body, position)


def children(node: Node) -> tuple:
    """Return the direct child nodes of *node*, left to right.

    Parameters
    ----------
    node : Node
        Any AST node.

    Returns
    -------
    tuple
        Child nodes in source order.  Leaves (``num``, ``var``) return
        an empty tuple; iterators return ``(start, end, body)``.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> [child.tag for child in children(parse("1 + 2 * 3"))]
    ['num', 'mul']
    """
    tag = node[0]
    if tag in ("num", "var"):
        return ()
    if tag in BINARY_TAGS:
        return (node.left, node.right)
    if tag in ("paren", "fact"):
        return (node.inner,)
    if tag == "call":
        return tuple(node.args)
    if tag in ITERATOR_TAGS:
        return (node.start, node.end, node.body)
    raise ValueError(f"Unknown AST tag '{tag}'")


def walk(node: Node) -> IteratorType[Node]:
    """Yield *node* and all of its descendants in pre-order."""
    yield node
    for child in children(node):
        yield from walk(child)


def strip_positions(node: Node):
    """Convert *node* into plain nested tuples without positions.

    Useful for structural comparisons in tests and for debugging dumps.
    Numbers are rendered as ``Decimal`` values, function arguments as a
    list.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> strip_positions(parse("2 ^ x"))
    ('pow', ('num', Decimal('2')), ('var', 'x'))
    """
    tag = node[0]
    if tag == "num":
        return ("num", node.value)
    if tag == "var":
        return ("var", node.name)
    if tag in BINARY_TAGS:
        return (tag, strip_positions(node.left), strip_positions(node.right))
    if tag in ("paren", "fact"):
        return (tag, strip_positions(node.inner))
    if tag == "call":
        return ("call", node.name, [strip_positions(arg) for arg in node.args])
    if tag in ITERATOR_TAGS:
        return (tag, node.variable, strip_positions(node.start),
                strip_positions(node.end), strip_positions(node.body))
    raise ValueError(f"Unknown AST tag '{tag}'")


def is_ast_node(node) -> bool:
    """Return True if *node* is a well-formed tree of known tags."""
    if not isinstance(node, tuple) or not node or not isinstance(node[-1], SourcePosition):
        return False
    try:
        return all(is_ast_node(child) for child in children(node))
    except (ValueError, AttributeError):
        return False
