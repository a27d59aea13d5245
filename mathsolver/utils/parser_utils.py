from __future__ import annotations

from mathsolver.runtime import lookup_constant
from mathsolver.utils.ast_utils import ITERATOR_TAGS, Node, children


def free_variables(ast: Node) -> list[str]:
    """Collect the variable names an expression reads from the caller.

    Walks the tree and records every ``("var", name)`` that is neither a
    constant (pi, e, phi) nor bound by an enclosing ``\\sum``/``\\prod``.
    The facade uses this to report missing variables before evaluating.

    Parameters
    ----------
    ast : Node
        Root of the tree to search.

    Returns
    -------
    list[str]
        Names in first-encounter order, without duplicates.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> free_variables(parse("x * pi + \\\\sum_{i=1}^{n}{i * y}"))
    ['x', 'n', 'y']
    """
    names: list[str] = []

    def visit(node: Node, bound: frozenset) -> None:
        tag = node[0]
        if tag == "var":
            if node.name not in bound and lookup_constant(node.name) is None and node.name not in names:
                names.append(node.name)
            return
        if tag in ITERATOR_TAGS:
            # bounds are evaluated outside the loop scope
            visit(node.start, bound)
            visit(node.end, bound)
            visit(node.body, bound | {node.variable})
            return
        for child in children(node):
            visit(child, bound)

    visit(ast, frozenset())
    return names


def bound_variables(ast: Node) -> list[str]:
    """Return the iteration variables introduced by summations and products.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> bound_variables(parse("\\\\prod_{k=1}^{3}{\\\\sum_{j=1}^{k}{j}}"))
    ['k', 'j']
    """
    names: list[str] = []

    def visit(node: Node) -> None:
        if node[0] in ITERATOR_TAGS and node.variable not in names:
            names.append(node.variable)
        for child in children(node):
            visit(child)

    visit(ast)
    return names
