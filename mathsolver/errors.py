from __future__ import annotations

from typing import NamedTuple, Optional


class SourcePosition(NamedTuple):
    """Location of a token or node in the source text.

    ``start`` and ``end`` are character offsets (``end`` exclusive);
    ``line`` and ``column`` are 1-based and point at the token that
    produced the node (the operator token for binary nodes).
    """

    start: int
    end: int
    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class MathSolverError(Exception):
    """Base class for errors raised while parsing or evaluating.

    Parameters
    ----------
    message : str
        Human-readable description of the problem.
    position : SourcePosition or None
        Where in the input the problem was found.

    Examples
    --------
    >>> err = EvalError("Division by zero", SourcePosition(1, 2, 1, 2))
    >>> str(err)
    'Division by zero at line 1, column 2'
    """

    def __init__(self, message: str, position: Optional[SourcePosition] = None) -> None:
        super().__init__(message)
        self.message = message
        self.position = position

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} at {self.position}"


class ParseError(MathSolverError):
    """Malformed input: unexpected or missing token, unknown command."""


class EvalError(MathSolverError):
    """Well-formed input that cannot be evaluated (undefined variable,
    division by zero, domain violation, ...)."""


class FormatConfigError(ValueError):
    """Invalid arithmetic format policy (negative decimal places or
    non-positive significant digits)."""


class ConfigError(ValueError):
    """Configuration file or mapping that cannot be turned into a
    ``SolverConfig``."""
