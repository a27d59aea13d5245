from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, NamedTuple, Optional

import numpy as np

from mathsolver.errors import EvalError, SourcePosition

logger = logging.getLogger(__name__)

# Threshold for every "effectively an integer" check
EPSILON = Decimal("1e-10")

CONSTANTS: dict[str, Decimal] = {
    "pi": Decimal("3.1415926535897932384626433832795028841971693993751058"),
    "e": Decimal("2.7182818284590452353602874713526624977572470936999595"),
    "phi": Decimal("1.6180339887498948482045868343656381177203091798057628"),
}
CONSTANT_ALIASES = {"π": "pi", "φ": "phi"}


def to_decimal(value, position: Optional[SourcePosition] = None) -> Decimal:
    """Convert a numpy/float result back into a ``Decimal``.

    Going through ``repr`` keeps the shortest decimal string that
    round-trips the double, so ``0.1`` stays ``0.1`` rather than its
    binary expansion.

    Raises
    ------
    EvalError
        If the value is infinite or NaN.

    Examples
    --------
    >>> to_decimal(np.float64(0.5))
    Decimal('0.5')
    """
    value = float(value)
    if not np.isfinite(value):
        raise EvalError("Result is not a finite number", position)
    return Decimal(repr(value))


def to_float(value: Decimal, position: Optional[SourcePosition] = None) -> float:
    try:
        result = float(value)
    except (OverflowError, InvalidOperation):
        raise EvalError("Value is out of range for a real function", position) from None
    if not np.isfinite(result):
        raise EvalError("Value is out of range for a real function", position)
    return result


def is_effectively_integer(value: Decimal) -> bool:
    """True if *value* is within ``EPSILON`` of the nearest integer."""
    return abs(value - value.to_integral_value()) < EPSILON


def real_power(base: Decimal, exponent: Decimal, position: Optional[SourcePosition] = None) -> Decimal:
    """Compute ``base ** exponent`` for a non-integer exponent in double precision."""
    if base < 0:
        raise EvalError("Cannot raise a negative number to a non-integer power", position)
    logger.debug("Real power %s ^ %s in double precision", base, exponent)
    with np.errstate(over="ignore", invalid="ignore"):
        result = np.power(to_float(base, position), to_float(exponent, position))
    return to_decimal(result, position)


def _check_sqrt(x: Decimal, position) -> None:
    if x < 0:
        raise EvalError("Cannot take square root of a negative number", position)


def _check_log(x: Decimal, position) -> None:
    if x <= 0:
        raise EvalError("Cannot take logarithm of a non-positive number", position)


def _check_ln(x: Decimal, position) -> None:
    if x <= 0:
        raise EvalError("Cannot take natural logarithm of a non-positive number", position)


class MathFunction(NamedTuple):
    """A registered real function.

    ``kernel`` maps a float to a float (a numpy ufunc); ``check`` raises
    ``EvalError`` for arguments outside the domain; ``description`` is a
    ``str.format`` template with one slot per argument.
    """

    name: str
    kernel: Callable
    arity: int
    description: str
    check: Optional[Callable[[Decimal, Optional[SourcePosition]], None]] = None

    def describe(self, args) -> str:
        return self.description.format(*args)

    def __call__(self, args, position: Optional[SourcePosition] = None) -> Decimal:
        if len(args) != self.arity:
            plural = "argument" if self.arity == 1 else "arguments"
            raise EvalError(f"Function {self.name} expects {self.arity} {plural}, got {len(args)}", position)
        if self.check is not None:
            for arg in args:
                self.check(arg, position)
        floats = [to_float(arg, position) for arg in args]
        with np.errstate(all="ignore"):
            result = self.kernel(*floats)
        return to_decimal(result, position)


FUNCTIONS: dict[str, MathFunction] = {
    "sin": MathFunction("sin", np.sin, 1, "Calculate sine of {0}"),
    "cos": MathFunction("cos", np.cos, 1, "Calculate cosine of {0}"),
    "tan": MathFunction("tan", np.tan, 1, "Calculate tangent of {0}"),
    "sqrt": MathFunction("sqrt", np.sqrt, 1, "Calculate square root of {0}", _check_sqrt),
    "log": MathFunction("log", np.log10, 1, "Calculate base-10 logarithm of {0}", _check_log),
    "ln": MathFunction("ln", np.log, 1, "Calculate natural logarithm of {0}", _check_ln),
}


def lookup_function(name: str, position: Optional[SourcePosition] = None) -> MathFunction:
    """Return the registered function *name* (case-insensitive).

    Raises
    ------
    EvalError
        ``"Unsupported function: name"`` if nothing is registered.

    Examples
    --------
    >>> lookup_function("SQRT").description
    'Calculate square root of {0}'
    """
    function = FUNCTIONS.get(name.lower())
    if function is None:
        raise EvalError(f"Unsupported function: {name}", position)
    return function


def lookup_constant(name: str) -> Optional[Decimal]:
    """Return the exact value of constant *name*, or None.

    Examples
    --------
    >>> lookup_constant("PI")
    Decimal('3.1415926535897932384626433832795028841971693993751058')
    >>> lookup_constant("x") is None
    True
    """
    key = name.lower()
    return CONSTANTS.get(CONSTANT_ALIASES.get(key, key))
