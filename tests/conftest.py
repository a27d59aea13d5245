from decimal import Decimal

import pytest

from mathsolver.arithmetic import ArithmeticFormat
from mathsolver.solver import MathSolver


@pytest.fixture()
def solver():
    """Fresh session with unformatted arithmetic and an empty variable table."""
    return MathSolver()


@pytest.fixture()
def round2():
    return ArithmeticFormat.from_options("round", 2)


@pytest.fixture()
def variables():
    return {"x": Decimal("2"), "y": Decimal("0.5")}
