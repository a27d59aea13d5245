import pytest

from mathsolver.parser import parse
from mathsolver.utils.parser_utils import bound_variables, free_variables


@pytest.mark.parametrize("text, expected", [
    ("1 + 2", []),
    ("x + y * x", ["x", "y"]),
    ("pi * e * phi * r", ["r"]),
    ("\\sum_{i=1}^{n}{i}", ["n"]),
    ("\\sum_{i=1}^{3}{i} + i", ["i"]),
    ("\\sum_{i=i}^{3}{i}", ["i"]),
    ("\\prod_{k=1}^{3}{\\sum_{j=1}^{k}{j * w}}", ["w"]),
    ("sin(theta)!", ["theta"]),
])
def test_free_variables(text, expected):
    assert free_variables(parse(text)) == expected


@pytest.mark.parametrize("text, expected", [
    ("x + 1", []),
    ("\\sum_{i=1}^{3}{i}", ["i"]),
    ("\\sum_{i=1}^{3}{i} * \\prod_{i=1}^{2}{i}", ["i"]),
    ("\\prod_{k=1}^{3}{\\sum_{j=1}^{k}{j}}", ["k", "j"]),
])
def test_bound_variables(text, expected):
    assert bound_variables(parse(text)) == expected
