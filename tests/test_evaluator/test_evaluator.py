from decimal import Decimal
from typing import get_args

import pytest

from mathsolver.arithmetic import ArithmeticFormat
from mathsolver.errors import EvalError
from mathsolver.evaluator import Evaluator, StepEvaluator, evaluate
from mathsolver.parser import parse
from mathsolver.runtime import CONSTANTS
from mathsolver.utils.ast_utils import ExprTag
from mathsolver.utils.print_utils import ExpressionPrinter


def run(text: str, variables=None, fmt=None) -> Decimal:
    """Helper function that parses and evaluates *text*."""
    return evaluate(parse(text), variables, fmt)


@pytest.mark.parametrize("handlers", [
    Evaluator().handlers,
    StepEvaluator().handlers,
    ExpressionPrinter().handlers,
], ids=["evaluator", "step_evaluator", "printer"])
def test_every_tag_has_a_handler(handlers):
    assert set(handlers) == set(get_args(ExprTag))


class TestArithmetic:
    @pytest.mark.parametrize("text, expected", [
        ("2 + 3 * 4", "14"),
        ("(2 + 3) * 4", "20"),
        ("2 ^ 3 ^ 2", "512"),
        ("10 - 4 - 3", "3"),
        ("100 / 10 / 5", "2"),
        ("-3 + 5", "2"),
        ("-2^2", "-4"),
        ("0.1 + 0.2", "0.3"),
        ("1 / 4", "0.25"),
        ("2 * \\frac{3}{4}", "1.5"),
    ])
    def test_values(self, text, expected):
        assert run(text) == Decimal(expected)

    def test_decimal_is_exact(self):
        assert run("0.1 + 0.2") == Decimal("0.3")

    def test_division_by_zero_position(self):
        with pytest.raises(EvalError) as excinfo:
            run("1/0")
        assert excinfo.value.message == "Division by zero"
        assert excinfo.value.position.column == 2

    def test_division_by_computed_zero(self):
        with pytest.raises(EvalError, match="Division by zero"):
            run("1 / (2 - 2)")

    def test_frac_sum_close_to_five_sixths(self):
        total = run("\\frac{1}{2}") + run("\\frac{1}{3}")
        assert abs(total - run("5/6")) < Decimal("1e-25")


class TestPower:
    @pytest.mark.parametrize("text, expected", [
        ("5 ^ 0", "1"),
        ("0 ^ 0", "1"),
        ("0 ^ 5", "0"),
        ("2 ^ -2", "0.25"),
        ("(-2) ^ 3", "-8"),
        ("1.5 ^ 2", "2.25"),
        ("4 ^ 0.5", "2"),
    ])
    def test_values(self, text, expected):
        assert run(text) == Decimal(expected)

    def test_near_integer_exponent_uses_integer_power(self):
        exponent = Decimal("3.00000000000001")
        assert run("2 ^ n", {"n": exponent}) == 8

    def test_negative_base_fractional_exponent(self):
        with pytest.raises(EvalError):
            run("(-8) ^ 0.5")


class TestVariables:
    def test_lookup(self, variables):
        assert run("x * y", variables) == 1

    def test_undefined(self):
        with pytest.raises(EvalError) as excinfo:
            run("a + 1")
        assert excinfo.value.message == "Variable 'a' is not defined"
        assert excinfo.value.position.column == 1

    @pytest.mark.parametrize("name", ["pi", "e", "phi"])
    def test_constants_use_context_precision(self, name):
        assert run(name) == +CONSTANTS[name]
        assert len(run(name).as_tuple().digits) == 28

    def test_constants_follow_evaluator_precision(self):
        assert Evaluator(precision=10).evaluate(parse("pi")) == Decimal("3.141592654")

    def test_constants_shadow_variables(self):
        assert run("pi", {"pi": Decimal(3)}) != 3

    def test_constants_are_formatted(self):
        assert run("pi", fmt=ArithmeticFormat.from_options("truncate", 2)) == Decimal("3.14")

    def test_non_decimal_values_are_coerced(self):
        assert run("x + 1", {"x": 0.5}) == Decimal("1.5")


class TestFunctions:
    @pytest.mark.parametrize("text, expected", [
        ("sin(0)", 0),
        ("cos(0)", 1),
        ("tan(0)", 0),
        ("sqrt(16)", 4),
        ("log(1000)", 3),
        ("ln(1)", 0),
        ("SIN(0)", 0),
    ])
    def test_values(self, text, expected):
        assert run(text) == expected

    def test_sin_pi_is_tiny(self):
        assert abs(run("sin(pi)")) < Decimal("1e-15")

    def test_ln_e(self):
        assert abs(run("\\ln e") - 1) < Decimal("1e-15")

    @pytest.mark.parametrize("text, message", [
        ("sqrt(-1)", "Cannot take square root of a negative number"),
        ("log(0)", "Cannot take logarithm of a non-positive number"),
        ("ln(-2)", "Cannot take natural logarithm of a non-positive number"),
        ("log(1, 2)", "Function log expects 1 argument, got 2"),
    ])
    def test_domain_and_arity_errors(self, text, message):
        with pytest.raises(EvalError) as excinfo:
            run(text)
        assert excinfo.value.message == message


class TestFactorial:
    @pytest.mark.parametrize("text, expected", [("0!", 1), ("1!", 1), ("5!", 120), ("3!!", 720)])
    def test_values(self, text, expected):
        assert run(text) == expected

    @pytest.mark.parametrize("text", ["(-1)!", "2.5!"])
    def test_rejects_non_natural(self, text):
        with pytest.raises(EvalError, match="Factorial is only defined for non-negative integers"):
            run(text)

    def test_near_integer_operand(self):
        assert run("n!", {"n": Decimal("4.00000000001")}) == 24


class TestIterators:
    def test_summation(self):
        assert run("\\sum_{i=1}^{5}{i}") == 15

    def test_product(self):
        assert run("\\prod_{k=1}^{5}{k}") == 120

    def test_empty_ranges(self):
        assert run("\\sum_{i=5}^{1}{i}") == 0
        assert run("\\prod_{i=5}^{1}{i}") == 1

    def test_loop_variable_removed_when_unbound(self):
        variables = {}
        run("\\sum_{i=1}^{5}{i}", variables)
        assert "i" not in variables

    def test_loop_variable_restored(self):
        variables = {"i": Decimal("42")}
        assert run("\\sum_{i=1}^{3}{i} + i", variables) == 48
        assert variables["i"] == 42

    def test_loop_variable_restored_after_error(self):
        variables = {"i": Decimal("7")}
        with pytest.raises(EvalError):
            run("\\sum_{i=-1}^{1}{1 / i}", variables)
        assert variables == {"i": Decimal("7")}

    def test_bounds_may_use_outer_variables(self):
        assert run("\\sum_{i=1}^{n}{i^2}", {"n": Decimal(3)}) == 14

    def test_nested(self):
        assert run("\\sum_{i=1}^{3}{\\prod_{j=1}^{i}{j}}") == 9

    @pytest.mark.parametrize("text, message", [
        ("\\sum_{i=1.5}^{3}{i}", "Summation bounds must be integers"),
        ("\\prod_{i=1}^{2.5}{i}", "Product bounds must be integers"),
    ])
    def test_non_integer_bounds(self, text, message):
        with pytest.raises(EvalError) as excinfo:
            run(text)
        assert excinfo.value.message == message

    def test_formatting_applies_every_iteration(self):
        fmt = ArithmeticFormat.from_options("truncate", 1)
        # each 1/3 truncates to 0.3; the total stays a multiple of 0.1
        assert run("\\sum_{i=1}^{3}{1/3}", fmt=fmt) == Decimal("0.9")


class TestFormatting:
    def test_compounds_like_hand_calculation(self):
        fmt = ArithmeticFormat.from_options("truncate", 2)
        assert run("10 / 3 * 3", fmt=fmt) == Decimal("9.99")

    def test_rounding(self, round2):
        assert run("2 / 3", fmt=round2) == Decimal("0.67")

    def test_significant_digits(self):
        fmt = ArithmeticFormat.from_options("round", 3, True)
        assert run("1234.5678 * 1", fmt=fmt) == 1230

    def test_number_literals_are_not_formatted(self, round2):
        # formatting follows operations, not literals
        assert run("1.23456", fmt=round2) == Decimal("1.23456")

    def test_parentheses_add_no_formatting(self, round2):
        assert run("(1.23456)", fmt=round2) == Decimal("1.23456")


class TestPrecision:
    def test_context_precision(self):
        assert Evaluator(precision=5).evaluate(parse("1 / 3")) == Decimal("0.33333")

    def test_default_precision_is_28_digits(self):
        assert len(str(run("1 / 3"))) == 30

    def test_overflow_is_an_eval_error(self):
        with pytest.raises(EvalError):
            run("10 ^ 1000000000")
