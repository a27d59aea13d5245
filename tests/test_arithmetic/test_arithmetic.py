from decimal import Decimal

import pytest

from mathsolver.arithmetic import ArithmeticFormat, ArithmeticMode, PrecisionUnit
from mathsolver.errors import FormatConfigError


def fmt(mode: str, precision: int, significant: bool = False) -> ArithmeticFormat:
    return ArithmeticFormat.from_options(mode, precision, significant)


SAMPLES = [Decimal(s) for s in (
    "0", "1", "-1", "2.5", "-2.5", "3.14159", "-3.14159", "1234.5678", "0.0012345",
    "-0.0012345", "999.95", "0.5", "123456789.987654321", "1E-20", "7E+15",
)]

POLICIES = [
    ArithmeticFormat(),
    fmt("truncate", 0), fmt("truncate", 2), fmt("truncate", 3, True), fmt("truncate", 1, True),
    fmt("round", 0), fmt("round", 2), fmt("round", 3, True), fmt("round", 1, True),
]


class TestDecimalPlaces:
    @pytest.mark.parametrize("value, places, expected", [
        ("3.14159", 2, "3.14"),
        ("2.789", 2, "2.78"),
        ("-2.789", 2, "-2.78"),
        ("1.9999", 0, "1"),
        ("-1.9999", 0, "-1"),
        ("5", 3, "5"),
    ])
    def test_truncate_goes_toward_zero(self, value, places, expected):
        assert fmt("truncate", places).apply(Decimal(value)) == Decimal(expected)

    @pytest.mark.parametrize("value, places, expected", [
        ("3.14159", 2, "3.14"),
        ("2.789", 2, "2.79"),
        ("-2.789", 2, "-2.79"),
        ("2.5", 0, "2"),      # half to even
        ("3.5", 0, "4"),
        ("0.125", 2, "0.12"),
    ])
    def test_round_half_even(self, value, places, expected):
        assert fmt("round", places).apply(Decimal(value)) == Decimal(expected)


class TestSignificantDigits:
    @pytest.mark.parametrize("value, digits, expected", [
        ("1234.5678", 3, "1230"),
        ("0.0012345", 2, "0.0012"),
        ("987654", 2, "990000"),
        ("-45.678", 3, "-45.7"),
        ("0.999", 2, "1.0"),
        ("1.0", 5, "1.0"),
    ])
    def test_round(self, value, digits, expected):
        assert fmt("round", digits, True).apply(Decimal(value)) == Decimal(expected)

    @pytest.mark.parametrize("value, digits, expected", [
        ("1234.5678", 3, "1230"),
        ("0.0012345", 2, "0.0012"),
        ("987654", 2, "980000"),
        ("-45.678", 3, "-45.6"),
        ("0.999", 2, "0.99"),
    ])
    def test_truncate(self, value, digits, expected):
        assert fmt("truncate", digits, True).apply(Decimal(value)) == Decimal(expected)

    def test_zero_stays_zero(self):
        assert fmt("round", 3, True).apply(Decimal("0")) == 0
        assert fmt("truncate", 1, True).apply(Decimal("-0.000")) == 0


class TestIdempotence:
    @pytest.mark.parametrize("policy", POLICIES, ids=lambda p: p.describe())
    def test_apply_twice_equals_once(self, policy):
        for value in SAMPLES:
            once = policy.apply(value)
            assert policy.apply(once) == once


class TestNoFormatting:
    def test_identity(self):
        value = Decimal("3.14159265358979323846")
        assert ArithmeticFormat().apply(value) is value

    def test_precision_ignored(self):
        # a negative precision is irrelevant when nothing is formatted
        assert ArithmeticFormat(ArithmeticMode.NONE, -1).describe() == "with no formatting"


class TestValidation:
    @pytest.mark.parametrize("mode", ["truncate", "round"])
    def test_negative_decimal_places(self, mode):
        with pytest.raises(FormatConfigError):
            fmt(mode, -1)

    @pytest.mark.parametrize("mode", ["truncate", "round"])
    @pytest.mark.parametrize("digits", [0, -3])
    def test_non_positive_significant_digits(self, mode, digits):
        with pytest.raises(FormatConfigError):
            fmt(mode, digits, True)

    def test_unknown_mode(self):
        with pytest.raises(FormatConfigError):
            fmt("ceiling", 2)

    def test_non_integer_precision(self):
        with pytest.raises(FormatConfigError):
            ArithmeticFormat(ArithmeticMode.ROUND, 2.5, PrecisionUnit.DECIMAL_PLACES)

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            fmt("round", -2)

    def test_mode_string_is_case_insensitive(self):
        assert fmt(" ROUND ", 2).mode is ArithmeticMode.ROUND


class TestDescriptions:
    @pytest.mark.parametrize("policy, text", [
        (ArithmeticFormat(), "with no formatting"),
        (fmt("round", 2), "rounding to 2 decimal places"),
        (fmt("round", 1), "rounding to 1 decimal place"),
        (fmt("truncate", 3, True), "truncating to 3 significant digits"),
        (fmt("truncate", 1, True), "truncating to 1 significant digit"),
    ])
    def test_describe(self, policy, text):
        assert policy.describe() == text

    @pytest.mark.parametrize("policy, text", [
        (ArithmeticFormat(), "Maximum"),
        (fmt("round", 2), "2 decimal places"),
        (fmt("truncate", 3, True), "3 significant digits"),
    ])
    def test_precision_info(self, policy, text):
        assert policy.precision_info() == text

    def test_policy_is_frozen(self):
        policy = fmt("round", 2)
        with pytest.raises(AttributeError):
            policy.precision = 3
