from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal, localcontext
from enum import Enum
from typing import Union

from mathsolver.errors import FormatConfigError


class ArithmeticMode(Enum):
    NONE = "none"
    TRUNCATE = "truncate"
    ROUND = "round"


class PrecisionUnit(Enum):
    DECIMAL_PLACES = "decimal_places"
    SIGNIFICANT_DIGITS = "significant_digits"


_ROUNDING = {
    ArithmeticMode.TRUNCATE: ROUND_DOWN,      # toward zero
    ArithmeticMode.ROUND: ROUND_HALF_EVEN,
}

_VERBS = {
    ArithmeticMode.TRUNCATE: "truncating",
    ArithmeticMode.ROUND: "rounding",
}


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@dataclass(frozen=True)
class ArithmeticFormat:
    """Post-processing policy applied after every arithmetic primitive.

    Models a calculator that keeps a fixed number of digits after each
    operation, so precision loss compounds the way it does by hand.

    Parameters
    ----------
    mode : ArithmeticMode
        ``NONE`` leaves values untouched; ``TRUNCATE`` cuts toward zero;
        ``ROUND`` rounds half to even.
    precision : int
        Number of decimal places or significant digits to keep.
    unit : PrecisionUnit
        Whether *precision* counts places after the decimal point or
        significant digits.

    Raises
    ------
    FormatConfigError
        If *precision* is negative for decimal places, or not positive
        for significant digits.

    Examples
    --------
    >>> from decimal import Decimal
    >>> fmt = ArithmeticFormat(ArithmeticMode.ROUND, 3, PrecisionUnit.SIGNIFICANT_DIGITS)
    >>> fmt.apply(Decimal("1234.5678"))
    Decimal('1.23E+3')
    >>> fmt.describe()
    'rounding to 3 significant digits'
    """

    mode: ArithmeticMode = ArithmeticMode.NONE
    precision: int = 0
    unit: PrecisionUnit = PrecisionUnit.DECIMAL_PLACES

    def __post_init__(self) -> None:
        if not isinstance(self.mode, ArithmeticMode):
            raise FormatConfigError(f"Unknown arithmetic mode: {self.mode!r}")
        if not isinstance(self.unit, PrecisionUnit):
            raise FormatConfigError(f"Unknown precision unit: {self.unit!r}")
        if isinstance(self.precision, bool) or not isinstance(self.precision, int):
            raise FormatConfigError(f"Precision must be an integer, got {self.precision!r}")
        if self.mode is ArithmeticMode.NONE:
            return
        if self.unit is PrecisionUnit.SIGNIFICANT_DIGITS and self.precision <= 0:
            raise FormatConfigError("Significant digits must be greater than 0")
        if self.unit is PrecisionUnit.DECIMAL_PLACES and self.precision < 0:
            raise FormatConfigError("Decimal places cannot be negative")

    @classmethod
    def from_options(cls, mode: Union[str, ArithmeticMode] = "none", precision: int = 0,
                     significant_digits: bool = False) -> "ArithmeticFormat":
        """Build a policy from loose options (CLI flags, config files).

        Examples
        --------
        >>> ArithmeticFormat.from_options("truncate", 2).describe()
        'truncating to 2 decimal places'
        """
        if isinstance(mode, str):
            try:
                mode = ArithmeticMode(mode.strip().lower())
            except ValueError:
                raise FormatConfigError(f"Unknown arithmetic mode: {mode!r}") from None
        unit = PrecisionUnit.SIGNIFICANT_DIGITS if significant_digits else PrecisionUnit.DECIMAL_PLACES
        return cls(mode, precision, unit)

    @property
    def significant(self) -> bool:
        return self.unit is PrecisionUnit.SIGNIFICANT_DIGITS

    def places_for(self, value: Decimal) -> int:
        """Return how many decimal places *value* keeps under this policy.

        For significant digits this is ``precision - exponent - 1`` where
        ``exponent`` is the position of the leading digit; it goes
        negative for large values, which cuts at tens, hundreds, ...
        """
        if not self.significant:
            return self.precision
        return self.precision - value.adjusted() - 1

    def apply(self, value: Decimal) -> Decimal:
        """Format *value* according to the policy.

        Parameters
        ----------
        value : Decimal
            Raw result of an arithmetic primitive.

        Returns
        -------
        Decimal
            The truncated or rounded value; *value* itself when the mode
            is ``NONE``, when it is zero or when it already fits.

        Examples
        --------
        >>> from decimal import Decimal
        >>> ArithmeticFormat.from_options("truncate", 2).apply(Decimal("-2.789"))
        Decimal('-2.78')
        >>> ArithmeticFormat.from_options("round", 2, True).apply(Decimal("0.0012345"))
        Decimal('0.0012')
        """
        if self.mode is ArithmeticMode.NONE or not value.is_finite() or value.is_zero():
            return value

        places = self.places_for(value)
        if value.as_tuple().exponent >= -places:
            return value

        quantum = Decimal(1).scaleb(-places)
        with localcontext() as ctx:
            # quantize fails if the coefficient needs more digits than prec
            ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
            return value.quantize(quantum, rounding=_ROUNDING[self.mode])

    def describe(self) -> str:
        """Return the suffix used in step descriptions.

        Examples
        --------
        >>> ArithmeticFormat().describe()
        'with no formatting'
        >>> ArithmeticFormat.from_options("round", 1).describe()
        'rounding to 1 decimal place'
        """
        if self.mode is ArithmeticMode.NONE:
            return "with no formatting"
        if self.significant:
            amount = _plural(self.precision, "significant digit", "significant digits")
        else:
            amount = _plural(self.precision, "decimal place", "decimal places")
        return f"{_VERBS[self.mode]} to {amount}"

    def precision_info(self) -> str:
        """Summary shown next to a facade result (``"Maximum"`` when unformatted)."""
        if self.mode is ArithmeticMode.NONE:
            return "Maximum"
        if self.significant:
            return f"{self.precision} significant digits"
        return f"{self.precision} decimal places"

    @property
    def mode_name(self) -> str:
        return self.mode.value


NO_FORMAT = ArithmeticFormat()
