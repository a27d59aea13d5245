from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Union

from mathsolver.arithmetic import ArithmeticFormat
from mathsolver.errors import ConfigError, FormatConfigError
from mathsolver.utils.print_utils import NOTATIONS

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset({"mode", "precision", "significant_digits", "decimal_precision", "notation"})


@dataclass(frozen=True)
class SolverConfig:
    """Settings for a :class:`~mathsolver.solver.MathSolver` session.

    Parameters
    ----------
    arithmetic : ArithmeticFormat
        Formatting applied after every arithmetic primitive.
    decimal_precision : int, default 28
        Significant digits of the decimal context used while evaluating.
    notation : {"plain", "latex"}, default "plain"
        Notation used for the expression column of calculation steps.

    Raises
    ------
    ConfigError
        If ``decimal_precision`` is not a positive integer or
        ``notation`` is unknown.

    Examples
    --------
    >>> config = SolverConfig.from_dict({"mode": "round", "precision": 2})
    >>> config.arithmetic.describe()
    'rounding to 2 decimal places'
    """

    arithmetic: ArithmeticFormat = field(default_factory=ArithmeticFormat)
    decimal_precision: int = 28
    notation: str = "plain"

    def __post_init__(self) -> None:
        if isinstance(self.decimal_precision, bool) or not isinstance(self.decimal_precision, int):
            raise ConfigError(f"decimal_precision must be an integer: {self.decimal_precision!r}")
        if self.decimal_precision <= 0:
            raise ConfigError(f"decimal_precision must be positive: {self.decimal_precision}")
        if self.notation not in NOTATIONS:
            raise ConfigError(f"notation must be one of {NOTATIONS}: {self.notation!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SolverConfig":
        """Build a config from a flat mapping.

        Recognised keys are ``mode``, ``precision``,
        ``significant_digits``, ``decimal_precision`` and ``notation``;
        unknown keys are logged and ignored.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
        unknown = sorted(set(data) - _KNOWN_KEYS)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        try:
            arithmetic = ArithmeticFormat.from_options(
                data.get("mode", "none"),
                data.get("precision", 0),
                bool(data.get("significant_digits", False)),
            )
        except FormatConfigError as exc:
            raise ConfigError(str(exc)) from exc
        return cls(
            arithmetic=arithmetic,
            decimal_precision=data.get("decimal_precision", 28),
            notation=data.get("notation", "plain"),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SolverConfig":
        """Load a config from a JSON file holding one object."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file not found: {path}") from None
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        logger.debug("Loaded configuration from %s", path)
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.arithmetic.mode_name,
            "precision": self.arithmetic.precision,
            "significant_digits": self.arithmetic.significant,
            "decimal_precision": self.decimal_precision,
            "notation": self.notation,
        }

    def with_arithmetic(self, arithmetic: ArithmeticFormat) -> "SolverConfig":
        return replace(self, arithmetic=arithmetic)
