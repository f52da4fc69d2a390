"""Free-text parsing package."""

from expense_bot.parsing.nominal import (
    MULTIPLIERS,
    NominalParseError,
    parse_nominal,
    parse_nominal_strict,
)

__all__ = [
    "MULTIPLIERS",
    "NominalParseError",
    "parse_nominal",
    "parse_nominal_strict",
]
