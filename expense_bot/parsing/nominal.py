"""
Nominal Parser

Turns the magnitude token of a ledger message ("10rb", "1jt", "25.000",
"100k") into a whole amount.

Rules, applied in order:
1. lower-case, drop spaces and "." thousands separators
2. first matching multiplier wins: "jt" x1,000,000, "rb" x1,000, "k" x1,000
   (substring match; every occurrence of the marker is removed)
3. what is left must be plain ASCII digits

Dots are removed before the multiplier is found, so "1.5jt" reads as
"15jt" = 15,000,000 and not 1,500,000.
"""

import re

import structlog


logger = structlog.get_logger(__name__)

# Checked in this order
MULTIPLIERS: tuple[tuple[str, int], ...] = (
    ("jt", 1_000_000),
    ("rb", 1_000),
    ("k", 1_000),
)

_DIGITS = re.compile(r"[0-9]+")


class NominalParseError(ValueError):
    """The nominal token is not a number with an optional multiplier."""
    
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Cannot read amount from {text!r}")


def parse_nominal_strict(text: str) -> int:
    """
    Parse a nominal token.
    
    Raises:
        NominalParseError: when the token has no readable digits
    """
    normalized = text.lower().replace(" ", "").replace(".", "")
    
    multiplier = 1
    for marker, factor in MULTIPLIERS:
        if marker in normalized:
            normalized = normalized.replace(marker, "")
            multiplier = factor
            break
    
    if not _DIGITS.fullmatch(normalized):
        raise NominalParseError(text)
    return int(normalized) * multiplier


def parse_nominal(text: str) -> int:
    """
    Parse a nominal token, returning 0 when it cannot be read.
    
    Fail-open: an unreadable amount is recorded as 0 and logged. The
    reply echoes the parsed amount, so the user can see the 0.
    """
    try:
        return parse_nominal_strict(text)
    except NominalParseError:
        logger.warning("nominal_parse_failed", text=text)
        return 0
