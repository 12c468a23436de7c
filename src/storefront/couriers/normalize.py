"""Field normalization shared by courier adapters."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

COUNTRY_CODE = "88"
LOCAL_DIGITS = 10  # digits after the leading zero

_NON_DIGITS = re.compile(r"\D+")
_WHITESPACE = re.compile(r"\s+")


def normalize_phone(raw: str | None) -> str:
    """
    Normalize a phone number to the 11-digit local format.

    Examples:
        "+880 1712-345678" -> "01712345678"
        "8801712345678"    -> "01712345678"
        "1712345678"       -> "01712345678"
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if digits.startswith(COUNTRY_CODE):
        digits = digits[len(COUNTRY_CODE):]
    if digits.startswith("0"):
        digits = digits[1:]
    return "0" + digits[:LOCAL_DIGITS]


def clean_text(value: str | None, limit: int) -> str:
    """Collapse newlines and runs of whitespace, then cap at `limit` characters."""
    text = _WHITESPACE.sub(" ", value or "").strip()
    return text[:limit].rstrip()


def round_amount(value: float | int | str | None) -> int:
    """Round a currency amount to whole units (half up)."""
    if value is None or value == "":
        return 0
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
